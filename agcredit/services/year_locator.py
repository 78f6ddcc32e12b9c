"""
Year locator service.

Handles fiscal year detection and column alignment for statement rows.
"""
import re
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import structlog

from agcredit.models import CanonicalRow, LayoutMode, YearLayout

logger = structlog.get_logger(__name__)


class YearLocator:
    """
    Service for fiscal year detection.

    Features:
    - Year header row detection (first row with enough year tokens)
    - Year to column alignment map for aligned extraction
    - Whole-content year scan when no header row exists
    - Default trailing years when nothing is found
    """

    # 2023, FY2023, FY 2023, Year 2023
    YEAR_TOKEN_PATTERN = re.compile(r"(?:\bFY\s*|\bYear\s*|\b)(20\d{2})\b", re.IGNORECASE)

    def __init__(
        self,
        header_scan_rows: int = 10,
        unaligned_scan_rows: int = 30,
        min_header_year_tokens: int = 2,
    ):
        self.header_scan_rows = header_scan_rows
        self.unaligned_scan_rows = unaligned_scan_rows
        self.min_header_year_tokens = min_header_year_tokens

    def locate(
        self,
        rows: Sequence[CanonicalRow],
        period_count: Optional[int] = 3,
        current_year: Optional[int] = None,
    ) -> YearLayout:
        """
        Detect the fiscal years covered by a row table.

        Args:
            rows: Canonical rows in document order.
            period_count: Keep at most this many of the most recent years.
            current_year: Reference year for defaults and plausibility.

        Returns:
            YearLayout in aligned or unaligned mode. Years are never empty.
        """
        current_year = current_year or datetime.now().year

        header = self._find_header_row(rows[: self.header_scan_rows], current_year)
        if header is not None:
            header_row, columns = header
            years = self._most_recent(sorted(columns), period_count)
            layout = YearLayout(
                mode=LayoutMode.ALIGNED,
                years=years,
                header_row=header_row,
                columns={y: columns[y] for y in years},
            )
            logger.debug("Year header row found", row=header_row, years=years)
            return layout

        candidates = [
            row.index
            for row in rows[: self.unaligned_scan_rows]
            if row.cells and not row.cells[0].is_empty and row.has_trailing_number()
        ]

        found = set()
        for row in rows:
            for cell in row.cells:
                for match in self.YEAR_TOKEN_PATTERN.finditer(cell.raw):
                    year = int(match.group(1))
                    if year <= current_year + 1:
                        found.add(year)

        years = self._most_recent(sorted(found), period_count)
        defaulted = False
        if not years:
            count = period_count or 3
            years = list(range(current_year - count + 1, current_year + 1))
            defaulted = True
            logger.info("No fiscal years detected, using defaults", years=years)

        return YearLayout(
            mode=LayoutMode.UNALIGNED,
            years=years,
            candidate_rows=candidates,
            defaulted=defaulted,
        )

    def _find_header_row(
        self,
        rows: Sequence[CanonicalRow],
        current_year: int,
    ) -> Optional[tuple]:
        """Return (row index, {year: column}) for the first year header row."""
        for row in rows:
            columns: Dict[int, int] = {}
            tokens = 0
            for col, cell in enumerate(row.cells):
                if cell.is_empty:
                    continue
                match = self.YEAR_TOKEN_PATTERN.search(cell.raw)
                if not match:
                    continue
                year = int(match.group(1))
                if year > current_year + 1:
                    continue
                tokens += 1
                columns.setdefault(year, col)
            if tokens >= self.min_header_year_tokens:
                return row.index, columns
        return None

    @staticmethod
    def _most_recent(years: List[int], period_count: Optional[int]) -> List[int]:
        if period_count and len(years) > period_count:
            return years[-period_count:]
        return years

    @staticmethod
    def columns_for_row(layout: YearLayout, row: CanonicalRow) -> List[int]:
        """
        Year columns for one data row, in ascending year order.

        Header rows that omit the label column put the first year over the
        row label; such rows are shifted right past the label.
        """
        columns = layout.ordered_columns()
        if not columns:
            return columns
        label_col = row.label_index
        first = min(columns)
        if label_col is not None and first <= label_col:
            shift = label_col + 1 - first
            columns = [c + shift for c in columns]
        return columns


def get_year_locator(
    header_scan_rows: int = 10,
    unaligned_scan_rows: int = 30,
    min_header_year_tokens: int = 2,
) -> YearLocator:
    """Get YearLocator instance."""
    return YearLocator(
        header_scan_rows=header_scan_rows,
        unaligned_scan_rows=unaligned_scan_rows,
        min_header_year_tokens=min_header_year_tokens,
    )
