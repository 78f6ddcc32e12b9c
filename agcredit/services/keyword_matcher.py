"""
Keyword-row matcher for financial categories.

Finds the row that supplies each category using ordered, case-insensitive
substring keyword lists.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from agcredit.models import CanonicalRow, YearLayout
from agcredit.services.numeric_parser import NumericParser, get_numeric_parser
from agcredit.services.year_locator import YearLocator

logger = structlog.get_logger(__name__)


class MatchPolicy(str, Enum):
    """Tie-break between several rows matching one category."""
    DOCUMENT_ORDER = "document_order"      # first matching row in the document
    KEYWORD_PRIORITY = "keyword_priority"  # first keyword with any matching row


@dataclass
class RowMatch:
    """Authoritative row for a category."""

    category: str
    row_index: int
    keyword: str
    label: str
    # Aligned mode: one slot per year (None where the cell is not numeric).
    # Unaligned mode: numbers in row order.
    values: List[Optional[float]]
    aligned: bool = False

    @property
    def numbers(self) -> List[float]:
        return [v for v in self.values if v is not None]


class KeywordRowMatcher:
    """
    Matcher that picks the first authoritative row per category.

    A row is a candidate when its joined text contains a keyword and it
    yields at least one usable number. Later candidate rows are ignored.
    """

    def __init__(
        self,
        policy: MatchPolicy = MatchPolicy.DOCUMENT_ORDER,
        parser: Optional[NumericParser] = None,
    ):
        self.policy = MatchPolicy(policy)
        self._parser = parser or get_numeric_parser()

    def match_all(
        self,
        rows: Sequence[CanonicalRow],
        layout: YearLayout,
        keywords: Mapping[str, Sequence[str]],
        positive_only: bool = False,
    ) -> Dict[str, Optional[RowMatch]]:
        """
        Match every category.

        Args:
            rows: Canonical rows in document order.
            layout: Year layout from the YearLocator.
            keywords: Category name to ordered keyword list.
            positive_only: Drop zero and negative values.

        Returns:
            Category name to RowMatch, or None when nothing matched.
        """
        scan_rows = self._scan_rows(rows, layout)
        matches: Dict[str, Optional[RowMatch]] = {}
        for category, words in keywords.items():
            matches[category] = self.match_category(
                scan_rows, layout, category, words, positive_only
            )

        logger.debug(
            "Keyword matching complete",
            policy=self.policy.value,
            matched=[c for c, m in matches.items() if m is not None],
            unmatched=[c for c, m in matches.items() if m is None],
        )
        return matches

    def match_category(
        self,
        rows: Sequence[CanonicalRow],
        layout: YearLayout,
        category: str,
        keywords: Sequence[str],
        positive_only: bool = False,
    ) -> Optional[RowMatch]:
        """Find the authoritative row for one category."""
        lowered = [k.lower() for k in keywords]

        if self.policy == MatchPolicy.KEYWORD_PRIORITY:
            for keyword in lowered:
                for row in rows:
                    if keyword in row.text:
                        match = self._build_match(row, layout, category, keyword, positive_only)
                        if match is not None:
                            return match
            return None

        for row in rows:
            text = row.text
            keyword = next((k for k in lowered if k in text), None)
            if keyword is None:
                continue
            match = self._build_match(row, layout, category, keyword, positive_only)
            if match is not None:
                return match
        return None

    def row_values(
        self,
        row: CanonicalRow,
        layout: YearLayout,
        positive_only: bool = False,
    ) -> List[Optional[float]]:
        """Numbers a row supplies under the layout's mode."""
        if layout.aligned:
            values: List[Optional[float]] = []
            for column in YearLocator.columns_for_row(layout, row):
                cell = row.cell(column)
                if not cell.is_number or (positive_only and cell.value <= 0):
                    values.append(None)
                else:
                    values.append(cell.value)
            return values

        # Label/ID in the first cell is never read as a figure
        return list(self._parser.parse_cells(row.cells[1:], positive_only=positive_only))

    def _build_match(
        self,
        row: CanonicalRow,
        layout: YearLayout,
        category: str,
        keyword: str,
        positive_only: bool,
    ) -> Optional[RowMatch]:
        values = self.row_values(row, layout, positive_only)
        if not any(v is not None for v in values):
            return None
        return RowMatch(
            category=category,
            row_index=row.index,
            keyword=keyword,
            label=row.label,
            values=values,
            aligned=layout.aligned,
        )

    @staticmethod
    def _scan_rows(rows: Sequence[CanonicalRow], layout: YearLayout) -> List[CanonicalRow]:
        if layout.aligned:
            return [r for r in rows if r.index != layout.header_row]
        allowed = set(layout.candidate_rows or [])
        return [r for r in rows if r.index in allowed]


def get_keyword_matcher(policy: str = MatchPolicy.DOCUMENT_ORDER.value) -> KeywordRowMatcher:
    """Get KeywordRowMatcher instance."""
    return KeywordRowMatcher(policy=MatchPolicy(policy))
