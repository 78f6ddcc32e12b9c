"""
Data structures for the credit statement engine.

Implements the per-request structures passed between stages:
- CanonicalRow of tagged cells
- YearLayout describing detected fiscal years and column alignment
- MetricSeries per financial category with its provenance
- TrendResult, ValidationContext and HealthAssessment
- ExtractionResult returned to callers

Everything here is created fresh per call; nothing is cached or shared.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from agcredit.services.numeric_parser import Cell, CellKind


class StatementType(str, Enum):
    """Financial statement types."""
    INCOME_STATEMENT = "income_statement"
    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW = "cash_flow"
    UNKNOWN = "unknown"


class LayoutMode(str, Enum):
    """How values were tied to fiscal years."""
    ALIGNED = "aligned"      # year header row found, columns mapped per year
    UNALIGNED = "unaligned"  # values taken in row order


class SeriesSource(str, Enum):
    """Where a metric series came from."""
    EXTRACTED = "extracted"  # authoritative row in the content
    DERIVED = "derived"      # computed from extracted series
    FALLBACK = "fallback"    # labeled representative dataset
    MISSING = "missing"      # no signal, zero series


class TrendLabel(str, Enum):
    """Direction of the last period-over-period change."""
    IMPROVING = "Improving"
    STABLE = "Stable"
    DECLINING = "Declining"


class Rating(str, Enum):
    """Health assessment ratings."""
    STRONG = "Strong"
    ADEQUATE = "Adequate"
    MIXED = "Mixed"
    WEAK = "Weak"


def is_valid_value(value: Optional[float]) -> bool:
    """True when a value is present, a real number and non-zero."""
    if value is None:
        return False
    try:
        return not math.isnan(value) and value != 0
    except TypeError:
        return False


# =============================================================================
# Rows and Layout
# =============================================================================

@dataclass(frozen=True)
class CanonicalRow:
    """An ordered row of tagged cells with its position in the document."""
    index: int
    cells: Tuple[Cell, ...]

    @classmethod
    def from_values(cls, index: int, values: Sequence[Any]) -> "CanonicalRow":
        return cls(index=index, cells=tuple(Cell.from_raw(v) for v in values))

    @property
    def label(self) -> str:
        for cell in self.cells:
            if cell.kind == CellKind.TEXT:
                return cell.raw
        return ""

    @property
    def text(self) -> str:
        """Lowercased text of all non-empty cells joined by spaces."""
        return " ".join(c.raw for c in self.cells if not c.is_empty).lower()

    @property
    def label_index(self) -> Optional[int]:
        """Column of the first text cell that precedes any number."""
        for i, cell in enumerate(self.cells):
            if cell.kind == CellKind.NUMBER:
                return None
            if cell.kind == CellKind.TEXT:
                return i
        return None

    def cell(self, column: int) -> Cell:
        if 0 <= column < len(self.cells):
            return self.cells[column]
        return Cell(kind=CellKind.EMPTY, raw="")

    def has_trailing_number(self) -> bool:
        return any(c.is_number for c in self.cells[1:])

    def __len__(self) -> int:
        return len(self.cells)


@dataclass
class YearLayout:
    """Detected fiscal years and, in aligned mode, their columns."""
    mode: LayoutMode
    years: List[int]
    header_row: Optional[int] = None
    columns: Dict[int, int] = field(default_factory=dict)  # year -> column
    candidate_rows: Optional[List[int]] = None  # unaligned data rows
    defaulted: bool = False

    @property
    def aligned(self) -> bool:
        return self.mode == LayoutMode.ALIGNED

    def ordered_columns(self) -> List[int]:
        """Columns in ascending year order."""
        return [self.columns[y] for y in self.years if y in self.columns]


# =============================================================================
# Series and Derived Values
# =============================================================================

@dataclass
class MetricSeries:
    """Numbers for one category, one per fiscal year."""
    category: str
    values: List[float]
    source: SeriesSource
    row_index: Optional[int] = None
    label: Optional[str] = None

    @property
    def extracted(self) -> bool:
        return self.source in (SeriesSource.EXTRACTED, SeriesSource.DERIVED)

    @property
    def latest(self) -> Optional[float]:
        return self.values[-1] if self.values else None


@dataclass
class TrendResult:
    """Trend label with the change that produced it."""
    label: TrendLabel
    change_percent: Optional[float] = None
    lower_is_better: bool = False


@dataclass
class ValidationContext:
    """Advisory flags describing how much real data backs the result."""
    has_income_data: bool = False
    has_balance_data: bool = False
    has_valid_ratios: bool = False
    has_valid_trends: bool = False
    debt_coverage_valid: bool = False
    category_flags: Dict[str, bool] = field(default_factory=dict)

    @property
    def overall(self) -> bool:
        return all((
            self.has_income_data,
            self.has_balance_data,
            self.has_valid_ratios,
            self.has_valid_trends,
        ))

    def sections_to_hide(self) -> List[str]:
        """Report sections a presentation layer should suppress."""
        hidden: List[str] = []
        if not self.has_income_data:
            hidden.extend(["income-trends", "profitability-trends"])
        if not self.has_balance_data:
            hidden.extend(["liquidity-analysis", "capital-structure"])
        if not self.has_valid_ratios:
            hidden.append("key-metrics-dashboard")
        if not self.has_valid_trends:
            hidden.append("trend-charts")
        if not self.debt_coverage_valid:
            hidden.append("debt-coverage")
        return hidden


@dataclass
class HealthAssessment:
    """Latest-period ratings across four credit dimensions."""
    profitability: Rating
    liquidity: Rating
    solvency: Rating
    efficiency: Rating
    overall: Rating
    score: int
    checks: Dict[str, bool] = field(default_factory=dict)


# =============================================================================
# Result
# =============================================================================

@dataclass
class ExtractionResult:
    """
    Everything the engine returns for one statement (or a combined pair).

    extracted is False whenever any core category was filled from the
    fallback dataset; fallback_categories names those categories.
    """
    years: List[int]
    layout_mode: LayoutMode
    series: Dict[str, MetricSeries]
    ratios: Dict[str, List[Optional[float]]]
    trends: Dict[str, TrendResult]
    validation: ValidationContext
    statement_type: StatementType = StatementType.UNKNOWN
    assessment: Optional[HealthAssessment] = None
    row_count: int = 0

    @property
    def fallback_categories(self) -> List[str]:
        return [name for name, s in self.series.items() if s.source == SeriesSource.FALLBACK]

    @property
    def extracted(self) -> bool:
        return not self.fallback_categories

    def values(self, category: str) -> List[float]:
        series = self.series.get(category)
        return list(series.values) if series else [0.0] * len(self.years)

    def to_response(self):
        """Build the pydantic response model for collaborators."""
        from agcredit.schemas.analysis import AnalysisResponse

        return AnalysisResponse.from_result(self)
