"""
Validation context builder.

Reports which parts of a result are backed by real data. Fallback series
are never treated as evidence; the flags are advisory and never block a
result from being returned.
"""

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from agcredit.engine.categories import (
    CURRENT_ASSETS,
    CURRENT_LIABILITIES,
    INTEREST_PAYMENTS,
    NET_INCOME,
    PRINCIPAL_PAYMENTS,
    REVENUE,
    TERM_DEBT,
    TOTAL_ASSETS,
    TOTAL_EQUITY,
)
from agcredit.engine.ratios import CURRENT_RATIO, EQUITY_RATIO
from agcredit.models import MetricSeries, ValidationContext, is_valid_value

logger = structlog.get_logger(__name__)

# ratio -> categories that must be real data for the ratio to count
RATIO_INPUTS: Dict[str, Tuple[str, ...]] = {
    CURRENT_RATIO: (CURRENT_ASSETS, CURRENT_LIABILITIES),
    EQUITY_RATIO: (TOTAL_EQUITY, TOTAL_ASSETS),
}


class ValidationContextBuilder:
    """Builder for ValidationContext flags from assembled series and ratios."""

    def build(
        self,
        series: Mapping[str, MetricSeries],
        ratios: Mapping[str, Sequence[Optional[float]]],
        years: Sequence[int],
    ) -> ValidationContext:
        """
        Build the validation context.

        Args:
            series: Category name to MetricSeries.
            ratios: Ratio name to per-year values.
            years: Detected YearSet.

        Returns:
            ValidationContext with advisory flags.
        """
        context = ValidationContext(
            has_income_data=self._latest_valid(series, NET_INCOME)
            or self._latest_valid(series, REVENUE),
            has_balance_data=self._latest_valid(series, TOTAL_ASSETS)
            or self._latest_valid(series, TOTAL_EQUITY),
            has_valid_ratios=self._ratio_valid(series, ratios, CURRENT_RATIO)
            or self._ratio_valid(series, ratios, EQUITY_RATIO),
            has_valid_trends=len(years) >= 2 and (
                self._valid_points(series, NET_INCOME) >= 2
                or self._valid_points(series, TOTAL_ASSETS) >= 2
            ),
            debt_coverage_valid=self._latest_valid(series, NET_INCOME) and any(
                self._latest_valid(series, c)
                for c in (PRINCIPAL_PAYMENTS, INTEREST_PAYMENTS, TERM_DEBT)
            ),
            category_flags={name: self._latest_valid(series, name) for name in series},
        )

        logger.debug(
            "Validation context built",
            overall=context.overall,
            hidden=context.sections_to_hide(),
        )
        return context

    @staticmethod
    def _real(series: Mapping[str, MetricSeries], category: str) -> Optional[MetricSeries]:
        item = series.get(category)
        if item is None or not item.extracted:
            return None
        return item

    def _latest_valid(self, series: Mapping[str, MetricSeries], category: str) -> bool:
        item = self._real(series, category)
        return item is not None and is_valid_value(item.latest)

    def _valid_points(self, series: Mapping[str, MetricSeries], category: str) -> int:
        item = self._real(series, category)
        if item is None:
            return 0
        return sum(1 for v in item.values if is_valid_value(v))

    def _ratio_valid(
        self,
        series: Mapping[str, MetricSeries],
        ratios: Mapping[str, Sequence[Optional[float]]],
        name: str,
    ) -> bool:
        if any(self._real(series, c) is None for c in RATIO_INPUTS[name]):
            return False
        values: List[Optional[float]] = list(ratios.get(name) or [])
        return bool(values) and is_valid_value(values[-1])


def get_validation_builder() -> ValidationContextBuilder:
    """Get ValidationContextBuilder instance."""
    return ValidationContextBuilder()
