"""
Metric assembly for the credit statement engine.

Builds one series per category aligned to the detected years, applying the
fallback policy for core categories with no signal and deriving the
supplementary categories that can be computed from extracted data.
"""

from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from agcredit.engine.categories import (
    CATEGORIES,
    FALLBACK_DATASET_LABEL,
    NET_FARM_INCOME,
    NET_INCOME,
    TOTAL_ASSETS,
    TOTAL_EQUITY,
    TOTAL_LIABILITIES,
    fallback_series,
)
from agcredit.models import MetricSeries, SeriesSource
from agcredit.services.keyword_matcher import RowMatch

logger = structlog.get_logger(__name__)


class MetricAssembler:
    """
    Assembler for per-category metric series.

    Invariant: every series has exactly len(years) values. Unaligned
    numbers are taken in row order and right-padded with 0; aligned values
    keep their year slot and empty slots become 0.
    """

    def assemble(
        self,
        matches: Mapping[str, Optional[RowMatch]],
        years: Sequence[int],
    ) -> Dict[str, MetricSeries]:
        """
        Assemble series for every known category.

        Args:
            matches: Category to authoritative RowMatch (or None).
            years: Detected YearSet, ascending.

        Returns:
            Category name to MetricSeries, in category definition order.
        """
        length = len(years)
        series: Dict[str, MetricSeries] = {}

        for spec in CATEGORIES:
            match = matches.get(spec.name)
            if match is not None:
                series[spec.name] = MetricSeries(
                    category=spec.name,
                    values=self.fit(match.values, length, aligned=match.aligned),
                    source=SeriesSource.EXTRACTED,
                    row_index=match.row_index,
                    label=match.label,
                )
            elif spec.core:
                series[spec.name] = self.fallback(spec.name, length)
            else:
                series[spec.name] = self.missing(spec.name, length)

        self.derive(series)

        fallback = [n for n, s in series.items() if s.source == SeriesSource.FALLBACK]
        if fallback:
            logger.warning(
                "Fallback dataset substituted",
                categories=fallback,
                label=FALLBACK_DATASET_LABEL,
            )
        return series

    @staticmethod
    def fit(values: Sequence[Optional[float]], length: int, aligned: bool = False) -> List[float]:
        """Size values to length: keep order, right-pad with 0, never left-pad."""
        if aligned:
            fitted = [v if v is not None else 0.0 for v in list(values)[:length]]
        else:
            fitted = [v for v in values if v is not None][:length]
        fitted.extend([0.0] * (length - len(fitted)))
        return fitted

    @staticmethod
    def fallback(category: str, length: int) -> MetricSeries:
        return MetricSeries(
            category=category,
            values=fallback_series(category, length) or [0.0] * length,
            source=SeriesSource.FALLBACK,
            label=FALLBACK_DATASET_LABEL,
        )

    @staticmethod
    def missing(category: str, length: int) -> MetricSeries:
        return MetricSeries(
            category=category,
            values=[0.0] * length,
            source=SeriesSource.MISSING,
        )

    def derive(self, series: Dict[str, MetricSeries]) -> None:
        """Fill derivable supplementary categories from extracted series."""
        liabilities = series.get(TOTAL_LIABILITIES)
        assets, equity = series.get(TOTAL_ASSETS), series.get(TOTAL_EQUITY)
        if (
            liabilities is not None
            and liabilities.source == SeriesSource.MISSING
            and assets is not None and assets.source == SeriesSource.EXTRACTED
            and equity is not None and equity.source == SeriesSource.EXTRACTED
        ):
            series[TOTAL_LIABILITIES] = MetricSeries(
                category=TOTAL_LIABILITIES,
                values=[a - e for a, e in zip(assets.values, equity.values)],
                source=SeriesSource.DERIVED,
                label="Total assets less equity",
            )

        farm_income = series.get(NET_FARM_INCOME)
        net_income = series.get(NET_INCOME)
        if (
            farm_income is not None
            and farm_income.source == SeriesSource.MISSING
            and net_income is not None and net_income.source == SeriesSource.EXTRACTED
        ):
            series[NET_FARM_INCOME] = MetricSeries(
                category=NET_FARM_INCOME,
                values=list(net_income.values),
                source=SeriesSource.DERIVED,
                label="Net income",
            )


def get_metric_assembler() -> MetricAssembler:
    """Get MetricAssembler instance."""
    return MetricAssembler()
