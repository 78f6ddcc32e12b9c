"""
Trend classifier for metric and ratio series.

Labels the last period-over-period change as Improving, Stable or Declining.
"""
import math
from typing import Collection, Dict, Mapping, Optional, Sequence

import structlog

from agcredit.models import TrendLabel, TrendResult
from agcredit.services.numeric_parser import round_half_up

logger = structlog.get_logger(__name__)


class TrendClassifier:
    """
    Classifier for the direction of a series.

    Rules:
    - Fewer than two points, a missing point, or a zero previous value is Stable
    - An absolute change below the threshold is Stable
    - Otherwise the sign of the change decides, inverted for metrics
      where lower values are better
    """

    STABLE_THRESHOLD_PCT = 2.0

    def __init__(self, stable_threshold_pct: float = STABLE_THRESHOLD_PCT):
        self.stable_threshold_pct = stable_threshold_pct

    def analyze(
        self,
        values: Sequence[Optional[float]],
        lower_is_better: bool = False,
    ) -> TrendResult:
        """
        Classify the last change of a series.

        Args:
            values: Series ordered oldest to most recent.
            lower_is_better: True for metrics where a decrease is good.

        Returns:
            TrendResult with the label and change percent (1 dp).
        """
        if not values or len(values) < 2:
            return TrendResult(TrendLabel.STABLE, None, lower_is_better)

        previous, last = values[-2], values[-1]
        if not _usable(previous) or not _usable(last) or previous == 0:
            return TrendResult(TrendLabel.STABLE, None, lower_is_better)

        change_pct = (last - previous) / abs(previous) * 100
        rounded = round_half_up(change_pct, 1)

        if abs(change_pct) < self.stable_threshold_pct:
            return TrendResult(TrendLabel.STABLE, rounded, lower_is_better)

        improving = (change_pct > 0) != lower_is_better
        label = TrendLabel.IMPROVING if improving else TrendLabel.DECLINING
        return TrendResult(label, rounded, lower_is_better)

    def classify(
        self,
        values: Sequence[Optional[float]],
        lower_is_better: bool = False,
    ) -> TrendLabel:
        """Return only the label."""
        return self.analyze(values, lower_is_better).label

    def analyze_many(
        self,
        series: Mapping[str, Sequence[Optional[float]]],
        lower_is_better: Collection[str] = (),
    ) -> Dict[str, TrendResult]:
        """Classify several named series; direction is looked up by name."""
        results = {
            name: self.analyze(values, name in lower_is_better)
            for name, values in series.items()
        }
        logger.debug(
            "Trends classified",
            improving=[n for n, r in results.items() if r.label == TrendLabel.IMPROVING],
            declining=[n for n, r in results.items() if r.label == TrendLabel.DECLINING],
        )
        return results


def _usable(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def get_trend_classifier(stable_threshold_pct: float = TrendClassifier.STABLE_THRESHOLD_PCT) -> TrendClassifier:
    """Get TrendClassifier instance."""
    return TrendClassifier(stable_threshold_pct=stable_threshold_pct)
