"""
Credit health assessment from latest-period ratios.

Rates profitability, liquidity, solvency and efficiency and scores five
threshold checks into an overall rating. Narrative text is produced
elsewhere; this module only rates.
"""

from typing import Dict, Mapping, Optional, Sequence

import structlog

from agcredit.engine.ratios import (
    ASSET_TURNOVER,
    CURRENT_RATIO,
    DEBT_SERVICE_COVERAGE,
    EQUITY_RATIO,
    RETURN_ON_ASSETS,
    RETURN_ON_EQUITY,
    WORKING_CAPITAL,
)
from agcredit.models import HealthAssessment, Rating

logger = structlog.get_logger(__name__)


class HealthAssessor:
    """Threshold-based rater for the most recent period."""

    STRONG_OVERALL_SCORE = 4
    MIXED_OVERALL_SCORE = 2

    def assess(self, ratios: Mapping[str, Sequence[Optional[float]]]) -> HealthAssessment:
        """
        Rate the latest period.

        Args:
            ratios: Ratio name to per-year values.

        Returns:
            HealthAssessment; a missing ratio is read as 0.
        """
        roa = self._latest(ratios, RETURN_ON_ASSETS)
        roe = self._latest(ratios, RETURN_ON_EQUITY)
        cr = self._latest(ratios, CURRENT_RATIO)
        wc = self._latest(ratios, WORKING_CAPITAL)
        er = self._latest(ratios, EQUITY_RATIO)
        dscr = self._latest(ratios, DEBT_SERVICE_COVERAGE)
        at = self._latest(ratios, ASSET_TURNOVER)

        checks: Dict[str, bool] = {
            RETURN_ON_ASSETS: roa >= 3,
            RETURN_ON_EQUITY: roe >= 5,
            CURRENT_RATIO: cr >= 1.5,
            EQUITY_RATIO: er >= 40,
            DEBT_SERVICE_COVERAGE: dscr >= 1.1,
        }
        score = sum(checks.values())

        if score >= self.STRONG_OVERALL_SCORE:
            overall = Rating.STRONG
        elif score >= self.MIXED_OVERALL_SCORE:
            overall = Rating.MIXED
        else:
            overall = Rating.WEAK

        assessment = HealthAssessment(
            profitability=self.rate_profitability(roa, roe),
            liquidity=self.rate_liquidity(cr, wc),
            solvency=self.rate_solvency(er, dscr),
            efficiency=self.rate_efficiency(at),
            overall=overall,
            score=score,
            checks=checks,
        )
        logger.debug("Health assessed", overall=overall.value, score=score)
        return assessment

    @staticmethod
    def rate_profitability(roa: float, roe: float) -> Rating:
        if roa >= 5 and roe >= 10:
            return Rating.STRONG
        if roa >= 3 and roe >= 5:
            return Rating.ADEQUATE
        return Rating.WEAK

    @staticmethod
    def rate_liquidity(current_ratio: float, working_capital: float) -> Rating:
        if current_ratio >= 2 and working_capital > 0:
            return Rating.STRONG
        if current_ratio >= 1.5 and working_capital > 0:
            return Rating.ADEQUATE
        return Rating.WEAK

    @staticmethod
    def rate_solvency(equity_ratio: float, dscr: float) -> Rating:
        if equity_ratio >= 60 and dscr >= 1.5:
            return Rating.STRONG
        if equity_ratio >= 40 and dscr >= 1.1:
            return Rating.ADEQUATE
        return Rating.WEAK

    @staticmethod
    def rate_efficiency(asset_turnover: float) -> Rating:
        if asset_turnover >= 0.7:
            return Rating.STRONG
        if asset_turnover >= 0.5:
            return Rating.ADEQUATE
        return Rating.WEAK

    @staticmethod
    def _latest(ratios: Mapping[str, Sequence[Optional[float]]], name: str) -> float:
        values = ratios.get(name) or []
        if not values or values[-1] is None:
            return 0.0
        return float(values[-1])


def get_health_assessor() -> HealthAssessor:
    """Get HealthAssessor instance."""
    return HealthAssessor()
