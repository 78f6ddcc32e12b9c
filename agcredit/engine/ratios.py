"""
Ratio calculator for the credit statement engine.

Pure, deterministic ratio functions plus a calculator that applies them
year by year. A denominator of zero or less gives 0; no function raises.

Debt service and interest expense are rarely broken out in uploaded farm
statements, so two proxies stand in for them:
    debt service     = current liabilities x DEBT_SERVICE_PROXY_RATE
    interest expense = total liabilities   x INTEREST_PROXY_RATE
"""

import math
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from agcredit.engine.categories import (
    CURRENT_ASSETS,
    CURRENT_LIABILITIES,
    DEPRECIATION,
    INTEREST_PAYMENTS,
    NET_FARM_INCOME,
    NET_INCOME,
    PRINCIPAL_PAYMENTS,
    REVENUE,
    TOTAL_ASSETS,
    TOTAL_EQUITY,
    TOTAL_LIABILITIES,
)
from agcredit.models import MetricSeries, SeriesSource, is_valid_value
from agcredit.services.numeric_parser import round_half_up

logger = structlog.get_logger(__name__)

DEBT_SERVICE_PROXY_RATE = 0.10
INTEREST_PROXY_RATE = 0.05

# Ratio names
CURRENT_RATIO = "current_ratio"
WORKING_CAPITAL = "working_capital"
EQUITY_RATIO = "equity_ratio"
DEBT_TO_EQUITY = "debt_to_equity"
RETURN_ON_ASSETS = "return_on_assets"
RETURN_ON_EQUITY = "return_on_equity"
ASSET_TURNOVER = "asset_turnover"
DEBT_SERVICE_COVERAGE = "debt_service_coverage"
OPERATING_PROFIT_MARGIN = "operating_profit_margin"
NET_PROFIT_MARGIN = "net_profit_margin"
INTEREST_COVERAGE = "interest_coverage"
FINANCIAL_LEVERAGE = "financial_leverage"
DEBT_COVERAGE = "debt_coverage"


# =============================================================================
# Numeric helpers
# =============================================================================

def _finite(*values: Optional[float]) -> bool:
    return all(v is not None and math.isfinite(v) for v in values)


def _ratio(numerator: float, denominator: float, places: int, scale: float = 1.0) -> float:
    if not _finite(numerator, denominator) or denominator <= 0:
        return 0.0
    result = numerator / denominator * scale
    if not math.isfinite(result):
        return 0.0
    return round_half_up(result, places)


# =============================================================================
# Ratio functions
# =============================================================================

def current_ratio(current_assets: float, current_liabilities: float) -> float:
    """Current Assets / Current Liabilities, 2 dp."""
    return _ratio(current_assets, current_liabilities, 2)


def working_capital(current_assets: float, current_liabilities: float) -> int:
    """Current Assets - Current Liabilities, whole currency units."""
    if not _finite(current_assets, current_liabilities):
        return 0
    return int(round_half_up(current_assets - current_liabilities, 0))


def equity_ratio(total_equity: float, total_assets: float) -> float:
    """Total Equity / Total Assets as a percent, 1 dp."""
    return _ratio(total_equity, total_assets, 1, scale=100.0)


def debt_to_equity(total_liabilities: float, total_equity: float) -> float:
    """Total Liabilities / Total Equity, 2 dp."""
    return _ratio(total_liabilities, total_equity, 2)


def return_on_assets(net_income: float, total_assets: float) -> float:
    """Net Income / Total Assets as a percent, 1 dp."""
    return _ratio(net_income, total_assets, 1, scale=100.0)


def return_on_equity(net_income: float, total_equity: float) -> float:
    """Net Income / Total Equity as a percent, 1 dp."""
    return _ratio(net_income, total_equity, 1, scale=100.0)


def asset_turnover(revenue: float, total_assets: float) -> float:
    """Revenue / Total Assets, 2 dp."""
    return _ratio(revenue, total_assets, 2)


def debt_service_coverage(
    net_farm_income: float,
    current_liabilities: float,
    proxy_rate: float = DEBT_SERVICE_PROXY_RATE,
) -> float:
    """Net Farm Income / (Current Liabilities x proxy rate), 2 dp."""
    if not _finite(current_liabilities, proxy_rate):
        return 0.0
    return _ratio(net_farm_income, current_liabilities * proxy_rate, 2)


def operating_profit_margin(net_farm_income: float, revenue: float) -> float:
    """Net Farm Income / Revenue as a percent, 1 dp."""
    return _ratio(net_farm_income, revenue, 1, scale=100.0)


def net_profit_margin(net_income: float, revenue: float) -> float:
    """Net Income / Revenue as a percent, 1 dp."""
    return _ratio(net_income, revenue, 1, scale=100.0)


def interest_coverage(
    net_farm_income: float,
    total_liabilities: float,
    proxy_rate: float = INTEREST_PROXY_RATE,
) -> float:
    """(Net Farm Income + estimated interest) / estimated interest, 2 dp."""
    if not _finite(net_farm_income, total_liabilities, proxy_rate):
        return 0.0
    interest = total_liabilities * proxy_rate
    if interest <= 0:
        return 0.0
    return _ratio(net_farm_income + interest, interest, 2)


def financial_leverage(total_assets: float, total_equity: float) -> float:
    """Total Assets / Total Equity, 2 dp."""
    return _ratio(total_assets, total_equity, 2)


def debt_coverage(
    net_income: float,
    depreciation: float = 0.0,
    interest: float = 0.0,
    principal: float = 0.0,
) -> Optional[float]:
    """
    Coverage from reported debt service figures.

    (Net Income + Depreciation + Interest) / (Principal + Interest), 2 dp.
    None when neither principal nor interest is reported or the total
    debt service is not positive.
    """
    if not (is_valid_value(principal) or is_valid_value(interest)):
        return None
    depreciation = depreciation if _finite(depreciation) else 0.0
    interest = interest if _finite(interest) else 0.0
    principal = principal if _finite(principal) else 0.0
    if not _finite(net_income):
        return None
    service = principal + interest
    if service <= 0:
        return None
    result = (net_income + depreciation + interest) / service
    return round_half_up(result, 2) if math.isfinite(result) else None


def reported_interest_coverage(net_farm_income: float, interest: float) -> Optional[float]:
    """(Net Farm Income + Interest) / Interest from a reported figure, 2 dp."""
    if not _finite(net_farm_income, interest) or interest <= 0:
        return None
    return _ratio(net_farm_income + interest, interest, 2)


# =============================================================================
# Calculator
# =============================================================================

RatioFn = Callable[..., float]

# name -> (function, input categories)
RATIO_DEFINITIONS: Dict[str, Tuple[RatioFn, Tuple[str, ...]]] = {
    CURRENT_RATIO: (current_ratio, (CURRENT_ASSETS, CURRENT_LIABILITIES)),
    WORKING_CAPITAL: (working_capital, (CURRENT_ASSETS, CURRENT_LIABILITIES)),
    EQUITY_RATIO: (equity_ratio, (TOTAL_EQUITY, TOTAL_ASSETS)),
    DEBT_TO_EQUITY: (debt_to_equity, (TOTAL_LIABILITIES, TOTAL_EQUITY)),
    RETURN_ON_ASSETS: (return_on_assets, (NET_INCOME, TOTAL_ASSETS)),
    RETURN_ON_EQUITY: (return_on_equity, (NET_INCOME, TOTAL_EQUITY)),
    ASSET_TURNOVER: (asset_turnover, (REVENUE, TOTAL_ASSETS)),
    DEBT_SERVICE_COVERAGE: (debt_service_coverage, (NET_FARM_INCOME, CURRENT_LIABILITIES)),
    OPERATING_PROFIT_MARGIN: (operating_profit_margin, (NET_FARM_INCOME, REVENUE)),
    NET_PROFIT_MARGIN: (net_profit_margin, (NET_INCOME, REVENUE)),
    INTEREST_COVERAGE: (interest_coverage, (NET_FARM_INCOME, TOTAL_LIABILITIES)),
    FINANCIAL_LEVERAGE: (financial_leverage, (TOTAL_ASSETS, TOTAL_EQUITY)),
}


class RatioCalculator:
    """
    Calculator producing one value per year for every ratio.

    A ratio whose input category had no signal at all (MISSING) is None
    for every year rather than a misleading zero.
    """

    def __init__(
        self,
        debt_service_proxy_rate: float = DEBT_SERVICE_PROXY_RATE,
        interest_proxy_rate: float = INTEREST_PROXY_RATE,
        prefer_reported_debt_service: bool = False,
    ):
        self.debt_service_proxy_rate = debt_service_proxy_rate
        self.interest_proxy_rate = interest_proxy_rate
        self.prefer_reported_debt_service = prefer_reported_debt_service

    def compute(
        self,
        series: Mapping[str, MetricSeries],
        length: int,
    ) -> Dict[str, List[Optional[float]]]:
        """
        Compute all ratio series.

        Args:
            series: Category name to MetricSeries.
            length: Number of periods (len of YearSet).

        Returns:
            Ratio name to list of values (None where not applicable).
        """
        ratios: Dict[str, List[Optional[float]]] = {}

        for name, (fn, inputs) in RATIO_DEFINITIONS.items():
            if any(self._missing(series, c) for c in inputs):
                ratios[name] = [None] * length
                continue
            columns = [self._values(series, c, length) for c in inputs]
            kwargs = self._proxy_kwargs(name)
            ratios[name] = [fn(*args, **kwargs) for args in zip(*columns)]

        ratios[DEBT_COVERAGE] = self._debt_coverage(series, length)

        if self.prefer_reported_debt_service:
            self._apply_reported(series, ratios, length)

        return ratios

    def _proxy_kwargs(self, name: str) -> Dict[str, float]:
        if name == DEBT_SERVICE_COVERAGE:
            return {"proxy_rate": self.debt_service_proxy_rate}
        if name == INTEREST_COVERAGE:
            return {"proxy_rate": self.interest_proxy_rate}
        return {}

    def _debt_coverage(self, series: Mapping[str, MetricSeries], length: int) -> List[Optional[float]]:
        net_income = self._values(series, NET_INCOME, length)
        depreciation = self._values(series, DEPRECIATION, length)
        interest = self._values(series, INTEREST_PAYMENTS, length)
        principal = self._values(series, PRINCIPAL_PAYMENTS, length)
        return [
            debt_coverage(ni, dep, intr, prin)
            for ni, dep, intr, prin in zip(net_income, depreciation, interest, principal)
        ]

    def _apply_reported(
        self,
        series: Mapping[str, MetricSeries],
        ratios: Dict[str, List[Optional[float]]],
        length: int,
    ) -> None:
        """Replace proxy-based years with reported-figure ratios where available."""
        if self._missing(series, NET_FARM_INCOME):
            return
        farm_income = self._values(series, NET_FARM_INCOME, length)
        depreciation = self._values(series, DEPRECIATION, length)
        interest = self._values(series, INTEREST_PAYMENTS, length)
        principal = self._values(series, PRINCIPAL_PAYMENTS, length)

        replaced = 0
        for i in range(length):
            dscr = debt_coverage(farm_income[i], depreciation[i], interest[i], principal[i])
            if dscr is not None:
                ratios[DEBT_SERVICE_COVERAGE][i] = dscr
                replaced += 1
            coverage = reported_interest_coverage(farm_income[i], interest[i])
            if coverage is not None:
                ratios[INTEREST_COVERAGE][i] = coverage

        if replaced:
            logger.debug("Reported debt service used", periods=replaced)

    @staticmethod
    def _missing(series: Mapping[str, MetricSeries], category: str) -> bool:
        item = series.get(category)
        return item is None or item.source == SeriesSource.MISSING

    @staticmethod
    def _values(series: Mapping[str, MetricSeries], category: str, length: int) -> Sequence[float]:
        item = series.get(category)
        if item is None or item.source == SeriesSource.MISSING:
            return [0.0] * length
        return item.values


def get_ratio_calculator(
    debt_service_proxy_rate: float = DEBT_SERVICE_PROXY_RATE,
    interest_proxy_rate: float = INTEREST_PROXY_RATE,
    prefer_reported_debt_service: bool = False,
) -> RatioCalculator:
    """Get RatioCalculator instance."""
    return RatioCalculator(
        debt_service_proxy_rate=debt_service_proxy_rate,
        interest_proxy_rate=interest_proxy_rate,
        prefer_reported_debt_service=prefer_reported_debt_service,
    )
