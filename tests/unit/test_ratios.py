"""
Unit tests for the ratio calculator.
"""
import math

import pytest

from agcredit.engine import ratios
from agcredit.engine.ratios import RatioCalculator, round_half_up
from agcredit.models import MetricSeries, SeriesSource


def series(category, values, source=SeriesSource.EXTRACTED):
    return MetricSeries(category=category, values=list(values), source=source)


class TestRatioFunctions:
    """Tests for the pure ratio functions."""

    def test_current_ratio(self):
        """Test CA 150000 / CL 100000."""
        assert ratios.current_ratio(150000, 100000) == 1.5

    def test_equity_ratio(self):
        """Test TE 600000 / TA 1000000 as percent."""
        assert ratios.equity_ratio(600000, 1000000) == 60.0

    def test_working_capital_is_integer(self):
        """Test working capital rounds to whole units."""
        result = ratios.working_capital(150000.4, 100000)

        assert result == 50000
        assert isinstance(result, int)

    def test_working_capital_can_be_negative(self):
        """Test working capital is a difference, not a ratio."""
        assert ratios.working_capital(100, 250) == -150

    def test_percent_ratios(self):
        """Test percent ratios are rounded to 1 dp."""
        assert ratios.return_on_assets(450000, 8900000) == 5.1
        assert ratios.return_on_equity(450000, 7300000) == 6.2
        assert ratios.net_profit_margin(450000, 2100000) == 21.4
        assert ratios.operating_profit_margin(450000, 2100000) == 21.4

    def test_two_place_ratios(self):
        """Test multiples are rounded to 2 dp."""
        assert ratios.debt_to_equity(1600000, 7300000) == 0.22
        assert ratios.asset_turnover(2100000, 8900000) == 0.24
        assert ratios.financial_leverage(8900000, 7300000) == 1.22

    def test_debt_service_coverage_uses_proxy(self):
        """Test DSCR against 10% of current liabilities."""
        assert ratios.debt_service_coverage(450000, 1400000) == 3.21
        assert ratios.debt_service_coverage(450000, 1400000, proxy_rate=0.2) == 1.61

    def test_interest_coverage_uses_proxy(self):
        """Test interest coverage against 5% of total liabilities."""
        assert ratios.interest_coverage(450000, 1600000) == 6.63

    def test_half_up_rounding(self):
        """Test halves round away from zero on the decimal representation."""
        assert round_half_up(2.675, 2) == 2.68
        assert round_half_up(0.125, 2) == 0.13
        assert round_half_up(-1.5, 0) == -2.0


class TestDivisionSafety:
    """Tests for degenerate denominators."""

    @pytest.mark.parametrize("denominator", [0, -5])
    def test_non_positive_denominator_gives_zero(self, denominator):
        """Test denominators of zero or less give 0."""
        assert ratios.current_ratio(100, denominator) == 0
        assert ratios.equity_ratio(100, denominator) == 0
        assert ratios.debt_to_equity(100, denominator) == 0
        assert ratios.return_on_assets(100, denominator) == 0
        assert ratios.return_on_equity(100, denominator) == 0
        assert ratios.asset_turnover(100, denominator) == 0
        assert ratios.debt_service_coverage(100, denominator) == 0
        assert ratios.operating_profit_margin(100, denominator) == 0
        assert ratios.net_profit_margin(100, denominator) == 0
        assert ratios.interest_coverage(100, denominator) == 0
        assert ratios.financial_leverage(100, denominator) == 0

    def test_tiny_denominator_is_finite(self):
        """Test a tiny positive denominator stays finite."""
        result = ratios.current_ratio(100, 1e-9)

        assert math.isfinite(result)
        assert result == 1e11

    def test_non_finite_inputs_give_zero(self):
        """Test NaN and infinity never propagate."""
        assert ratios.current_ratio(float("nan"), 100) == 0
        assert ratios.current_ratio(100, float("inf")) == 0
        assert ratios.working_capital(float("nan"), 1) == 0


class TestDebtCoverage:
    """Tests for coverage from reported debt service."""

    def test_reported_figures(self):
        """Test (NI + depreciation + interest) / (principal + interest)."""
        assert ratios.debt_coverage(450000, 60000, 45000, 120000) == 3.36

    def test_not_applicable_without_debt_service(self):
        """Test None when no principal or interest is reported."""
        assert ratios.debt_coverage(450000, 60000, 0, 0) is None

    def test_not_applicable_for_negative_service(self):
        """Test None when total debt service is not positive."""
        assert ratios.debt_coverage(450000, 0, 0, -10) is None


class TestRatioCalculator:
    """Tests for RatioCalculator class."""

    @pytest.fixture
    def full_series(self):
        return {
            "revenue": series("revenue", [1950000, 2100000]),
            "net_income": series("net_income", [425000, 450000]),
            "current_assets": series("current_assets", [2650000, 2800000]),
            "current_liabilities": series("current_liabilities", [1382000, 1400000]),
            "total_assets": series("total_assets", [8500000, 8900000]),
            "total_equity": series("total_equity", [7100000, 7300000]),
            "total_liabilities": series("total_liabilities", [1400000, 1600000], SeriesSource.DERIVED),
            "net_farm_income": series("net_farm_income", [425000, 450000], SeriesSource.DERIVED),
            "principal_payments": series("principal_payments", [0, 0], SeriesSource.MISSING),
            "interest_payments": series("interest_payments", [0, 0], SeriesSource.MISSING),
            "depreciation": series("depreciation", [0, 0], SeriesSource.MISSING),
        }

    def test_one_value_per_year(self, full_series):
        """Test every ratio has one value per period."""
        result = RatioCalculator().compute(full_series, 2)

        assert all(len(values) == 2 for values in result.values())
        assert result["current_ratio"] == [1.92, 2.0]
        assert result["working_capital"] == [1268000, 1400000]
        assert result["equity_ratio"][-1] == 82.0
        assert result["debt_service_coverage"][-1] == 3.21
        assert result["interest_coverage"][-1] == 6.63

    def test_missing_input_gives_none(self, full_series):
        """Test ratios over a MISSING category are not applicable."""
        full_series["total_liabilities"] = series("total_liabilities", [0, 0], SeriesSource.MISSING)

        result = RatioCalculator().compute(full_series, 2)

        assert result["debt_to_equity"] == [None, None]
        assert result["interest_coverage"] == [None, None]
        assert result["current_ratio"] == [1.92, 2.0]

    def test_debt_coverage_none_without_figures(self, full_series):
        """Test debt coverage is None when debt service is missing."""
        result = RatioCalculator().compute(full_series, 2)

        assert result["debt_coverage"] == [None, None]

    def test_prefer_reported_debt_service(self, full_series):
        """Test reported principal and interest replace the proxies."""
        full_series["principal_payments"] = series("principal_payments", [0, 120000])
        full_series["interest_payments"] = series("interest_payments", [0, 45000])
        full_series["depreciation"] = series("depreciation", [0, 60000])

        proxy = RatioCalculator().compute(full_series, 2)
        reported = RatioCalculator(prefer_reported_debt_service=True).compute(full_series, 2)

        assert proxy["debt_service_coverage"] == [3.08, 3.21]
        assert reported["debt_service_coverage"] == [3.08, 3.36]
        assert reported["interest_coverage"] == [proxy["interest_coverage"][0], 11.0]

    def test_custom_proxy_rates(self, full_series):
        """Test proxy rates come from the calculator options."""
        result = RatioCalculator(debt_service_proxy_rate=0.2, interest_proxy_rate=0.1).compute(full_series, 2)

        assert result["debt_service_coverage"][-1] == 1.61
        assert result["interest_coverage"][-1] == 3.81

    def test_reported_debt_service_needs_farm_income(self, full_series):
        """Test reported figures do not fill DSCR when net farm income is missing."""
        full_series["net_farm_income"] = series("net_farm_income", [0, 0], SeriesSource.MISSING)
        full_series["principal_payments"] = series("principal_payments", [100000, 120000])
        full_series["interest_payments"] = series("interest_payments", [40000, 45000])

        result = RatioCalculator(prefer_reported_debt_service=True).compute(full_series, 2)

        assert result["debt_service_coverage"] == [None, None]
        assert result["interest_coverage"] == [None, None]
