"""
Tests for the single-statement engine pipeline.
"""
import json

import pytest

from agcredit.engine import EngineOptions, run_engine
from agcredit.engine.categories import CATEGORIES, FALLBACK_DATASET_LABEL
from agcredit.exceptions import InvalidOptionsError, MissingContentError
from agcredit.models import LayoutMode, Rating, SeriesSource, StatementType, TrendLabel


class TestAlignedStatement:
    """Tests for a statement with a year header row."""

    @pytest.fixture
    def result(self, statement_json, current_year):
        return run_engine(statement_json, current_year=current_year)

    def test_years_and_mode(self, result):
        """Test years come from the header row."""
        assert result.years == [2022, 2023, 2024]
        assert result.layout_mode == LayoutMode.ALIGNED

    def test_series(self, result):
        """Test core categories are extracted in year order."""
        assert result.extracted is True
        assert result.fallback_categories == []
        assert result.values("revenue") == [1800000.0, 1950000.0, 2100000.0]
        assert result.values("total_assets") == [8200000.0, 8500000.0, 8900000.0]
        assert result.series["revenue"].row_index == 1

    def test_derived_series(self, result):
        """Test liabilities and net farm income are derived."""
        assert result.series["total_liabilities"].source == SeriesSource.DERIVED
        assert result.values("total_liabilities") == [1400000.0, 1400000.0, 1600000.0]
        assert result.series["net_farm_income"].source == SeriesSource.DERIVED
        assert result.series["depreciation"].source == SeriesSource.MISSING

    def test_ratios(self, result):
        """Test latest-period ratios."""
        assert result.ratios["current_ratio"] == [1.99, 1.92, 2.0]
        assert result.ratios["working_capital"][-1] == 1400000
        assert result.ratios["equity_ratio"][-1] == 82.0
        assert result.ratios["return_on_assets"][-1] == 5.1
        assert result.ratios["debt_service_coverage"][-1] == 3.21
        assert result.ratios["interest_coverage"][-1] == 6.63
        assert result.ratios["debt_coverage"] == [None, None, None]

    def test_trends(self, result):
        """Test trend labels use the default lower-is-better set."""
        assert result.trends["revenue"].label == TrendLabel.IMPROVING
        assert result.trends["revenue"].change_percent == 7.7
        assert result.trends["current_liabilities"].label == TrendLabel.STABLE
        assert result.trends["total_liabilities"].label == TrendLabel.DECLINING

    def test_validation(self, result):
        """Test validation flags with real data but no debt service."""
        assert result.validation.overall is True
        assert result.validation.debt_coverage_valid is False
        assert result.validation.sections_to_hide() == ["debt-coverage"]

    def test_assessment_and_type(self, result):
        """Test assessment ratings and detected statement type."""
        assert result.assessment.overall == Rating.STRONG
        assert result.assessment.liquidity == Rating.STRONG
        assert result.assessment.efficiency == Rating.WEAK
        assert result.statement_type == StatementType.BALANCE_SHEET


class TestUnalignedStatement:
    """Tests for freeform text without year headers."""

    @pytest.fixture
    def result(self, freeform_text, current_year):
        return run_engine(freeform_text, current_year=current_year)

    def test_default_years(self, result):
        """Test trailing years are used when none are found."""
        assert result.years == [2022, 2023, 2024]
        assert result.layout_mode == LayoutMode.UNALIGNED

    def test_positive_filter_and_padding(self, result):
        """Test negatives are dropped and short rows right-padded."""
        assert result.values("revenue") == [1800000.0, 1950000.0, 2100000.0]
        assert result.values("net_income") == [380000.0, 425000.0, 0.0]

    def test_fallback_distinguishable(self, result):
        """Test missing core categories are flagged as fallback."""
        assert result.extracted is False
        assert result.fallback_categories == ["current_assets", "current_liabilities", "total_equity"]
        assert result.series["current_assets"].label == FALLBACK_DATASET_LABEL
        assert result.series["total_liabilities"].source == SeriesSource.MISSING
        assert result.validation.has_valid_ratios is False


class TestEngineProperties:
    """Tests for engine-wide guarantees."""

    def test_year_label_example(self, current_year):
        """Test year cells that sit over the label column."""
        content = json.dumps([
            ["Year 2022", "Year 2023", "Year 2024"],
            ["Revenue", "100", "200", "300"],
        ])

        result = run_engine(content, current_year=current_year)

        assert result.years == [2022, 2023, 2024]
        assert result.values("revenue") == [100.0, 200.0, 300.0]
        assert result.extracted is False

    def test_idempotent(self, statement_json, current_year):
        """Test identical content gives identical serialized output."""
        first = run_engine(statement_json, current_year=current_year).to_response()
        second = run_engine(statement_json, current_year=current_year).to_response()

        assert first.model_dump_json() == second.model_dump_json()

    @pytest.mark.parametrize("period_count", [1, 2, 3, 5])
    def test_length_invariant(self, statement_json, freeform_text, current_year, period_count):
        """Test every series and ratio has one value per year."""
        for content in (statement_json, freeform_text):
            result = run_engine(content, period_count=period_count, current_year=current_year)

            assert len(result.series) == len(CATEGORIES)
            for series in result.series.values():
                assert len(series.values) == len(result.years)
            for values in result.ratios.values():
                assert len(values) == len(result.years)

    def test_first_match_wins(self, current_year):
        """Test duplicate Revenue rows keep the first."""
        content = json.dumps([
            ["", "2023", "2024"],
            ["Revenue", "100", "200"],
            ["Revenue", "900", "900"],
        ])

        result = run_engine(content, current_year=current_year)

        assert result.values("revenue") == [100.0, 200.0]

    def test_keyword_priority_policy(self, current_year):
        """Test the keyword priority switch changes which row is used."""
        content = json.dumps([
            ["", "2023", "2024"],
            ["Total Current Assets", "100", "200"],
            ["Total Assets", "1000", "1100"],
        ])
        options = EngineOptions(keyword_match_policy="keyword_priority")

        default = run_engine(content, current_year=current_year)
        priority = run_engine(content, options=options, current_year=current_year)

        assert default.values("total_assets") == [100.0, 200.0]
        assert priority.values("total_assets") == [1000.0, 1100.0]

    def test_lower_is_better_override(self, statement_json, current_year):
        """Test caller-supplied direction replaces the default set."""
        result = run_engine(statement_json, lower_is_better={"revenue"}, current_year=current_year)

        assert result.trends["revenue"].label == TrendLabel.DECLINING
        assert result.trends["total_liabilities"].label == TrendLabel.IMPROVING

    def test_all_zero_balance_data(self, current_year):
        """Test zero balance figures never count as data."""
        content = json.dumps([
            ["", "2023", "2024"],
            ["Total Assets", "0", "0"],
            ["Total Equity", "0", "0"],
            ["Current Assets", "0", "0"],
            ["Current Liabilities", "0", "0"],
            ["Revenue", "100", "120"],
            ["Net Income", "10", "12"],
        ])

        result = run_engine(content, current_year=current_year)

        assert result.validation.has_balance_data is False
        assert result.validation.has_valid_ratios is False
        assert result.validation.has_income_data is True
        assert result.ratios["current_ratio"] == [0.0, 0.0]

    def test_malformed_content_degrades(self, current_year):
        """Test unreadable content yields the fallback result, not an error."""
        result = run_engine(object(), current_year=current_year)

        assert result.row_count == 0
        assert result.extracted is False
        assert result.years == [2022, 2023, 2024]

    def test_missing_content_fails_fast(self):
        """Test None content raises."""
        with pytest.raises(MissingContentError):
            run_engine(None)

    def test_invalid_period_count(self, statement_json):
        """Test invalid options raise before extraction."""
        with pytest.raises(InvalidOptionsError):
            run_engine(statement_json, period_count=0)

    def test_response_model(self, freeform_text, current_year):
        """Test the pydantic response keeps provenance."""
        response = run_engine(freeform_text, current_year=current_year).to_response()

        assert response.extracted is False
        assert response.series["revenue"].source == SeriesSource.EXTRACTED
        assert response.series["total_equity"].source == SeriesSource.FALLBACK
        assert "trend-charts" not in response.validation.sections_to_hide
        data = json.loads(response.model_dump_json())
        assert data["series"]["total_equity"]["source"] == "fallback"
