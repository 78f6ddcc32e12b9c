"""
Unit tests for the trend classifier.

Tests direction labels, the stable threshold and lower-is-better inversion.
"""
import pytest

from agcredit.models import TrendLabel
from agcredit.services.validators import TrendClassifier


class TestTrendClassifier:
    """Tests for TrendClassifier class."""

    @pytest.fixture
    def classifier(self) -> TrendClassifier:
        return TrendClassifier()

    def test_improving(self, classifier):
        """Test an 8% rise is Improving."""
        result = classifier.analyze([100000, 108000])

        assert result.label == TrendLabel.IMPROVING
        assert result.change_percent == 8.0

    def test_small_change_is_stable(self, classifier):
        """Test a change under 2% is Stable."""
        result = classifier.analyze([100000, 100900])

        assert result.label == TrendLabel.STABLE
        assert result.change_percent == 0.9

    def test_declining(self, classifier):
        """Test a drop is Declining."""
        assert classifier.classify([200, 150]) == TrendLabel.DECLINING

    def test_lower_is_better_inverts(self, classifier):
        """Test rising liabilities are Declining when lower is better."""
        assert classifier.classify([100, 120], lower_is_better=True) == TrendLabel.DECLINING
        assert classifier.classify([120, 100], lower_is_better=True) == TrendLabel.IMPROVING

    def test_only_last_two_points_count(self, classifier):
        """Test earlier history does not affect the label."""
        assert classifier.classify([1, 1000, 1010]) == TrendLabel.STABLE

    def test_negative_previous_uses_absolute_base(self, classifier):
        """Test change is measured against the magnitude of the previous value."""
        result = classifier.analyze([-100, -50])

        assert result.label == TrendLabel.IMPROVING
        assert result.change_percent == 50.0

    def test_change_percent_rounds_half_up(self, classifier):
        """Test a 6.25% change is reported as 6.3."""
        result = classifier.analyze([16, 17])

        assert result.label == TrendLabel.IMPROVING
        assert result.change_percent == 6.3

    @pytest.mark.parametrize("values", [[], [100], [0, 100], [None, 100], [100, None]])
    def test_degenerate_series_are_stable(self, classifier, values):
        """Test short series, missing points and zero base are Stable."""
        result = classifier.analyze(values)

        assert result.label == TrendLabel.STABLE
        assert result.change_percent is None

    def test_custom_threshold(self):
        """Test the stable band follows the configured threshold."""
        classifier = TrendClassifier(stable_threshold_pct=10.0)

        assert classifier.classify([100, 108]) == TrendLabel.STABLE

    def test_analyze_many_looks_up_direction_by_name(self, classifier):
        """Test lower-is-better is supplied per name, never inferred."""
        results = classifier.analyze_many(
            {"revenue": [100, 120], "total_liabilities": [100, 120]},
            lower_is_better={"total_liabilities"},
        )

        assert results["revenue"].label == TrendLabel.IMPROVING
        assert results["total_liabilities"].label == TrendLabel.DECLINING
        assert results["total_liabilities"].lower_is_better is True
