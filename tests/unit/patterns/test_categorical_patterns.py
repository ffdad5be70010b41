"""
Unit tests for CategoricalAnalyzer.

Tests the dominant, imbalance, rare and uniform insights derived from a
categorical column's frequency table.
"""

import pytest

from viz_advisor.patterns.categorical_analysis import CategoricalAnalyzer
from viz_advisor.profiler.column_profiler import ColumnProfiler
from viz_advisor.profiler.statistics_calculator import frequency_table


@pytest.fixture
def analyzer():
    """Create CategoricalAnalyzer instance."""
    return CategoricalAnalyzer()


def kinds(insights):
    return [insight.kind for insight in insights]


@pytest.mark.unit
class TestDeriveInsights:
    """Insights from frequency tables."""

    def test_dominant_category(self, analyzer):
        """['a','a','a','a','b'] yields a dominant-category insight at 80%."""
        insights = analyzer.derive_insights("c", frequency_table(["a", "a", "a", "a", "b"]))

        dominant = [i for i in insights if i.kind == "dominant"]
        assert len(dominant) == 1
        assert dominant[0].confidence == pytest.approx(0.8)
        assert "'a'" in dominant[0].description
        assert "80.0%" in dominant[0].description

    def test_imbalance(self, analyzer):
        """A top/bottom ratio above 10 is an imbalance."""
        values = ["big"] * 60 + ["small"] * 4 + ["tiny"] * 2
        insights = analyzer.derive_insights("size", frequency_table(values))

        imbalance = [i for i in insights if i.kind == "imbalance"]
        assert len(imbalance) == 1
        assert imbalance[0].confidence == pytest.approx(1.0)

    def test_imbalance_confidence_scales(self, analyzer):
        """Confidence is ratio / 20, capped at 1."""
        values = ["a"] * 12 + ["b"]
        insights = analyzer.derive_insights("c", frequency_table(values))

        imbalance = [i for i in insights if i.kind == "imbalance"][0]
        assert imbalance.confidence == pytest.approx(12 / 20)

    def test_rare_categories(self, analyzer):
        """Categories under 5% share are rare."""
        values = ["x"] * 40 + ["y"] * 40 + ["z"]
        insights = analyzer.derive_insights("c", frequency_table(values))

        rare = [i for i in insights if i.kind == "rare"]
        assert len(rare) == 1
        assert rare[0].confidence == pytest.approx(0.8)
        assert "1 rare category" in rare[0].description

    def test_uniform_spread(self, analyzer):
        """An even spread yields a uniform insight with full confidence."""
        values = ["a", "b", "c", "d"] * 25
        insights = analyzer.derive_insights("c", frequency_table(values))

        assert kinds(insights) == ["uniform"]
        assert insights[0].confidence == pytest.approx(1.0)

    def test_single_category_is_not_uniform(self, analyzer):
        """Uniformity needs at least two categories."""
        insights = analyzer.derive_insights("c", frequency_table(["only"] * 5))

        assert "uniform" not in kinds(insights)
        assert "dominant" in kinds(insights)


@pytest.mark.unit
class TestAnalyze:
    """Analysis over profiled records."""

    def test_only_categorical_columns(self, analyzer):
        """Numeric and text columns are ignored."""
        records = [{"c": value, "v": i} for i, value in enumerate(["a", "a", "a", "a", "b"])]
        profiles = ColumnProfiler().profile(records, declared_types={"c": "categorical"})

        results = analyzer.analyze(records, profiles)

        assert len(results) == 1
        assert results[0].column == "c"
        assert results[0].categories[0].category == "a"
        assert "dominant" in kinds(results[0].derived_insights)

    def test_to_dict(self, analyzer):
        """Serialized insights list categories and derived insights."""
        records = [{"c": value} for value in ["a", "b"] * 20]
        profiles = ColumnProfiler().profile(records)

        result = analyzer.analyze(records, profiles)[0].to_dict()

        assert result["kind"] == "categorical"
        assert result["column"] == "c"
