"""
Unit tests for the suggestion rule catalog.

Tests the default rules, their predicates and generators, and load-time
validation of custom catalogs.
"""

from dataclasses import replace

import pytest

from viz_advisor.core.exceptions import RuleCatalogError
from viz_advisor.patterns.pattern_result import PatternSet, Seasonality, TimeSeriesPattern, Trend
from viz_advisor.profiler.profile_result import ColumnProfile, ColumnType
from viz_advisor.suggestions.rule_catalog import (
    DEFAULT_RULES,
    VARIADIC,
    Rule,
    RuleCatalog,
    RuleContext,
    histogram_bins,
)
from viz_advisor.suggestions.suggestion_result import ChartKind, RuleDomain


def column(name, column_type=ColumnType.NUMERIC, distinct=50):
    return ColumnProfile(name=name, type=column_type, distinct_count=distinct, null_count=0, row_count=100)


@pytest.fixture
def catalog():
    """Default rule catalog."""
    return RuleCatalog.default()


@pytest.mark.unit
class TestDefaultCatalog:
    """The built-in rules."""

    def test_rule_count_and_domains(self, catalog):
        """Thirteen rules across five domains."""
        assert len(catalog) == 13
        assert set(catalog.domains) == set(RuleDomain)

    def test_categorical_rules(self, catalog):
        """Bar, pie and treemap in priority order."""
        kinds = [rule.kind for rule in catalog.rules_for(RuleDomain.CATEGORICAL)]

        assert kinds == [ChartKind.BAR, ChartKind.PIE, ChartKind.TREEMAP]

    def test_base_scores(self, catalog):
        """Base scores of the main rules."""
        assert catalog.get(RuleDomain.CATEGORICAL, ChartKind.BAR).base_score == 0.9
        assert catalog.get(RuleDomain.NUMERIC_RELATIONSHIP, ChartKind.SCATTER).base_score == 0.85
        assert catalog.get(RuleDomain.TIME_SERIES, ChartKind.LINE).base_score == 0.9
        assert catalog.get(RuleDomain.THREE_DIMENSIONAL, ChartKind.SCATTER_3D).base_score == 0.9

    def test_get_missing_rule(self, catalog):
        """Unknown (domain, kind) pairs return None."""
        assert catalog.get(RuleDomain.TIME_SERIES, ChartKind.PIE) is None

    def test_three_dimensional_rules_have_three_dimensions(self, catalog):
        """3D rules render three-dimensional specs."""
        assert all(rule.dimensions == 3 for rule in catalog.rules_for(RuleDomain.THREE_DIMENSIONAL))


@pytest.mark.unit
class TestPredicates:
    """Rule applicability."""

    def test_pie_needs_few_categories(self, catalog):
        """Pie applies up to 10 categories."""
        pie = catalog.get(RuleDomain.CATEGORICAL, ChartKind.PIE)
        context = RuleContext()

        assert pie.applies((column("c", ColumnType.CATEGORICAL, 10), column("v")), context)
        assert not pie.applies((column("c", ColumnType.CATEGORICAL, 11), column("v")), context)

    def test_treemap_needs_moderate_categories(self, catalog):
        """Treemap applies between 11 and 30 categories."""
        treemap = catalog.get(RuleDomain.CATEGORICAL, ChartKind.TREEMAP)
        context = RuleContext()

        assert not treemap.applies((column("c", ColumnType.CATEGORICAL, 10), column("v")), context)
        assert treemap.applies((column("c", ColumnType.CATEGORICAL, 30), column("v")), context)
        assert not treemap.applies((column("c", ColumnType.CATEGORICAL, 31), column("v")), context)

    def test_area_needs_cumulative_series(self, catalog):
        """Area charts need a cumulative time series pattern."""
        area = catalog.get(RuleDomain.TIME_SERIES, ChartKind.AREA)
        combo = (column("day", ColumnType.DATE), column("total"))
        series = TimeSeriesPattern(
            date_column="day",
            value_column="total",
            trend=Trend(direction="increasing", slope=1.0, intercept=0.0, strength=1.0),
            seasonality=Seasonality(period=1, strength=0.9, exists=True),
            confidence=1.0,
            point_count=10,
            is_cumulative=True,
        )

        assert not area.applies(combo, RuleContext())
        assert area.applies(combo, RuleContext(PatternSet(time_series=(series,))))

    def test_heatmap_needs_three_columns(self, catalog):
        """The variadic heatmap needs at least three numeric columns."""
        heatmap = catalog.get(RuleDomain.NUMERIC_RELATIONSHIP, ChartKind.HEATMAP)

        assert heatmap.arity == VARIADIC
        assert not heatmap.applies((column("a"), column("b")), RuleContext())
        assert heatmap.applies((column("a"), column("b"), column("c")), RuleContext())

    def test_histogram_needs_spread(self, catalog):
        """Histograms need more than 10 distinct values."""
        histogram = catalog.get(RuleDomain.DISTRIBUTION, ChartKind.HISTOGRAM)

        assert not histogram.applies((column("v", distinct=10),), RuleContext())
        assert histogram.applies((column("v", distinct=11),), RuleContext())


@pytest.mark.unit
class TestGenerators:
    """Visualization specs and text."""

    def test_bar_spec(self, catalog):
        """Bar binds x to the category and y to the value."""
        bar = catalog.get(RuleDomain.CATEGORICAL, ChartKind.BAR)
        spec = bar.generate((column("region", ColumnType.CATEGORICAL, 4), column("sales")), RuleContext())

        assert spec.type == ChartKind.BAR
        assert spec.config["x"] == "region"
        assert spec.config["y"] == "sales"

    def test_spec_config_is_read_only(self, catalog):
        """Generated configs cannot be mutated."""
        scatter = catalog.get(RuleDomain.NUMERIC_RELATIONSHIP, ChartKind.SCATTER)
        spec = scatter.generate((column("a"), column("b")), RuleContext())

        with pytest.raises(TypeError):
            spec.config["x"] = "c"

    def test_render_text(self, catalog):
        """Templates are filled with column names in order."""
        bubble = catalog.get(RuleDomain.NUMERIC_RELATIONSHIP, ChartKind.BUBBLE)
        title, description = bubble.render_text((column("a"), column("b"), column("c")))

        assert title == "a vs b sized by c"
        assert "c as bubble size" in description

    def test_histogram_bins(self):
        """Bins are ceil(sqrt(distinct)) within [10, 50]."""
        assert histogram_bins(4) == 10
        assert histogram_bins(400) == 20
        assert histogram_bins(401) == 21
        assert histogram_bins(100_000) == 50


@pytest.mark.unit
class TestValidation:
    """Load-time catalog validation."""

    def base_rule(self):
        return DEFAULT_RULES[0]

    def test_empty_catalog(self):
        """An empty catalog is invalid."""
        with pytest.raises(RuleCatalogError, match="empty"):
            RuleCatalog([])

    def test_score_out_of_range(self):
        """Base scores must lie in [0, 1]."""
        with pytest.raises(RuleCatalogError) as exc_info:
            RuleCatalog([replace(self.base_rule(), base_score=1.2)])
        assert exc_info.value.rule == "distribution/histogram"

    def test_wrong_arity(self):
        """Arity must fit the domain."""
        with pytest.raises(RuleCatalogError, match="Arity"):
            RuleCatalog([replace(self.base_rule(), arity=2)])

    def test_duplicate_rule(self):
        """The same (domain, kind) may appear once."""
        with pytest.raises(RuleCatalogError, match="Duplicate"):
            RuleCatalog([self.base_rule(), self.base_rule()])

    def test_non_callable_predicate(self):
        """Predicates must be callable."""
        with pytest.raises(RuleCatalogError, match="callable"):
            RuleCatalog([replace(self.base_rule(), predicate=True)])

    def test_template_references_missing_column(self):
        """Templates may only reference bound columns."""
        with pytest.raises(RuleCatalogError, match="Template"):
            RuleCatalog([replace(self.base_rule(), title="{0} against {1}")])

    def test_not_a_rule(self):
        """Only Rule instances are accepted."""
        with pytest.raises(RuleCatalogError):
            RuleCatalog([{"kind": "bar"}])

    def test_custom_catalog(self):
        """A valid subset builds a working catalog."""
        catalog = RuleCatalog(rule for rule in DEFAULT_RULES if rule.domain == RuleDomain.CATEGORICAL)

        assert len(catalog) == 3
        assert catalog.rules_for(RuleDomain.DISTRIBUTION) == ()
        assert isinstance(list(catalog)[0], Rule)
