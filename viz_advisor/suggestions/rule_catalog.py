"""
Rule Catalog - declarative suggestion rules grouped by domain.

Each Rule is a frozen record of (domain, chart kind, base score, predicate,
generator). Predicates and generators are plain functions over a tuple of
column profiles plus a RuleContext holding the detected patterns. The
catalog validates its rules once, at construction, and is immutable
afterwards.

Arity per domain:
    distribution          1   (numeric column)
    categorical           2   (categorical column, numeric column)
    numeric_relationship  2 or 3 (numeric pair, or pair plus size column),
                          or VARIADIC (all numeric columns)
    time_series           2   (date column, numeric column)
    three_dimensional     3   (numeric triple)
"""

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from viz_advisor.core.constants import MAX_HISTOGRAM_BINS, MIN_HISTOGRAM_BINS
from viz_advisor.core.exceptions import RuleCatalogError
from viz_advisor.patterns.pattern_result import PatternSet
from viz_advisor.profiler.profile_result import ColumnProfile
from viz_advisor.suggestions.suggestion_result import ChartKind, RuleDomain, VisualizationSpec

logger = logging.getLogger(__name__)

# Arity of rules that bind every numeric column at once
VARIADIC = 0

# Minimum columns for a variadic rule
MIN_VARIADIC_COLUMNS = 3

_DOMAIN_ARITIES = {
    RuleDomain.DISTRIBUTION: {1},
    RuleDomain.CATEGORICAL: {2},
    RuleDomain.NUMERIC_RELATIONSHIP: {2, 3, VARIADIC},
    RuleDomain.TIME_SERIES: {2},
    RuleDomain.THREE_DIMENSIONAL: {3},
}

Profiles = Tuple[ColumnProfile, ...]


@dataclass(frozen=True)
class RuleContext:
    """Pattern information available to predicates and generators."""
    patterns: PatternSet = field(default_factory=PatternSet)

    def is_cumulative(self, date_column: str, value_column: str) -> bool:
        series = self.patterns.time_series_for(date_column, value_column)
        return bool(series and series.is_cumulative)


Predicate = Callable[[Profiles, RuleContext], bool]
Generator = Callable[[Profiles, RuleContext], VisualizationSpec]


@dataclass(frozen=True)
class Rule:
    """
    One declarative suggestion rule.

    ``title`` and ``description`` are format templates; ``{0}``, ``{1}``, ...
    are replaced with the bound column names in order.
    """
    domain: RuleDomain
    kind: ChartKind
    title: str
    description: str
    base_score: float
    arity: int
    predicate: Predicate
    generate: Generator
    dimensions: int = 2

    @property
    def key(self) -> str:
        return f"{self.domain.value}/{self.kind.value}"

    def applies(self, profiles: Profiles, context: RuleContext) -> bool:
        return bool(self.predicate(profiles, context))

    def render_text(self, profiles: Profiles) -> Tuple[str, str]:
        names = [p.name for p in profiles]
        if self.arity == VARIADIC:
            joined = ", ".join(names)
            return self.title.format(joined), self.description.format(joined)
        return self.title.format(*names), self.description.format(*names)


# ----------------------------------------------------------------------------
# Predicates
# ----------------------------------------------------------------------------

def _always(profiles: Profiles, context: RuleContext) -> bool:
    return True


def _few_categories(profiles: Profiles, context: RuleContext) -> bool:
    return profiles[0].distinct_count <= 10


def _moderate_categories(profiles: Profiles, context: RuleContext) -> bool:
    return 10 < profiles[0].distinct_count <= 30


def _cumulative_series(profiles: Profiles, context: RuleContext) -> bool:
    return context.is_cumulative(profiles[0].name, profiles[1].name)


def _many_distinct_values(profiles: Profiles, context: RuleContext) -> bool:
    return all(p.distinct_count > 10 for p in profiles)


def _enough_columns(profiles: Profiles, context: RuleContext) -> bool:
    return len(profiles) >= MIN_VARIADIC_COLUMNS


# ----------------------------------------------------------------------------
# Generators
# ----------------------------------------------------------------------------

def histogram_bins(distinct_count: int) -> int:
    """ceil(sqrt(distinct)) clamped to [10, 50]."""
    return max(MIN_HISTOGRAM_BINS, min(MAX_HISTOGRAM_BINS, math.ceil(math.sqrt(max(distinct_count, 0)))))


def _histogram(profiles: Profiles, context: RuleContext) -> VisualizationSpec:
    column = profiles[0]
    return VisualizationSpec(ChartKind.HISTOGRAM, {"column": column.name, "bins": histogram_bins(column.distinct_count)})


def _boxplot(profiles: Profiles, context: RuleContext) -> VisualizationSpec:
    return VisualizationSpec(ChartKind.BOXPLOT, {"column": profiles[0].name})


def _bar(profiles: Profiles, context: RuleContext) -> VisualizationSpec:
    return VisualizationSpec(ChartKind.BAR, {"x": profiles[0].name, "y": profiles[1].name, "aggregation": "sum"})


def _part_of_whole(kind: ChartKind) -> Generator:
    def generate(profiles: Profiles, context: RuleContext) -> VisualizationSpec:
        return VisualizationSpec(kind, {"dimension": profiles[0].name, "value": profiles[1].name, "aggregation": "sum"})
    return generate


def _scatter(profiles: Profiles, context: RuleContext) -> VisualizationSpec:
    return VisualizationSpec(ChartKind.SCATTER, {"x": profiles[0].name, "y": profiles[1].name})


def _bubble(profiles: Profiles, context: RuleContext) -> VisualizationSpec:
    return VisualizationSpec(
        ChartKind.BUBBLE,
        {"x": profiles[0].name, "y": profiles[1].name, "size": profiles[2].name}
    )


def _heatmap(profiles: Profiles, context: RuleContext) -> VisualizationSpec:
    return VisualizationSpec(ChartKind.HEATMAP, {"columns": tuple(p.name for p in profiles), "metric": "correlation"})


def _time_chart(kind: ChartKind) -> Generator:
    def generate(profiles: Profiles, context: RuleContext) -> VisualizationSpec:
        return VisualizationSpec(kind, {"x": profiles[0].name, "y": profiles[1].name})
    return generate


def _three_d(kind: ChartKind) -> Generator:
    def generate(profiles: Profiles, context: RuleContext) -> VisualizationSpec:
        x, y, z = (p.name for p in profiles)
        return VisualizationSpec(kind, {"x": x, "y": y, "z": z}, dimensions=3)
    return generate


DEFAULT_RULES: Tuple[Rule, ...] = (
    # Distribution
    Rule(RuleDomain.DISTRIBUTION, ChartKind.HISTOGRAM, "Distribution of {0}",
         "Histogram showing how {0} values are spread", 0.8, 1, _many_distinct_values, _histogram),
    Rule(RuleDomain.DISTRIBUTION, ChartKind.BOXPLOT, "Box plot of {0}",
         "Quartiles, spread and outliers of {0}", 0.75, 1, _always, _boxplot),

    # Categorical (category, value)
    Rule(RuleDomain.CATEGORICAL, ChartKind.BAR, "{1} by {0}",
         "Compare {1} across {0} categories", 0.9, 2, _always, _bar),
    Rule(RuleDomain.CATEGORICAL, ChartKind.PIE, "Share of {1} by {0}",
         "Part-to-whole breakdown of {1} across a few {0} categories", 0.7, 2,
         _few_categories, _part_of_whole(ChartKind.PIE)),
    Rule(RuleDomain.CATEGORICAL, ChartKind.TREEMAP, "{1} treemap by {0}",
         "Hierarchical share of {1} across many {0} categories", 0.6, 2,
         _moderate_categories, _part_of_whole(ChartKind.TREEMAP)),

    # Numeric relationships
    Rule(RuleDomain.NUMERIC_RELATIONSHIP, ChartKind.SCATTER, "{0} vs {1}",
         "Relationship between {0} and {1}", 0.85, 2, _always, _scatter),
    Rule(RuleDomain.NUMERIC_RELATIONSHIP, ChartKind.BUBBLE, "{0} vs {1} sized by {2}",
         "Relationship between {0} and {1} with {2} as bubble size", 0.75, 3, _always, _bubble),
    Rule(RuleDomain.NUMERIC_RELATIONSHIP, ChartKind.HEATMAP, "Correlation heatmap",
         "Pairwise correlations between {0}", 0.8, VARIADIC, _enough_columns, _heatmap),

    # Time series (date, value)
    Rule(RuleDomain.TIME_SERIES, ChartKind.LINE, "{1} over time",
         "Trend of {1} along {0}", 0.9, 2, _always, _time_chart(ChartKind.LINE)),
    Rule(RuleDomain.TIME_SERIES, ChartKind.AREA, "Cumulative {1} over time",
         "Running total of {1} along {0}", 0.8, 2, _cumulative_series, _time_chart(ChartKind.AREA)),

    # Three-dimensional numeric
    Rule(RuleDomain.THREE_DIMENSIONAL, ChartKind.SCATTER_3D, "3D scatter of {0}, {1}, {2}",
         "Three-way relationship between {0}, {1} and {2}", 0.9, 3,
         _many_distinct_values, _three_d(ChartKind.SCATTER_3D), dimensions=3),
    Rule(RuleDomain.THREE_DIMENSIONAL, ChartKind.BAR_3D, "3D bars of {2} by {0} and {1}",
         "{2} across the {0} x {1} grid", 0.8, 3, _always, _three_d(ChartKind.BAR_3D), dimensions=3),
    Rule(RuleDomain.THREE_DIMENSIONAL, ChartKind.SURFACE, "Surface of {2} over {0} and {1}",
         "{2} as a surface over {0} and {1}", 0.8, 3, _always, _three_d(ChartKind.SURFACE), dimensions=3),
)


class RuleCatalog:
    """
    Immutable, validated collection of rules grouped by domain.

    Example:
        >>> catalog = RuleCatalog.default()
        >>> [r.kind.value for r in catalog.rules_for(RuleDomain.CATEGORICAL)]
        ['bar', 'pie', 'treemap']
    """

    def __init__(self, rules: Iterable[Rule]):
        """
        Args:
            rules: Rules in priority order

        Raises:
            RuleCatalogError: If any rule is invalid or duplicated
        """
        rules = tuple(rules)
        self._validate(rules)

        grouped: Dict[RuleDomain, List[Rule]] = {}
        for rule in rules:
            grouped.setdefault(rule.domain, []).append(rule)

        self._rules = rules
        self._by_domain = MappingProxyType({domain: tuple(items) for domain, items in grouped.items()})
        logger.debug(f"Loaded rule catalog with {len(rules)} rules in {len(grouped)} domains")

    @classmethod
    def default(cls) -> "RuleCatalog":
        return cls(DEFAULT_RULES)

    @staticmethod
    def _validate(rules: Tuple[Rule, ...]) -> None:
        if not rules:
            raise RuleCatalogError("Rule catalog is empty")

        seen = set()
        for rule in rules:
            if not isinstance(rule, Rule):
                raise RuleCatalogError(f"Not a Rule: {rule!r}")
            if not isinstance(rule.domain, RuleDomain) or not isinstance(rule.kind, ChartKind):
                raise RuleCatalogError("Rule domain and kind must be RuleDomain/ChartKind members", rule=str(rule.kind))
            if not 0.0 <= rule.base_score <= 1.0:
                raise RuleCatalogError(f"Base score {rule.base_score} outside [0, 1]", rule=rule.key)
            if rule.arity not in _DOMAIN_ARITIES[rule.domain]:
                raise RuleCatalogError(
                    f"Arity {rule.arity} not valid for domain {rule.domain.value}", rule=rule.key
                )
            if not callable(rule.predicate) or not callable(rule.generate):
                raise RuleCatalogError("Predicate and generator must be callable", rule=rule.key)
            if rule.dimensions not in (2, 3):
                raise RuleCatalogError(f"Unsupported dimensions {rule.dimensions}", rule=rule.key)
            if (rule.domain, rule.kind) in seen:
                raise RuleCatalogError("Duplicate rule", rule=rule.key)
            seen.add((rule.domain, rule.kind))

            placeholders = ["column"] * max(rule.arity, 1)
            try:
                rule.title.format(*placeholders)
                rule.description.format(*placeholders)
            except (IndexError, KeyError) as e:
                raise RuleCatalogError(f"Template references a missing column: {e}", rule=rule.key)

    def rules_for(self, domain: RuleDomain) -> Tuple[Rule, ...]:
        return self._by_domain.get(domain, ())

    def get(self, domain: RuleDomain, kind: ChartKind) -> Optional[Rule]:
        for rule in self.rules_for(domain):
            if rule.kind == kind:
                return rule
        return None

    @property
    def domains(self) -> Tuple[RuleDomain, ...]:
        return tuple(self._by_domain.keys())

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)
