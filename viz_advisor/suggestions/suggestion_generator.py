"""
Suggestion Generator - enumerates column combinations and applies the rule catalog.

Combinations are enumerated per domain in a fixed order (distribution,
categorical, numeric relationship, time series, three-dimensional), so the
generation order is deterministic and can serve as the ranking tie-break.
"""

import logging
from itertools import combinations
from typing import Dict, List, Optional, Tuple

from viz_advisor.core.constants import DEFAULT_MAX_COMBINATION_COLUMNS, UNPATTERNED_RELEVANCE
from viz_advisor.patterns.pattern_result import PatternSet
from viz_advisor.profiler.profile_result import ColumnProfile
from viz_advisor.suggestions.rule_catalog import VARIADIC, Rule, RuleCatalog, RuleContext
from viz_advisor.suggestions.suggestion_result import (
    ChartKind,
    RuleDomain,
    Suggestion,
    VisualizationSpec,
    suggestion_id,
)

logger = logging.getLogger(__name__)

_CORRELATION_SCALED = {ChartKind.SCATTER, ChartKind.BUBBLE}
_TIME_SERIES_SCALED = {ChartKind.LINE, ChartKind.AREA}

# Config keys that bind columns (the rest are renderer options)
_ROLE_KEYS = ("x", "y", "z", "size", "dimension", "value", "column", "columns")


def _role_bindings(spec: VisualizationSpec, names: Tuple[str, ...]) -> Dict[str, str]:
    """Role -> column name, taken from the config entries that name bound columns."""
    bindings = {}
    for role, value in spec.config.items():
        if role not in _ROLE_KEYS:
            continue
        if isinstance(value, str) and value in names:
            bindings[role] = value
        elif isinstance(value, tuple):
            for position, item in enumerate(value, start=1):
                if item in names:
                    bindings[f"column{position}"] = item
    return bindings


class SuggestionGenerator:
    """
    Produce candidate suggestions from column profiles and detected patterns.

    Example:
        >>> generator = SuggestionGenerator(RuleCatalog.default())
        >>> candidates = generator.generate(profiles, patterns)
    """

    def __init__(
        self,
        catalog: Optional[RuleCatalog] = None,
        max_combination_columns: int = DEFAULT_MAX_COMBINATION_COLUMNS,
        unpatterned_relevance: float = UNPATTERNED_RELEVANCE
    ):
        """
        Args:
            catalog: Rule catalog (default: RuleCatalog.default())
            max_combination_columns: Numeric columns used for pairs and triples (default: 8)
            unpatterned_relevance: Base-score factor for scatter/line candidates
                without a supporting pattern (default: 0.5)
        """
        self.catalog = catalog or RuleCatalog.default()
        self.max_combination_columns = max_combination_columns
        self.unpatterned_relevance = unpatterned_relevance

    def generate(self, profiles: Dict[str, ColumnProfile], patterns: Optional[PatternSet] = None) -> List[Suggestion]:
        """
        Generate candidates for every applicable (rule, column combination).

        Args:
            profiles: Column profiles
            patterns: Detected patterns (scales base scores, flags cumulative series)

        Returns:
            Candidates in generation order, unique by id, with final_score unset (0.0)
        """
        patterns = patterns or PatternSet()
        context = RuleContext(patterns)

        # Columns with no usable values cannot be charted
        numeric = [p for p in profiles.values() if p.is_numeric and p.distinct_count > 0]
        # Pair, triple and all-column rules grow combinatorially; single-column domains see every column
        combinable = numeric[:self.max_combination_columns]
        categorical = [p for p in profiles.values() if p.is_categorical and p.distinct_count > 0]
        dates = [p for p in profiles.values() if p.is_date and p.distinct_count > 0]

        candidates: List[Suggestion] = []
        seen = set()

        def emit(domain: RuleDomain, arity: int, combo: Tuple[ColumnProfile, ...]) -> None:
            for rule in self.catalog.rules_for(domain):
                if rule.arity != arity:
                    continue
                suggestion = self._apply(rule, combo, context, patterns)
                if suggestion is not None and suggestion.id not in seen:
                    seen.add(suggestion.id)
                    candidates.append(suggestion)

        for column in numeric:
            emit(RuleDomain.DISTRIBUTION, 1, (column,))

        for category in categorical:
            for value in numeric:
                emit(RuleDomain.CATEGORICAL, 2, (category, value))

        for pair in combinations(combinable, 2):
            emit(RuleDomain.NUMERIC_RELATIONSHIP, 2, pair)
        for triple in combinations(combinable, 3):
            emit(RuleDomain.NUMERIC_RELATIONSHIP, 3, triple)
        if combinable:
            emit(RuleDomain.NUMERIC_RELATIONSHIP, VARIADIC, tuple(combinable))

        for date in dates:
            for value in numeric:
                emit(RuleDomain.TIME_SERIES, 2, (date, value))

        for triple in combinations(combinable, 3):
            emit(RuleDomain.THREE_DIMENSIONAL, 3, triple)

        logger.debug(f"Generated {len(candidates)} candidate suggestions")
        return candidates

    def _apply(
        self,
        rule: Rule,
        combo: Tuple[ColumnProfile, ...],
        context: RuleContext,
        patterns: PatternSet
    ) -> Optional[Suggestion]:
        try:
            if not rule.applies(combo, context):
                return None
            spec = rule.generate(combo, context)
            title, description = rule.render_text(combo)
        except Exception as e:
            logger.warning(f"Rule {rule.key} failed for {[p.name for p in combo]}: {e}")
            return None

        names = tuple(p.name for p in combo)
        return Suggestion(
            id=suggestion_id(rule.kind, names),
            type=rule.kind,
            title=title,
            description=description,
            columns=_role_bindings(spec, names),
            visualization=spec,
            domain=rule.domain,
            base_score=self._base_score(rule, names, patterns),
        )

    def _base_score(self, rule: Rule, names: Tuple[str, ...], patterns: PatternSet) -> float:
        """Rule score scaled by the strength of the pattern backing it."""
        if rule.kind in _CORRELATION_SCALED:
            correlation = patterns.correlation_for(names[0], names[1])
            relevance = abs(correlation.coefficient) if correlation else self.unpatterned_relevance
        elif rule.kind in _TIME_SERIES_SCALED:
            series = patterns.time_series_for(names[0], names[1])
            relevance = series.confidence if series else self.unpatterned_relevance
        else:
            relevance = 1.0
        return max(0.0, min(1.0, rule.base_score * relevance))
