"""
Insight Generator - plain-language findings aggregated from a PatternSet.

Every insight is scored as importance(kind) * pattern weight, where the
weight is the pattern's own strength (|r|, trend strength, insight
confidence, ...). Low-scoring insights are dropped and the rest are capped
per kind and overall.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from viz_advisor.core.constants import (
    DEFAULT_MAX_INSIGHTS_PER_TYPE,
    DEFAULT_MAX_TOTAL_INSIGHTS,
    INSIGHT_IMPORTANCE,
    MIN_INSIGHT_SCORE,
    STRONG_PATTERN_STRENGTH,
)
from viz_advisor.patterns.pattern_result import PatternSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Insight:
    kind: str
    description: str
    columns: Tuple[str, ...]
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "description": self.description,
            "columns": list(self.columns),
            "score": round(float(self.score), 4),
        }


class InsightGenerator:
    """Turn detected patterns into ranked insights."""

    def __init__(
        self,
        max_per_type: int = DEFAULT_MAX_INSIGHTS_PER_TYPE,
        max_total: int = DEFAULT_MAX_TOTAL_INSIGHTS,
        min_score: float = MIN_INSIGHT_SCORE
    ):
        self.max_per_type = max_per_type
        self.max_total = max_total
        self.min_score = min_score

    def generate(self, patterns: PatternSet) -> List[Insight]:
        """
        Build insights for a PatternSet.

        Returns:
            Insights sorted by descending score, at most ``max_per_type`` per
            kind and ``max_total`` overall
        """
        candidates = [
            *self._correlation_insights(patterns),
            *self._time_series_insights(patterns),
            *self._distribution_insights(patterns),
            *self._outlier_insights(patterns),
            *self._categorical_insights(patterns),
        ]

        kept: List[Insight] = []
        per_kind: Dict[str, int] = {}
        for insight in sorted(candidates, key=lambda i: i.score, reverse=True):
            if insight.score < self.min_score:
                continue
            if per_kind.get(insight.kind, 0) >= self.max_per_type:
                continue
            per_kind[insight.kind] = per_kind.get(insight.kind, 0) + 1
            kept.append(insight)
            if len(kept) >= self.max_total:
                break

        logger.debug(f"Kept {len(kept)} of {len(candidates)} insights")
        return kept

    @staticmethod
    def _make(kind: str, description: str, columns: Tuple[str, ...], weight: float) -> Insight:
        return Insight(kind=kind, description=description, columns=columns, score=INSIGHT_IMPORTANCE[kind] * weight)

    def _correlation_insights(self, patterns: PatternSet) -> List[Insight]:
        return [
            self._make(
                'correlation',
                f"{p.columns[0]} and {p.columns[1]} show a {p.strength_label} "
                f"{p.direction} correlation (r = {p.coefficient:.2f})",
                p.columns,
                abs(p.coefficient),
            )
            for p in patterns.correlations
        ]

    def _time_series_insights(self, patterns: PatternSet) -> List[Insight]:
        insights = []
        for p in patterns.time_series:
            if p.trend.strength > STRONG_PATTERN_STRENGTH:
                insights.append(self._make(
                    'trend',
                    f"{p.value_column} has a {p.trend.direction} trend over {p.date_column}",
                    p.columns,
                    p.trend.strength,
                ))
            if p.seasonality is not None and p.seasonality.strength > STRONG_PATTERN_STRENGTH:
                insights.append(self._make(
                    'seasonality',
                    f"{p.value_column} repeats roughly every {p.seasonality.period} periods",
                    p.columns,
                    p.seasonality.strength,
                ))
        return insights

    def _distribution_insights(self, patterns: PatternSet) -> List[Insight]:
        insights = []
        for p in patterns.distributions:
            if p.shape_label == "normal":
                weight = 0.9
                description = f"{p.column} is approximately normally distributed"
            elif p.shape_label in ("right-skewed", "left-skewed"):
                weight = min(1.0, abs(p.stats.skewness) / 2)
                description = f"{p.column} is {p.shape_label} (skewness {p.stats.skewness:.2f})"
            else:
                continue
            insights.append(self._make('distribution', description, (p.column,), weight))
        return insights

    def _outlier_insights(self, patterns: PatternSet) -> List[Insight]:
        return [
            self._make(
                'outlier',
                f"{p.column} has {len(p.items)} outlier{'s' if len(p.items) != 1 else ''} "
                f"beyond {p.threshold:.3g} of the mean",
                (p.column,),
                1.0,
            )
            for p in patterns.outliers
        ]

    def _categorical_insights(self, patterns: PatternSet) -> List[Insight]:
        return [
            self._make('categorical', derived.description, (p.column,), derived.confidence)
            for p in patterns.categories
            for derived in p.derived_insights
        ]
