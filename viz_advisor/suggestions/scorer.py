"""
Suggestion Scorer & Ranker.

final_score = clamp01(0.4 * base_score
                      + 0.3 * preference_weight(type)
                      + 0.2 * (1 - complexity_penalty)
                      + 0.1 * dimensionality_bonus)

The complexity penalty and dimensionality bonus apply only to
three-dimensional suggestions and default to the same magnitude (0.1).
"""

import logging
import numbers
from typing import Any, Iterable, List, Mapping, Optional

from viz_advisor.core.constants import (
    BASE_SCORE_WEIGHT,
    COMPLEXITY_WEIGHT,
    DEFAULT_MAX_TOTAL_SUGGESTIONS,
    DEFAULT_MIN_CONFIDENCE_SCORE,
    DIMENSIONALITY_WEIGHT,
    NEUTRAL_PREFERENCE,
    PREFERENCE_WEIGHT,
    PREFERRED_CHART_TYPE_KEY,
    PREFERRED_CHART_WEIGHT,
    THREE_D_COMPLEXITY_PENALTY,
    THREE_D_DIMENSIONALITY_BONUS,
)
from viz_advisor.suggestions.suggestion_result import Suggestion

logger = logging.getLogger(__name__)


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def preference_weight(chart_type: str, preferences: Optional[Mapping[str, Any]]) -> float:
    """
    Weight of a chart type in the user preference set.

    Lookup order:
        1. A numeric weight stored under the chart type itself (clamped to [0, 1])
        2. 1.0 when ``preferredChartType`` names the chart type
        3. 0.5 (neutral)
    """
    if not preferences:
        return NEUTRAL_PREFERENCE

    weight = preferences.get(chart_type)
    if isinstance(weight, numbers.Real) and not isinstance(weight, bool):
        return clamp01(weight)

    if preferences.get(PREFERRED_CHART_TYPE_KEY) == chart_type:
        return PREFERRED_CHART_WEIGHT

    return NEUTRAL_PREFERENCE


class SuggestionScorer:
    """
    Score, filter and rank candidate suggestions.

    Scoring never mutates candidates; ranked suggestions are new objects.
    """

    def __init__(
        self,
        min_confidence_score: float = DEFAULT_MIN_CONFIDENCE_SCORE,
        max_total_suggestions: int = DEFAULT_MAX_TOTAL_SUGGESTIONS,
        complexity_penalty: float = THREE_D_COMPLEXITY_PENALTY,
        dimensionality_bonus: float = THREE_D_DIMENSIONALITY_BONUS
    ):
        """
        Args:
            min_confidence_score: Candidates scoring below this are dropped (default: 0.6)
            max_total_suggestions: Length of the ranked list (default: 10)
            complexity_penalty: Penalty for 3D suggestions (default: 0.1)
            dimensionality_bonus: Bonus for 3D suggestions (default: 0.1)
        """
        self.min_confidence_score = min_confidence_score
        self.max_total_suggestions = max_total_suggestions
        self.complexity_penalty = complexity_penalty
        self.dimensionality_bonus = dimensionality_bonus

    def score(self, suggestion: Suggestion, preferences: Optional[Mapping[str, Any]] = None) -> float:
        """Final score of one suggestion, in [0, 1]."""
        three_d = suggestion.is_three_dimensional
        penalty = self.complexity_penalty if three_d else 0.0
        bonus = self.dimensionality_bonus if three_d else 0.0

        return clamp01(
            BASE_SCORE_WEIGHT * suggestion.base_score
            + PREFERENCE_WEIGHT * preference_weight(suggestion.type.value, preferences)
            + COMPLEXITY_WEIGHT * (1.0 - penalty)
            + DIMENSIONALITY_WEIGHT * bonus
        )

    def rank(
        self,
        candidates: Iterable[Suggestion],
        preferences: Optional[Mapping[str, Any]] = None
    ) -> List[Suggestion]:
        """
        Score candidates and return the top suggestions.

        Candidates below ``min_confidence_score`` are dropped, survivors are
        sorted by descending final score (generation order breaks ties) and
        truncated to ``max_total_suggestions``. Duplicate ids keep the
        highest-scoring entry.

        Args:
            candidates: Suggestions in generation order
            preferences: User preference mapping

        Returns:
            Ranked list of newly scored suggestions
        """
        best = {}
        order = []
        for candidate in candidates:
            scored = candidate.with_final_score(self.score(candidate, preferences))
            if scored.final_score < self.min_confidence_score:
                continue
            if scored.id not in best:
                order.append(scored.id)
                best[scored.id] = scored
            elif scored.final_score > best[scored.id].final_score:
                best[scored.id] = scored

        ranked = sorted((best[i] for i in order), key=lambda s: s.final_score, reverse=True)
        logger.debug(f"Ranked {len(ranked)} suggestions above {self.min_confidence_score}")
        return ranked[:self.max_total_suggestions]
