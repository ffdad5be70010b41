"""
Categorical distribution insights.

Derives plain-language insights from each categorical column's frequency
table: a dominant category, heavy imbalance, rare categories, or a near
uniform spread.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from viz_advisor.core.cancellation import CancellationToken
from viz_advisor.core.constants import (
    DOMINANT_SHARE_PERCENT,
    IMBALANCE_RATIO,
    RARE_CONFIDENCE,
    RARE_SHARE_PERCENT,
    UNIFORM_DEVIATION_POINTS,
)
from viz_advisor.patterns.pattern_result import CategoryInsight, DerivedInsight
from viz_advisor.profiler.column_profiler import column_values
from viz_advisor.profiler.profile_result import CategoricalStats, CategoryFrequency, ColumnProfile
from viz_advisor.profiler.statistics_calculator import frequency_table

logger = logging.getLogger(__name__)


class CategoricalAnalyzer:
    """
    Frequency-based insights for categorical columns.

    Thresholds:
        dominant: top category share > 50%
        imbalance: top/bottom count ratio > 10
        rare: any category share < 5%
        uniform: mean deviation from the equal share < 10 percentage points
    """

    def __init__(
        self,
        dominant_share: float = DOMINANT_SHARE_PERCENT,
        imbalance_ratio: float = IMBALANCE_RATIO,
        rare_share: float = RARE_SHARE_PERCENT,
        uniform_deviation: float = UNIFORM_DEVIATION_POINTS
    ):
        self.dominant_share = dominant_share
        self.imbalance_ratio = imbalance_ratio
        self.rare_share = rare_share
        self.uniform_deviation = uniform_deviation

    def analyze(
        self,
        records: Sequence[Mapping],
        profiles: Dict[str, ColumnProfile],
        cancel_token: Optional[CancellationToken] = None
    ) -> List[CategoryInsight]:
        insights = []
        for name, profile in profiles.items():
            if not profile.is_categorical:
                continue
            if cancel_token is not None:
                cancel_token.raise_if_cancelled("categories")

            if isinstance(profile.stats, CategoricalStats) and profile.stats.frequencies:
                frequencies = profile.stats.frequencies
            else:
                frequencies = frequency_table(column_values(records, name))
            if not frequencies:
                continue

            insights.append(CategoryInsight(
                column=name,
                categories=tuple(frequencies),
                derived_insights=tuple(self.derive_insights(name, frequencies)),
            ))
        return insights

    def derive_insights(self, column: str, frequencies: List[CategoryFrequency]) -> List[DerivedInsight]:
        """
        Derive insights from a frequency table ordered by count descending.

        Args:
            column: Column name (used in descriptions)
            frequencies: Frequency table, most common first

        Returns:
            List of DerivedInsight, possibly empty
        """
        derived = []
        top = frequencies[0]
        bottom = frequencies[-1]

        if top.percentage > self.dominant_share:
            derived.append(DerivedInsight(
                kind="dominant",
                description=(
                    f"'{top.category}' dominates {column} with "
                    f"{top.percentage:.1f}% of values"
                ),
                confidence=top.percentage / 100,
            ))

        ratio = top.count / bottom.count
        if ratio > self.imbalance_ratio:
            derived.append(DerivedInsight(
                kind="imbalance",
                description=(
                    f"{column} is highly imbalanced: '{top.category}' occurs "
                    f"{ratio:.1f}x more often than '{bottom.category}'"
                ),
                confidence=min(ratio / (2 * self.imbalance_ratio), 1.0),
            ))

        rare = [f for f in frequencies if f.percentage < self.rare_share]
        if rare:
            derived.append(DerivedInsight(
                kind="rare",
                description=(
                    f"{column} has {len(rare)} rare "
                    f"{'category' if len(rare) == 1 else 'categories'} "
                    f"under {self.rare_share:g}% share"
                ),
                confidence=RARE_CONFIDENCE,
            ))

        if len(frequencies) >= 2:
            expected = 100.0 / len(frequencies)
            mean_deviation = sum(abs(f.percentage - expected) for f in frequencies) / len(frequencies)
            if mean_deviation < self.uniform_deviation:
                derived.append(DerivedInsight(
                    kind="uniform",
                    description=f"{column} is spread almost evenly across {len(frequencies)} categories",
                    confidence=1.0 - mean_deviation / self.uniform_deviation,
                ))

        return derived
