"""
Distribution shape classification and outlier detection for numeric columns.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from viz_advisor.core.cancellation import CancellationToken
from viz_advisor.core.constants import (
    DEFAULT_OUTLIER_THRESHOLD,
    NORMAL_KURTOSIS_LIMIT,
    NORMAL_SKEW_LIMIT,
    SKEWED_LIMIT,
)
from viz_advisor.patterns.pattern_result import DistributionPattern, OutlierItem, OutlierSet
from viz_advisor.profiler.column_profiler import column_values
from viz_advisor.profiler.profile_result import ColumnProfile, NumericStats
from viz_advisor.profiler.statistics_calculator import StatisticsCalculator, aligned_numeric_array

logger = logging.getLogger(__name__)


def classify_shape(skewness: Optional[float], kurtosis: Optional[float]) -> str:
    """
    Label a distribution from its skewness and excess kurtosis.

    normal when |skew| < 0.5 and |kurt| < 0.5; right-/left-skewed when
    skew > 1 / < -1; unknown otherwise or when a moment is undefined.
    """
    if skewness is None:
        return "unknown"
    if kurtosis is not None and abs(skewness) < NORMAL_SKEW_LIMIT and abs(kurtosis) < NORMAL_KURTOSIS_LIMIT:
        return "normal"
    if skewness > SKEWED_LIMIT:
        return "right-skewed"
    if skewness < -SKEWED_LIMIT:
        return "left-skewed"
    return "unknown"


class DistributionAnalyzer:
    """Shape descriptors and standard-deviation outliers per numeric column."""

    def __init__(
        self,
        outlier_threshold: float = DEFAULT_OUTLIER_THRESHOLD,
        calculator: Optional[StatisticsCalculator] = None
    ):
        """
        Args:
            outlier_threshold: Standard deviations from the mean beyond which a value is an outlier
            calculator: Statistics calculator (default: new instance)
        """
        self.outlier_threshold = outlier_threshold
        self.calculator = calculator or StatisticsCalculator()

    def analyze_distributions(
        self,
        records: Sequence[Mapping],
        profiles: Dict[str, ColumnProfile],
        cancel_token: Optional[CancellationToken] = None
    ) -> List[DistributionPattern]:
        patterns = []
        for name, profile in profiles.items():
            if not profile.is_numeric:
                continue
            if cancel_token is not None:
                cancel_token.raise_if_cancelled("distributions")

            stats = profile.stats if isinstance(profile.stats, NumericStats) else None
            if stats is None:
                stats = self.calculator.numeric_stats(column_values(records, name))
            if stats.count == 0:
                continue

            patterns.append(DistributionPattern(
                column=name,
                stats=stats,
                shape_label=classify_shape(stats.skewness, stats.kurtosis),
            ))
        return patterns

    def detect_outliers(
        self,
        records: Sequence[Mapping],
        profiles: Dict[str, ColumnProfile],
        cancel_token: Optional[CancellationToken] = None
    ) -> List[OutlierSet]:
        outlier_sets = []
        for name, profile in profiles.items():
            if not profile.is_numeric:
                continue
            if cancel_token is not None:
                cancel_token.raise_if_cancelled("outliers")

            outliers = self.column_outliers(name, aligned_numeric_array(column_values(records, name)))
            if outliers is not None:
                outlier_sets.append(outliers)
        return outlier_sets

    def column_outliers(self, column: str, data: np.ndarray) -> Optional[OutlierSet]:
        """
        Values farther than ``outlier_threshold`` population std devs from the mean.

        Args:
            column: Column name
            data: Row-aligned values, NaN for unusable rows

        Returns:
            OutlierSet with row indices, or None when there are no outliers
        """
        valid = ~np.isnan(data)
        if not valid.any():
            return None

        values = data[valid]
        mean = float(values.mean())
        std = float(values.std())
        if std == 0:
            return None

        cutoff = self.outlier_threshold * std
        deviations = np.abs(data - mean)
        hits = np.where(valid & (deviations > cutoff))[0]
        if hits.size == 0:
            return None

        items = tuple(
            OutlierItem(value=float(data[i]), index=int(i), deviation=float(deviations[i]))
            for i in hits
        )
        return OutlierSet(column=column, items=items, threshold=cutoff, mean=mean, standard_deviation=std)
