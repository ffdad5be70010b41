"""
Pairwise correlation analysis between numeric columns.

Pearson correlation over rows where both values are finite, with a
t-statistic significance test at the 95% level. Pairs whose absolute
coefficient falls below the threshold are dropped.
"""

import logging
import math
from itertools import combinations
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from viz_advisor.core.cancellation import CancellationToken
from viz_advisor.core.constants import (
    DEFAULT_CORRELATION_THRESHOLD,
    MIN_CORRELATION_POINTS,
    SIGNIFICANCE_T_CUTOFF,
)
from viz_advisor.patterns.pattern_result import CorrelationPattern, Significance
from viz_advisor.profiler.column_profiler import column_values
from viz_advisor.profiler.profile_result import ColumnProfile
from viz_advisor.profiler.statistics_calculator import aligned_numeric_array, pearson_correlation

logger = logging.getLogger(__name__)


def strength_label(coefficient: float) -> str:
    """Bucket |r| at 0.2/0.4/0.6/0.8."""
    magnitude = abs(coefficient)
    if magnitude >= 0.8:
        return "very strong"
    if magnitude >= 0.6:
        return "strong"
    if magnitude >= 0.4:
        return "moderate"
    if magnitude >= 0.2:
        return "weak"
    return "very weak"


def correlation_significance(coefficient: float, sample_size: int) -> Significance:
    """
    t = r * sqrt((n - 2) / (1 - r^2)); significant when |t| > 1.96.

    A perfect correlation has an infinite t-statistic.
    """
    remaining = 1.0 - coefficient ** 2
    if remaining <= 0:
        t_statistic = math.copysign(math.inf, coefficient)
    else:
        t_statistic = coefficient * math.sqrt((sample_size - 2) / remaining)
    return Significance(t_statistic=t_statistic, significant=abs(t_statistic) > SIGNIFICANCE_T_CUTOFF)


class CorrelationAnalyzer:
    """
    Pearson correlation for every unordered pair of numeric columns.

    Example:
        >>> analyzer = CorrelationAnalyzer(correlation_threshold=0.3)
        >>> patterns = analyzer.analyze(records, profiles)
    """

    def __init__(
        self,
        correlation_threshold: float = DEFAULT_CORRELATION_THRESHOLD,
        min_points: int = MIN_CORRELATION_POINTS
    ):
        """
        Args:
            correlation_threshold: Minimum |r| for a pair to be reported (default: 0.3)
            min_points: Minimum paired observations (default: 3)
        """
        self.correlation_threshold = correlation_threshold
        self.min_points = min_points

    def analyze(
        self,
        records: Sequence[Mapping],
        profiles: Dict[str, ColumnProfile],
        cancel_token: Optional[CancellationToken] = None
    ) -> List[CorrelationPattern]:
        numeric_columns = [name for name, profile in profiles.items() if profile.is_numeric]
        if len(numeric_columns) < 2:
            return []

        arrays = {name: aligned_numeric_array(column_values(records, name)) for name in numeric_columns}

        patterns = []
        for a, b in combinations(numeric_columns, 2):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled("correlations")
            try:
                pattern = self.correlate(a, arrays[a], b, arrays[b])
            except (ValueError, ArithmeticError) as e:
                logger.warning(f"Correlation failed for {a}/{b}: {e}")
                continue
            if pattern is not None:
                patterns.append(pattern)

        logger.debug(f"Kept {len(patterns)} correlations among {len(numeric_columns)} numeric columns")
        return patterns

    def correlate(self, a: str, x: np.ndarray, b: str, y: np.ndarray) -> Optional[CorrelationPattern]:
        """
        Correlate two row-aligned arrays (NaN marks unusable rows).

        Returns:
            CorrelationPattern, or None if too few points or below threshold
        """
        mask = ~(np.isnan(x) | np.isnan(y))
        sample_size = int(mask.sum())
        if sample_size < self.min_points:
            return None

        coefficient = pearson_correlation(x[mask], y[mask])
        if abs(coefficient) < self.correlation_threshold:
            return None

        return CorrelationPattern(
            columns=(a, b),
            coefficient=coefficient,
            strength_label=strength_label(coefficient),
            significance=correlation_significance(coefficient, sample_size),
            sample_size=sample_size,
        )
