"""
Statistics Calculator - descriptive estimators used for profiling and scoring.

Architecture:
    Module-level functions implement the individual estimators so pattern
    analyzers can reuse them directly; StatisticsCalculator bundles them into
    the per-column NumericStats / CategoricalStats objects.

Design Decisions:
    - Mean and variance use population formulas (divide by n)
    - Skewness/kurtosis use adjusted-moment estimators built on the population
      standard deviation; they are undefined (None) for n < 3 / n < 4 or zero spread
    - Quartiles use linear-interpolated percentiles, so
      min <= q1 <= median <= q3 <= max always holds
    - Non-finite values are dropped before any estimator runs

Usage:
    calculator = StatisticsCalculator()
    numeric = calculator.numeric_stats([1, 2, 3, 4])
    categorical = calculator.categorical_stats(["a", "a", "b"])
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from viz_advisor.profiler.profile_result import (
    CategoricalStats,
    CategoryFrequency,
    NumericStats,
    Quartiles,
)
from viz_advisor.profiler.type_inferrer import non_null_values, to_finite_float

logger = logging.getLogger(__name__)


def finite_array(values: Sequence[Any]) -> np.ndarray:
    """Finite numeric values of ``values`` as a float array (nulls and non-numbers dropped)."""
    numbers = [to_finite_float(v) for v in values]
    return np.array([v for v in numbers if v is not None], dtype=float)


def population_std(data: np.ndarray) -> float:
    return float(np.std(data)) if data.size else 0.0


def adjusted_skewness(data: np.ndarray) -> Optional[float]:
    """
    Adjusted sample skewness.

    skew = n / ((n-1)(n-2)) * sum(((x - mean) / sd) ** 3), sd = population std.
    """
    n = data.size
    if n < 3:
        return None
    sd = population_std(data)
    if sd == 0:
        return None
    z = (data - data.mean()) / sd
    return float(n / ((n - 1) * (n - 2)) * np.sum(z ** 3))


def adjusted_kurtosis(data: np.ndarray) -> Optional[float]:
    """
    Adjusted excess kurtosis.

    kurt = n(n+1) / ((n-1)(n-2)(n-3)) * sum(z ** 4) - 3(n-1)^2 / ((n-2)(n-3))
    """
    n = data.size
    if n < 4:
        return None
    sd = population_std(data)
    if sd == 0:
        return None
    z = (data - data.mean()) / sd
    term = n * (n + 1) / ((n - 1) * (n - 2) * (n - 3)) * np.sum(z ** 4)
    correction = 3 * (n - 1) ** 2 / ((n - 2) * (n - 3))
    return float(term - correction)


def pearson_correlation(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Pearson correlation of two equal-length numeric sequences.

    The formula is symmetric term by term, so swapping the arguments gives
    the identical float. Zero variance in either input yields 0.0.
    """
    x = np.asarray(a, dtype=float)
    y = np.asarray(b, dtype=float)
    if x.size != y.size:
        raise ValueError(f"Length mismatch: {x.size} != {y.size}")
    if x.size == 0:
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    numerator = float(np.sum(dx * dy))
    denominator = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denominator == 0:
        return 0.0
    return max(-1.0, min(1.0, numerator / denominator))


def shannon_entropy(counts: Sequence[int]) -> float:
    total = float(sum(counts))
    if total <= 0:
        return 0.0
    probabilities = np.array([c / total for c in counts if c > 0])
    return float(-np.sum(probabilities * np.log2(probabilities)))


def frequency_table(values: Sequence[Any]) -> List[CategoryFrequency]:
    """
    Frequency table of non-null values, ordered by count descending.

    Percentages are shares of non-null values. Ties keep first-seen order.
    """
    present = non_null_values(values)
    counts: Dict[Any, int] = {}
    for value in present:
        counts[value] = counts.get(value, 0) + 1

    total = len(present)
    ordered = sorted(counts.items(), key=lambda item: -item[1])
    return [
        CategoryFrequency(category=category, count=count, percentage=count / total * 100)
        for category, count in ordered
    ]


class StatisticsCalculator:
    """Builds per-column statistics objects."""

    def numeric_stats(self, values: Sequence[Any]) -> NumericStats:
        """
        Calculate numeric statistics for a column.

        Args:
            values: Raw column values (nulls and non-numbers are ignored)

        Returns:
            NumericStats; every field is None when no finite values remain
        """
        data = finite_array(values)
        if data.size == 0:
            return NumericStats()

        q1, median, q3 = np.percentile(data, [25, 50, 75])
        return NumericStats(
            min=float(data.min()),
            max=float(data.max()),
            mean=float(data.mean()),
            median=float(median),
            standard_deviation=population_std(data),
            quartiles=Quartiles(q1=float(q1), q3=float(q3), iqr=float(q3 - q1)),
            skewness=adjusted_skewness(data),
            kurtosis=adjusted_kurtosis(data),
            count=int(data.size),
        )

    def categorical_stats(self, values: Sequence[Any]) -> CategoricalStats:
        """
        Calculate frequency statistics for a column.

        Args:
            values: Raw column values (nulls are ignored)

        Returns:
            CategoricalStats with frequency table, dominant category and entropy
        """
        frequencies = frequency_table(values)
        if not frequencies:
            return CategoricalStats()

        return CategoricalStats(
            frequencies=frequencies,
            dominant_category=frequencies[0].category,
            entropy=shannon_entropy([f.count for f in frequencies]),
        )


def aligned_numeric_array(values: Sequence[Any]) -> np.ndarray:
    """Row-aligned float array: unusable values become NaN so positions are preserved."""
    numbers = [to_finite_float(v) for v in values]
    return np.array([np.nan if v is None else v for v in numbers], dtype=float)
