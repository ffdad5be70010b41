"""
Temporal analysis for (date, value) series.

Provides:
- OLS trend over series position (direction, slope, intercept, strength = sqrt(R^2))
- Seasonality estimate: a period guessed from turning points of the first
  difference, then the maximum autocorrelation over lags 1..2*period
- A cumulative-series flag (non-negative, never decreasing)
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy.stats import linregress

from viz_advisor.core.cancellation import CancellationToken
from viz_advisor.core.constants import (
    DEFAULT_SEASONALITY_THRESHOLD,
    FLAT_SLOPE_TOLERANCE,
    MIN_SEASONALITY_POINTS,
    MIN_TIME_SERIES_POINTS,
)
from viz_advisor.patterns.pattern_result import Seasonality, TimeSeriesPattern, Trend
from viz_advisor.profiler.column_profiler import column_values
from viz_advisor.profiler.profile_result import ColumnProfile
from viz_advisor.profiler.statistics_calculator import pearson_correlation
from viz_advisor.profiler.type_inferrer import coerce_datetime, to_finite_float

logger = logging.getLogger(__name__)


def _clamp01(value: float) -> float:
    if value is None or math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def build_series(dates: Sequence, values: Sequence) -> np.ndarray:
    """
    Date-sorted values of the rows where both the date and the value are valid.

    Rows with equal dates keep their original order.
    """
    pairs: List[Tuple[object, float]] = []
    for raw_date, raw_value in zip(dates, values):
        timestamp = coerce_datetime(raw_date)
        number = to_finite_float(raw_value)
        if timestamp is not None and number is not None:
            pairs.append((timestamp, number))
    pairs.sort(key=lambda pair: pair[0])
    return np.array([value for _, value in pairs], dtype=float)


class TemporalAnalyzer:
    """
    Trend and seasonality analysis for every (date column, numeric column) pair.

    A series is reported when its trend or seasonality strength exceeds the
    seasonality threshold.
    """

    def __init__(
        self,
        seasonality_threshold: float = DEFAULT_SEASONALITY_THRESHOLD,
        min_points: int = MIN_TIME_SERIES_POINTS
    ):
        """
        Initialize temporal analyzer.

        Args:
            seasonality_threshold: Strength a trend or seasonality must exceed (default: 0.3)
            min_points: Minimum valid points per series (default: 3)
        """
        self.seasonality_threshold = seasonality_threshold
        self.min_points = min_points

    def analyze(
        self,
        records: Sequence[Mapping],
        profiles: Dict[str, ColumnProfile],
        cancel_token: Optional[CancellationToken] = None
    ) -> List[TimeSeriesPattern]:
        date_columns = [name for name, p in profiles.items() if p.is_date]
        numeric_columns = [name for name, p in profiles.items() if p.is_numeric]

        patterns = []
        for date_column in date_columns:
            dates = column_values(records, date_column)
            for value_column in numeric_columns:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled("time_series")
                series = build_series(dates, column_values(records, value_column))
                pattern = self.analyze_series(date_column, value_column, series)
                if pattern is not None:
                    patterns.append(pattern)
        return patterns

    def analyze_series(self, date_column: str, value_column: str, series: np.ndarray) -> Optional[TimeSeriesPattern]:
        """
        Analyze one date-sorted series.

        Returns:
            TimeSeriesPattern, or None if too short or without a strong enough signal
        """
        if series.size < self.min_points:
            return None

        trend = self._analyze_trend(series)
        seasonality = self._detect_seasonality(series)
        seasonal_strength = seasonality.strength if seasonality else 0.0

        if trend.strength <= self.seasonality_threshold and seasonal_strength <= self.seasonality_threshold:
            return None

        return TimeSeriesPattern(
            date_column=date_column,
            value_column=value_column,
            trend=trend,
            seasonality=seasonality,
            confidence=max(trend.strength, seasonal_strength),
            point_count=int(series.size),
            is_cumulative=self._is_cumulative(series),
        )

    def _analyze_trend(self, series: np.ndarray) -> Trend:
        """Ordinary least squares of value against series position."""
        positions = np.arange(series.size, dtype=float)
        fit = linregress(positions, series)
        slope = float(fit.slope)

        if abs(slope) < FLAT_SLOPE_TOLERANCE:
            direction = "stable"
        elif slope > 0:
            direction = "increasing"
        else:
            direction = "decreasing"

        return Trend(
            direction=direction,
            slope=slope,
            intercept=float(fit.intercept),
            strength=math.sqrt(_clamp01(float(fit.rvalue) ** 2)),
        )

    def _detect_seasonality(self, series: np.ndarray) -> Optional[Seasonality]:
        """
        Guess a period from turning points, then take the strongest autocorrelation.

        Returns:
            Seasonality, or None with fewer than 4 points
        """
        n = series.size
        if n < MIN_SEASONALITY_POINTS:
            return None

        rising = np.diff(series) > 0
        turning_points = int(np.sum(rising[1:] != rising[:-1]))
        period = max(1, int(math.floor(n / (turning_points + 1) + 0.5)))

        max_lag = min(period * 2, n // 2)
        correlations = [
            pearson_correlation(series[:-lag], series[lag:])
            for lag in range(1, max_lag + 1)
        ]
        strength = _clamp01(max(correlations)) if correlations else 0.0

        return Seasonality(period=period, strength=strength, exists=strength > self.seasonality_threshold)

    @staticmethod
    def _is_cumulative(series: np.ndarray) -> bool:
        steps = np.diff(series)
        return bool(np.all(series >= 0) and np.all(steps >= 0) and np.any(steps > 0))
