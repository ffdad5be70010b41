"""
Unit tests for constants module.

Checks that thresholds and weights are consistent with each other.
"""

import pytest

from viz_advisor.core.constants import (
    BASE_SCORE_WEIGHT,
    CACHE_EVICTION_FRACTION,
    CATEGORICAL_MAX_DISTINCT,
    CATEGORICAL_MAX_RATIO,
    COMPLEXITY_WEIGHT,
    DEFAULT_FALLBACK_SAMPLE_SIZE,
    DEFAULT_MAX_DATA_POINTS,
    DEFAULT_MAX_MEMORY_FRACTION,
    DEFAULT_MIN_CONFIDENCE_SCORE,
    DEFAULT_RECOMMENDED_SAMPLE_SIZE,
    DIMENSIONALITY_WEIGHT,
    INSIGHT_IMPORTANCE,
    MAX_HISTOGRAM_BINS,
    MAX_YAML_NESTING_DEPTH,
    MIN_HISTOGRAM_BINS,
    MIN_INSIGHT_SCORE,
    MIN_SEASONALITY_POINTS,
    MIN_TIME_SERIES_POINTS,
    NEUTRAL_PREFERENCE,
    PREFERENCE_WEIGHT,
    THREE_D_COMPLEXITY_PENALTY,
    THREE_D_DIMENSIONALITY_BONUS,
)


@pytest.mark.unit
class TestScoringConstants:
    """Suggestion scoring weights."""

    def test_weights_sum_to_one(self):
        """Final score weights sum to 1 so scores stay in [0, 1]."""
        total = BASE_SCORE_WEIGHT + PREFERENCE_WEIGHT + COMPLEXITY_WEIGHT + DIMENSIONALITY_WEIGHT
        assert total == pytest.approx(1.0)

    def test_three_d_adjustments_match(self):
        """The 3D penalty and bonus are equal."""
        assert THREE_D_COMPLEXITY_PENALTY == THREE_D_DIMENSIONALITY_BONUS

    def test_neutral_preference(self):
        """Neutral preference sits mid-range."""
        assert NEUTRAL_PREFERENCE == 0.5
        assert 0.0 < DEFAULT_MIN_CONFIDENCE_SCORE < 1.0

    def test_histogram_bounds(self):
        """Histogram bin bounds are ordered."""
        assert 0 < MIN_HISTOGRAM_BINS < MAX_HISTOGRAM_BINS


@pytest.mark.unit
class TestDetectionConstants:
    """Profiling and pattern thresholds."""

    def test_categorical_limits(self):
        """Categorical detection limits are positive."""
        assert CATEGORICAL_MAX_DISTINCT > 0
        assert 0.0 < CATEGORICAL_MAX_RATIO < 1.0

    def test_series_minimums(self):
        """Seasonality needs more points than a trend."""
        assert MIN_SEASONALITY_POINTS > MIN_TIME_SERIES_POINTS >= 3

    def test_insight_importance(self):
        """Every insight kind can clear the score cutoff at full confidence."""
        assert all(MIN_INSIGHT_SCORE <= weight <= 1.0 for weight in INSIGHT_IMPORTANCE.values())


@pytest.mark.unit
class TestResourceConstants:
    """Sampling, memory and cache limits."""

    def test_sample_sizes(self):
        """The timeout fallback uses a smaller sample than the memory guard."""
        assert DEFAULT_FALLBACK_SAMPLE_SIZE < DEFAULT_RECOMMENDED_SAMPLE_SIZE <= DEFAULT_MAX_DATA_POINTS

    def test_fractions(self):
        """Memory and eviction fractions are proper fractions."""
        assert 0.0 < DEFAULT_MAX_MEMORY_FRACTION <= 1.0
        assert 0.0 < CACHE_EVICTION_FRACTION < 1.0

    def test_yaml_nesting_depth(self):
        """YAML nesting depth allows normal settings files."""
        assert 5 < MAX_YAML_NESTING_DEPTH < 100
