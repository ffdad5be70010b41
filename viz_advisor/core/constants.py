"""
viz-advisor Constants.

This module defines the thresholds, weights and defaults used throughout the
analysis engine. Every tunable here has a matching field on
``AnalysisSettings``; the remaining values are fixed policy.
"""

# ============================================================================
# Dataset Size Limits
# ============================================================================

# Rows analyzed before the engine substitutes a uniform sample
DEFAULT_MAX_DATA_POINTS: int = 100_000

# Row count the memory guard samples down to under memory pressure
DEFAULT_RECOMMENDED_SAMPLE_SIZE: int = 100_000

# Row count used for the fallback result when an analysis times out
DEFAULT_FALLBACK_SAMPLE_SIZE: int = 1_000

# Records inspected by the memory guard to extrapolate dataset size
MEMORY_ESTIMATE_SAMPLE_RECORDS: int = 10

# Byte multiplier applied to serialized record length (UTF-16 text estimate)
MEMORY_BYTES_PER_CHAR: int = 2

# Fraction of available memory the dataset estimate may reach
DEFAULT_MAX_MEMORY_FRACTION: float = 0.8


# ============================================================================
# Type Detection
# ============================================================================

# Non-null values inspected per column when detecting its type
DEFAULT_TYPE_SAMPLE_SIZE: int = 100

# Categorical when distinct count <= min(MAX_DISTINCT, RATIO * row count)
CATEGORICAL_MAX_DISTINCT: int = 10
CATEGORICAL_MAX_RATIO: float = 0.1


# ============================================================================
# Pattern Detection Thresholds
# ============================================================================

DEFAULT_CORRELATION_THRESHOLD: float = 0.3
DEFAULT_SEASONALITY_THRESHOLD: float = 0.3
DEFAULT_OUTLIER_THRESHOLD: float = 2.0

# Two-sided 95% cutoff for the correlation t-statistic
SIGNIFICANCE_T_CUTOFF: float = 1.96

# Minimum paired observations for a correlation
MIN_CORRELATION_POINTS: int = 3

# Minimum points for a time series / for seasonality estimation
MIN_TIME_SERIES_POINTS: int = 3
MIN_SEASONALITY_POINTS: int = 4

# Slope magnitude treated as a flat trend
FLAT_SLOPE_TOLERANCE: float = 1e-10

# Insight strength required for trend/seasonality descriptions
STRONG_PATTERN_STRENGTH: float = 0.5

# Shape classification
NORMAL_SKEW_LIMIT: float = 0.5
NORMAL_KURTOSIS_LIMIT: float = 0.5
SKEWED_LIMIT: float = 1.0

# Category insights
DOMINANT_SHARE_PERCENT: float = 50.0
IMBALANCE_RATIO: float = 10.0
RARE_SHARE_PERCENT: float = 5.0
RARE_CONFIDENCE: float = 0.8
UNIFORM_DEVIATION_POINTS: float = 10.0

# Density clustering
DEFAULT_CLUSTER_MIN_SIZE: int = 3
DEFAULT_MAX_CLUSTER_POINTS: int = 5_000


# ============================================================================
# Suggestion Scoring
# ============================================================================

DEFAULT_MIN_CONFIDENCE_SCORE: float = 0.6
DEFAULT_MAX_TOTAL_SUGGESTIONS: int = 10

# Numeric columns considered when enumerating pairs and triples
DEFAULT_MAX_COMBINATION_COLUMNS: int = 8

# Final score weights
BASE_SCORE_WEIGHT: float = 0.4
PREFERENCE_WEIGHT: float = 0.3
COMPLEXITY_WEIGHT: float = 0.2
DIMENSIONALITY_WEIGHT: float = 0.1

# Applied only to three-dimensional suggestions
THREE_D_COMPLEXITY_PENALTY: float = 0.1
THREE_D_DIMENSIONALITY_BONUS: float = 0.1

NEUTRAL_PREFERENCE: float = 0.5
PREFERRED_CHART_WEIGHT: float = 1.0

# Base-score factor for pattern-backed rules with no detected pattern
UNPATTERNED_RELEVANCE: float = 0.5

# Histogram bin bounds
MIN_HISTOGRAM_BINS: int = 10
MAX_HISTOGRAM_BINS: int = 50

# Preference key naming the chart type the user prefers
PREFERRED_CHART_TYPE_KEY: str = "preferredChartType"


# ============================================================================
# Insights
# ============================================================================

INSIGHT_IMPORTANCE = {
    'trend': 0.85,
    'seasonality': 0.85,
    'correlation': 0.8,
    'outlier': 0.75,
    'distribution': 0.7,
    'categorical': 0.6,
}

MIN_INSIGHT_SCORE: float = 0.4
DEFAULT_MAX_INSIGHTS_PER_TYPE: int = 5
DEFAULT_MAX_TOTAL_INSIGHTS: int = 20


# ============================================================================
# Performance Recommendations
# ============================================================================

LARGE_DATASET_ROWS: int = 10_000
HIGH_CARDINALITY_DISTINCT: int = 1_000


# ============================================================================
# Cache
# ============================================================================

DEFAULT_CACHE_MAX_ENTRIES: int = 50

# Share of entries dropped (oldest first) when the cache overflows
CACHE_EVICTION_FRACTION: float = 0.2


# ============================================================================
# Execution
# ============================================================================

DEFAULT_TIMEOUT_SECONDS: float = 30.0
DEFAULT_MAX_WORKERS: int = 4
DEFAULT_RANDOM_SEED: int = 42


# ============================================================================
# Configuration Security Limits
# ============================================================================

# Maximum YAML settings file size (1MB)
MAX_YAML_FILE_SIZE: int = 1024 * 1024

MAX_YAML_NESTING_DEPTH: int = 20
MAX_YAML_KEY_COUNT: int = 1_000
