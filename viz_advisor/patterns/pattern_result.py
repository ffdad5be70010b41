"""
Data structures for detected patterns.

Each pattern type carries a ``kind`` tag that is written into its serialized
form. Patterns are read-only outputs
of a single analysis pass.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from viz_advisor.profiler.profile_result import NumericStats, CategoryFrequency, convert_numpy_types


@dataclass(frozen=True)
class Significance:
    t_statistic: float
    significant: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"t_statistic": convert_numpy_types(self.t_statistic), "significant": bool(self.significant)}


@dataclass(frozen=True)
class CorrelationPattern:
    """
    Pearson correlation between two numeric columns.

    Attributes:
        columns: Column pair in first-seen column order
        coefficient: Pearson r in [-1, 1]
        strength_label: very weak / weak / moderate / strong / very strong
        significance: t-statistic and 95% significance flag
        sample_size: Paired observations used
    """
    columns: Tuple[str, str]
    coefficient: float
    strength_label: str
    significance: Significance
    sample_size: int
    kind: str = field(default="correlation", init=False)

    @property
    def direction(self) -> str:
        return "positive" if self.coefficient > 0 else "negative"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "columns": list(self.columns),
            "coefficient": round(float(self.coefficient), 6),
            "strength_label": self.strength_label,
            "direction": self.direction,
            "significance": self.significance.to_dict(),
            "sample_size": self.sample_size,
        }


@dataclass(frozen=True)
class Trend:
    direction: str
    slope: float
    intercept: float
    strength: float

    def to_dict(self) -> Dict[str, Any]:
        return convert_numpy_types({
            "direction": self.direction,
            "slope": self.slope,
            "intercept": self.intercept,
            "strength": self.strength,
        })


@dataclass(frozen=True)
class Seasonality:
    period: int
    strength: float
    exists: bool

    def to_dict(self) -> Dict[str, Any]:
        return convert_numpy_types({"period": self.period, "strength": self.strength, "exists": self.exists})


@dataclass(frozen=True)
class TimeSeriesPattern:
    """
    Trend and seasonality of a numeric column ordered by a date column.

    Attributes:
        date_column: Column providing the ordering
        value_column: Numeric column analyzed
        trend: OLS trend over series position
        seasonality: Autocorrelation-based seasonality, None with fewer than 4 points
        confidence: max(trend strength, seasonality strength)
        point_count: Valid (date, value) pairs in the series
        is_cumulative: Values are non-negative and never decrease (running total)
    """
    date_column: str
    value_column: str
    trend: Trend
    seasonality: Optional[Seasonality]
    confidence: float
    point_count: int
    is_cumulative: bool = False
    kind: str = field(default="time_series", init=False)

    @property
    def columns(self) -> Tuple[str, str]:
        return (self.date_column, self.value_column)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "date_column": self.date_column,
            "value_column": self.value_column,
            "trend": self.trend.to_dict(),
            "seasonality": self.seasonality.to_dict() if self.seasonality else None,
            "confidence": convert_numpy_types(self.confidence),
            "point_count": self.point_count,
            "is_cumulative": self.is_cumulative,
        }


@dataclass(frozen=True)
class DistributionPattern:
    column: str
    stats: NumericStats
    shape_label: str
    kind: str = field(default="distribution", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "column": self.column,
            "stats": self.stats.to_dict(),
            "shape_label": self.shape_label,
        }


@dataclass(frozen=True)
class OutlierItem:
    value: float
    index: int
    deviation: float

    def to_dict(self) -> Dict[str, Any]:
        return convert_numpy_types({"value": self.value, "index": self.index, "deviation": self.deviation})


@dataclass(frozen=True)
class OutlierSet:
    """
    Values of a numeric column far from its mean.

    Attributes:
        column: Column analyzed
        items: Outlying values with their row index and absolute deviation
        threshold: Absolute distance from the mean beyond which a value is an outlier
        mean: Column mean
        standard_deviation: Population standard deviation
    """
    column: str
    items: Tuple[OutlierItem, ...]
    threshold: float
    mean: float
    standard_deviation: float
    kind: str = field(default="outlier", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "column": self.column,
            "items": [item.to_dict() for item in self.items],
            "threshold": convert_numpy_types(self.threshold),
            "mean": convert_numpy_types(self.mean),
            "standard_deviation": convert_numpy_types(self.standard_deviation),
        }


@dataclass(frozen=True)
class DerivedInsight:
    kind: str
    description: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "description": self.description, "confidence": round(float(self.confidence), 4)}


@dataclass(frozen=True)
class CategoryInsight:
    column: str
    categories: Tuple[CategoryFrequency, ...]
    derived_insights: Tuple[DerivedInsight, ...]
    kind: str = field(default="categorical", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "column": self.column,
            "categories": [c.to_dict() for c in self.categories],
            "derived_insights": [i.to_dict() for i in self.derived_insights],
        }


@dataclass(frozen=True)
class ClusterPattern:
    """
    Density clusters found in the plane of two numeric columns.

    Attributes:
        columns: Column pair (x, y)
        clusters: Points of each cluster as (x, y) tuples; noise excluded
        confidence: Share of points assigned to a cluster
        epsilon: Neighbourhood radius used
        noise_count: Points left unclustered
    """
    columns: Tuple[str, str]
    clusters: Tuple[Tuple[Tuple[float, float], ...], ...]
    confidence: float
    epsilon: float
    noise_count: int
    kind: str = field(default="cluster", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "columns": list(self.columns),
            "clusters": [[list(point) for point in cluster] for cluster in self.clusters],
            "cluster_count": len(self.clusters),
            "confidence": convert_numpy_types(self.confidence),
            "epsilon": convert_numpy_types(self.epsilon),
            "noise_count": self.noise_count,
        }


@dataclass(frozen=True)
class PatternSet:
    """All patterns detected in one analysis pass."""
    correlations: Tuple[CorrelationPattern, ...] = ()
    time_series: Tuple[TimeSeriesPattern, ...] = ()
    distributions: Tuple[DistributionPattern, ...] = ()
    outliers: Tuple[OutlierSet, ...] = ()
    categories: Tuple[CategoryInsight, ...] = ()
    clusters: Tuple[ClusterPattern, ...] = ()
    data_size: int = 0
    processed_columns: int = 0
    failed_steps: Tuple[str, ...] = ()

    def correlation_for(self, a: str, b: str) -> Optional[CorrelationPattern]:
        """Correlation pattern for an unordered column pair, if one was kept."""
        pair = {a, b}
        for pattern in self.correlations:
            if set(pattern.columns) == pair:
                return pattern
        return None

    def time_series_for(self, date_column: str, value_column: str) -> Optional[TimeSeriesPattern]:
        for pattern in self.time_series:
            if pattern.date_column == date_column and pattern.value_column == value_column:
                return pattern
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlations": [p.to_dict() for p in self.correlations],
            "time_series": [p.to_dict() for p in self.time_series],
            "distributions": [p.to_dict() for p in self.distributions],
            "outliers": [p.to_dict() for p in self.outliers],
            "categories": [p.to_dict() for p in self.categories],
            "clusters": [p.to_dict() for p in self.clusters],
            "metadata": {
                "data_size": self.data_size,
                "processed_columns": self.processed_columns,
                "failed_steps": list(self.failed_steps),
            },
        }
