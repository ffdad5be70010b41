"""
Data structures for column profiles.

Profiles are computed once per analysis run and never mutated; a new run
produces new profile objects.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Any, Optional, Union

import numpy as np


def convert_numpy_types(obj):
    """
    Recursively convert numpy types to Python native types for serialization.

    NaN and infinite floats become None so profiles never report NaN.

    Args:
        obj: Any object that might contain numpy types

    Returns:
        Object with numpy types converted to Python types
    """
    if isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, (np.floating, float)):
        value = float(obj)
        return None if math.isnan(value) or math.isinf(value) else value
    elif isinstance(obj, np.ndarray):
        return [convert_numpy_types(item) for item in obj.tolist()]
    elif isinstance(obj, dict):
        return {key: convert_numpy_types(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_numpy_types(item) for item in obj]
    elif isinstance(obj, tuple):
        return tuple(convert_numpy_types(item) for item in obj)
    else:
        return obj


class ColumnType(str, Enum):
    """Column classification produced by type detection."""
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    DATE = "date"
    BOOLEAN = "boolean"
    TEXT = "text"


@dataclass(frozen=True)
class Quartiles:
    """First/third quartile and interquartile range."""
    q1: Optional[float] = None
    q3: Optional[float] = None
    iqr: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return convert_numpy_types({"q1": self.q1, "q3": self.q3, "iqr": self.iqr})


@dataclass(frozen=True)
class NumericStats:
    """
    Descriptive statistics for a numeric column.

    Every field is None when the column has no usable values (or, for
    skewness/kurtosis, too few values or zero spread).

    Attributes:
        min: Smallest value
        max: Largest value
        mean: Population mean
        median: 50th percentile
        standard_deviation: Population standard deviation (divides by n)
        quartiles: q1/q3/iqr
        skewness: Adjusted third-moment skewness (n >= 3)
        kurtosis: Adjusted excess kurtosis (n >= 4)
        count: Number of values the statistics were computed from
    """
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    median: Optional[float] = None
    standard_deviation: Optional[float] = None
    quartiles: Quartiles = field(default_factory=Quartiles)
    skewness: Optional[float] = None
    kurtosis: Optional[float] = None
    count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return convert_numpy_types({
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "median": self.median,
            "standard_deviation": self.standard_deviation,
            "quartiles": self.quartiles.to_dict(),
            "skewness": self.skewness,
            "kurtosis": self.kurtosis,
            "count": self.count,
        })


@dataclass(frozen=True)
class CategoryFrequency:
    """One row of a frequency table."""
    category: Any
    count: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "count": int(self.count),
            "percentage": round(float(self.percentage), 4),
        }


@dataclass(frozen=True)
class CategoricalStats:
    """
    Frequency statistics for a categorical column.

    Attributes:
        frequencies: Categories ordered by descending count (ties keep first-seen order)
        dominant_category: Most frequent category (None if column is empty)
        entropy: Shannon entropy of the distribution in bits
    """
    frequencies: List[CategoryFrequency] = field(default_factory=list)
    dominant_category: Any = None
    entropy: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "frequencies": [f.to_dict() for f in self.frequencies],
            "dominant_category": self.dominant_category,
            "entropy": round(float(self.entropy), 6),
        }


ColumnStats = Union[NumericStats, CategoricalStats, None]


@dataclass(frozen=True)
class ColumnProfile:
    """
    Profile of a single column.

    Attributes:
        name: Column name
        type: Detected (or declared) column type
        distinct_count: Distinct non-null values
        null_count: Null/empty values
        row_count: Total rows profiled
        stats: NumericStats, CategoricalStats, or None for date/boolean/text
        declared: True when the type came from a caller declaration
    """
    name: str
    type: ColumnType
    distinct_count: int
    null_count: int
    row_count: int
    stats: ColumnStats = None
    declared: bool = False

    @property
    def is_numeric(self) -> bool:
        return self.type == ColumnType.NUMERIC

    @property
    def is_categorical(self) -> bool:
        return self.type == ColumnType.CATEGORICAL

    @property
    def is_date(self) -> bool:
        return self.type == ColumnType.DATE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "type": self.type.value,
            "distinct_count": int(self.distinct_count),
            "null_count": int(self.null_count),
            "row_count": int(self.row_count),
            "stats": self.stats.to_dict() if self.stats is not None else None,
            "declared": self.declared,
        }
