"""
Column type detection.

Type detection is a policy decision, so it lives in one explicit function
with a documented precedence (first match wins):

    1. numeric      more than half of the sampled non-null values are numbers
    2. boolean      every sampled value is a bool (bools never count as numbers)
    3. date         every sampled value is a date/datetime or a date-formatted
                    string that parses to a valid calendar date
    4. categorical  distinct non-null count <= min(10, 10% of row count)
    5. text         anything else

Low-cardinality numeric columns are therefore still numeric.

Null markers are None, the empty string, float NaN and NaT.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from viz_advisor.core.constants import (
    CATEGORICAL_MAX_DISTINCT,
    CATEGORICAL_MAX_RATIO,
    DEFAULT_TYPE_SAMPLE_SIZE,
)
from viz_advisor.profiler.profile_result import ColumnType

# Common date formats accepted for string values (ISO, US, EU, alternative ISO)
DATE_PATTERNS = [
    r'^\d{4}-\d{2}-\d{2}',
    r'^\d{2}/\d{2}/\d{4}',
    r'^\d{2}-\d{2}-\d{4}',
    r'^\d{4}/\d{2}/\d{2}',
]

_DATE_REGEXES = [re.compile(p) for p in DATE_PATTERNS]


def _is_nan_float(value: Any) -> bool:
    return isinstance(value, (float, np.floating)) and math.isnan(value)


def is_null(value: Any) -> bool:
    """True for None, empty string, float NaN and NaT."""
    if value is None or value is pd.NaT:
        return True
    if isinstance(value, str):
        return value == ""
    return _is_nan_float(value)


def is_number(value: Any) -> bool:
    """True for non-null ints, floats and numpy numbers. Bools are not numbers."""
    if isinstance(value, (bool, np.bool_)):
        return False
    if not isinstance(value, (int, float, np.integer, np.floating)):
        return False
    return not _is_nan_float(value)


def to_finite_float(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None if it is not a usable number."""
    if not is_number(value):
        return None
    result = float(value)
    return result if math.isfinite(result) else None


def coerce_datetime(value: Any) -> Optional[pd.Timestamp]:
    """
    Convert a date-like value to a timezone-naive Timestamp.

    Strings must match one of DATE_PATTERNS before pandas parses them, so
    bare numbers and free text are never read as dates.

    Returns:
        Timestamp, or None if the value is not a valid calendar date
    """
    if is_null(value) or isinstance(value, (bool, np.bool_)):
        return None

    if isinstance(value, str):
        text = value.strip()
        if not any(regex.match(text) for regex in _DATE_REGEXES):
            return None
        parsed = pd.to_datetime(text, errors='coerce')
    elif isinstance(value, (pd.Timestamp, datetime, date, np.datetime64)):
        parsed = pd.Timestamp(value)
    else:
        return None

    if parsed is None or pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert(None)
    return parsed


def non_null_values(values: Iterable[Any]) -> List[Any]:
    return [v for v in values if not is_null(v)]


def detect_column_type(
    values: Sequence[Any],
    row_count: Optional[int] = None,
    sample_size: int = DEFAULT_TYPE_SAMPLE_SIZE
) -> ColumnType:
    """
    Classify a column from its values.

    Args:
        values: Every value of the column, in row order
        row_count: Rows in the dataset (defaults to len(values))
        sample_size: Non-null values inspected for the numeric/boolean/date checks

    Returns:
        ColumnType following the precedence in the module docstring

    Example:
        >>> detect_column_type([1, 2, 2, 1])
        <ColumnType.NUMERIC: 'numeric'>
        >>> detect_column_type(["2024-01-01", "2024-02-01"])
        <ColumnType.DATE: 'date'>
    """
    if row_count is None:
        row_count = len(values)

    present = non_null_values(values)
    if not present:
        # Typed missing markers still say what the column held
        if any(_is_nan_float(v) for v in values):
            return ColumnType.NUMERIC
        if any(v is pd.NaT for v in values):
            return ColumnType.DATE
        return ColumnType.TEXT

    sample = present[:sample_size]

    number_count = sum(1 for v in sample if is_number(v))
    if number_count > len(sample) / 2:
        return ColumnType.NUMERIC

    if all(isinstance(v, (bool, np.bool_)) for v in sample):
        return ColumnType.BOOLEAN

    if all(coerce_datetime(v) is not None for v in sample):
        return ColumnType.DATE

    distinct_count = len(set(present))
    if distinct_count <= min(CATEGORICAL_MAX_DISTINCT, CATEGORICAL_MAX_RATIO * row_count):
        return ColumnType.CATEGORICAL

    return ColumnType.TEXT
