"""
JSON serialization utilities for analysis results.

Handles numpy types, pandas timestamps, enums, read-only mappings and any
object exposing ``to_dict()`` so results serialize without pre-conversion.
"""

import json
import math
from datetime import datetime, date
from enum import Enum
from types import MappingProxyType
from typing import Any

import numpy as np
import pandas as pd


class NumpyJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for analysis results.

    Converts:
    - numpy int/float/bool types -> Python int/float/bool (NaN/inf -> null)
    - numpy arrays, sets, tuples -> lists
    - pandas Timestamp, datetime/date -> ISO format string
    - Enum members -> their value
    - MappingProxyType -> dict
    - objects with to_dict() -> that dict
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.integer):
            return int(obj)

        if isinstance(obj, np.floating):
            if np.isnan(obj) or np.isinf(obj):
                return None
            return float(obj)

        if isinstance(obj, np.bool_):
            return bool(obj)

        if isinstance(obj, np.ndarray):
            return obj.tolist()

        if isinstance(obj, pd.Timestamp):
            return obj.isoformat()

        if isinstance(obj, (datetime, date)):
            return obj.isoformat()

        if isinstance(obj, Enum):
            return obj.value

        if isinstance(obj, MappingProxyType):
            return dict(obj)

        if isinstance(obj, (set, frozenset)):
            return list(obj)

        if hasattr(obj, 'to_dict'):
            return obj.to_dict()

        return super().default(obj)


def _replace_non_finite(obj: Any) -> Any:
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    if isinstance(obj, dict):
        return {key: _replace_non_finite(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_replace_non_finite(item) for item in obj]
    return obj


def dumps(obj: Any, indent: int = 2) -> str:
    """
    Serialize to strict JSON.

    Plain Python NaN/inf floats are written as null as well, since the
    encoder's ``default`` hook never sees built-in floats.
    """
    if hasattr(obj, 'to_dict'):
        obj = obj.to_dict()
    return json.dumps(_replace_non_finite(obj), cls=NumpyJSONEncoder, indent=indent, allow_nan=False)
