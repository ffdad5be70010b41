"""
Column Profiler.

Turns a sequence of uniform-shape records into one ColumnProfile per field.
The field set is taken from the first record; ingestion is responsible for
shape consistency, and missing keys simply read as null here.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from viz_advisor.core.constants import DEFAULT_TYPE_SAMPLE_SIZE
from viz_advisor.core.exceptions import EmptyDatasetError, InputError
from viz_advisor.profiler.profile_result import ColumnProfile, ColumnType
from viz_advisor.profiler.statistics_calculator import StatisticsCalculator
from viz_advisor.profiler.type_inferrer import detect_column_type, non_null_values

logger = logging.getLogger(__name__)

Record = Mapping
DeclaredTypes = Optional[Dict[str, Union[ColumnType, str]]]


def validate_records(records: Any) -> List[Mapping]:
    """
    Check that ``records`` is a non-empty sequence of mappings.

    A pandas DataFrame is accepted and converted to records.

    Raises:
        EmptyDatasetError: If there are no records
        InputError: If records is not a sequence of mappings
    """
    if isinstance(records, pd.DataFrame):
        records = records.to_dict(orient='records')

    if records is None:
        raise EmptyDatasetError()
    if isinstance(records, (str, bytes)) or not isinstance(records, Sequence):
        raise InputError(
            f"Records must be a sequence of mappings, got {type(records).__name__}",
            details={'type': type(records).__name__}
        )
    if len(records) == 0:
        raise EmptyDatasetError()
    if not isinstance(records[0], Mapping):
        raise InputError(
            f"Records must be mappings, got {type(records[0]).__name__}",
            details={'index': 0}
        )
    return records if isinstance(records, list) else list(records)


def column_names(records: Sequence[Mapping]) -> List[str]:
    return list(records[0].keys())


def column_values(records: Sequence[Mapping], column: str) -> List[Any]:
    return [record.get(column) for record in records]


class ColumnProfiler:
    """
    Profile every column of a dataset.

    Example:
        >>> profiler = ColumnProfiler()
        >>> profiles = profiler.profile([{"x": 1, "city": "Leeds"}, {"x": 2, "city": "York"}])
        >>> profiles["x"].type
        <ColumnType.NUMERIC: 'numeric'>
    """

    def __init__(
        self,
        type_sample_size: int = DEFAULT_TYPE_SAMPLE_SIZE,
        calculator: Optional[StatisticsCalculator] = None
    ):
        self.type_sample_size = type_sample_size
        self.calculator = calculator or StatisticsCalculator()

    def profile(self, records: Sequence[Mapping], declared_types: DeclaredTypes = None) -> Dict[str, ColumnProfile]:
        """
        Build a profile for each column.

        Args:
            records: Non-empty sequence of uniform-shape mappings
            declared_types: Optional column -> type overrides; skips inference for those columns

        Returns:
            Dict of column name to ColumnProfile, in field order of the first record

        Raises:
            EmptyDatasetError: If records is empty
            InputError: If records is malformed or a declared type is unknown
        """
        records = validate_records(records)
        declared = self._normalize_declared(declared_types)
        row_count = len(records)

        profiles: Dict[str, ColumnProfile] = {}
        for name in column_names(records):
            values = column_values(records, name)
            profiles[name] = self.profile_column(name, values, row_count, declared.get(name))

        logger.debug(f"Profiled {len(profiles)} columns over {row_count:,} rows")
        return profiles

    def profile_column(
        self,
        name: str,
        values: List[Any],
        row_count: int,
        declared_type: Optional[ColumnType] = None
    ) -> ColumnProfile:
        present = non_null_values(values)
        column_type = declared_type or detect_column_type(values, row_count, self.type_sample_size)

        stats = None
        if column_type == ColumnType.NUMERIC:
            stats = self.calculator.numeric_stats(present)
        elif column_type == ColumnType.CATEGORICAL:
            stats = self.calculator.categorical_stats(present)

        return ColumnProfile(
            name=name,
            type=column_type,
            distinct_count=len(set(present)),
            null_count=len(values) - len(present),
            row_count=row_count,
            stats=stats,
            declared=declared_type is not None,
        )

    @staticmethod
    def _normalize_declared(declared_types: DeclaredTypes) -> Dict[str, ColumnType]:
        if not declared_types:
            return {}
        normalized = {}
        for column, type_name in declared_types.items():
            try:
                normalized[column] = ColumnType(type_name)
            except ValueError:
                raise InputError(
                    f"Unknown declared type '{type_name}' for column '{column}'",
                    details={'column': column, 'type': str(type_name)}
                )
        return normalized
