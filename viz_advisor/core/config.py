"""Analysis settings parsing and validation."""

import os
from dataclasses import dataclass, fields, asdict, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from viz_advisor.core.exceptions import ConfigError, YAMLSizeError
from viz_advisor.core.constants import (
    DEFAULT_MAX_DATA_POINTS,
    DEFAULT_RECOMMENDED_SAMPLE_SIZE,
    DEFAULT_FALLBACK_SAMPLE_SIZE,
    DEFAULT_MAX_MEMORY_FRACTION,
    DEFAULT_TYPE_SAMPLE_SIZE,
    DEFAULT_CORRELATION_THRESHOLD,
    DEFAULT_SEASONALITY_THRESHOLD,
    DEFAULT_OUTLIER_THRESHOLD,
    DEFAULT_CLUSTER_MIN_SIZE,
    DEFAULT_MAX_CLUSTER_POINTS,
    DEFAULT_MIN_CONFIDENCE_SCORE,
    DEFAULT_MAX_TOTAL_SUGGESTIONS,
    DEFAULT_MAX_COMBINATION_COLUMNS,
    DEFAULT_MAX_INSIGHTS_PER_TYPE,
    DEFAULT_MAX_TOTAL_INSIGHTS,
    DEFAULT_CACHE_MAX_ENTRIES,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_RANDOM_SEED,
    MAX_YAML_FILE_SIZE,
    MAX_YAML_NESTING_DEPTH,
    MAX_YAML_KEY_COUNT,
)


# Settings that must lie in [0, 1]
_UNIT_INTERVAL_FIELDS = (
    'correlation_threshold',
    'seasonality_threshold',
    'min_confidence_score',
)

# Settings that must be positive integers
_POSITIVE_INT_FIELDS = (
    'max_data_points',
    'recommended_sample_size',
    'fallback_sample_size',
    'type_sample_size',
    'cluster_min_size',
    'max_cluster_points',
    'max_total_suggestions',
    'max_combination_columns',
    'max_insights_per_type',
    'max_total_insights',
    'cache_max_entries',
    'max_workers',
)


@dataclass(frozen=True)
class AnalysisSettings:
    """
    Tunable settings for one analysis engine.

    Instances are immutable; use ``merged()`` to derive per-call overrides.
    """
    max_data_points: int = DEFAULT_MAX_DATA_POINTS
    recommended_sample_size: int = DEFAULT_RECOMMENDED_SAMPLE_SIZE
    fallback_sample_size: int = DEFAULT_FALLBACK_SAMPLE_SIZE
    max_memory_fraction: float = DEFAULT_MAX_MEMORY_FRACTION
    type_sample_size: int = DEFAULT_TYPE_SAMPLE_SIZE
    correlation_threshold: float = DEFAULT_CORRELATION_THRESHOLD
    seasonality_threshold: float = DEFAULT_SEASONALITY_THRESHOLD
    outlier_threshold: float = DEFAULT_OUTLIER_THRESHOLD
    cluster_min_size: int = DEFAULT_CLUSTER_MIN_SIZE
    enable_clustering: bool = True
    max_cluster_points: int = DEFAULT_MAX_CLUSTER_POINTS
    min_confidence_score: float = DEFAULT_MIN_CONFIDENCE_SCORE
    max_total_suggestions: int = DEFAULT_MAX_TOTAL_SUGGESTIONS
    max_combination_columns: int = DEFAULT_MAX_COMBINATION_COLUMNS
    max_insights_per_type: int = DEFAULT_MAX_INSIGHTS_PER_TYPE
    max_total_insights: int = DEFAULT_MAX_TOTAL_INSIGHTS
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    timeout_seconds: Optional[float] = DEFAULT_TIMEOUT_SECONDS
    max_workers: int = DEFAULT_MAX_WORKERS
    random_seed: Optional[int] = DEFAULT_RANDOM_SEED

    def __post_init__(self):
        self._validate()

    def _validate(self) -> None:
        for name in _POSITIVE_INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"'{name}' must be a positive integer, got {value!r}", field=name)

        for name in _UNIT_INTERVAL_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise ConfigError(f"'{name}' must be between 0 and 1, got {value!r}", field=name)

        if not isinstance(self.max_memory_fraction, (int, float)) or not 0.0 < self.max_memory_fraction <= 1.0:
            raise ConfigError(
                f"'max_memory_fraction' must be in (0, 1], got {self.max_memory_fraction!r}",
                field='max_memory_fraction'
            )

        if not isinstance(self.outlier_threshold, (int, float)) or self.outlier_threshold <= 0:
            raise ConfigError(
                f"'outlier_threshold' must be positive, got {self.outlier_threshold!r}",
                field='outlier_threshold'
            )

        if self.timeout_seconds is not None and (
            not isinstance(self.timeout_seconds, (int, float)) or self.timeout_seconds <= 0
        ):
            raise ConfigError(
                f"'timeout_seconds' must be positive or null, got {self.timeout_seconds!r}",
                field='timeout_seconds'
            )

    @classmethod
    def from_dict(cls, config_dict: Optional[Dict[str, Any]]) -> "AnalysisSettings":
        """
        Build settings from a plain dictionary.

        Args:
            config_dict: Mapping of setting name to value. Unknown names are rejected.

        Returns:
            AnalysisSettings instance

        Raises:
            ConfigError: On unknown setting names or invalid values
        """
        if not config_dict:
            return cls()
        if not isinstance(config_dict, dict):
            raise ConfigError(f"Settings must be a mapping, got {type(config_dict).__name__}")

        cls._reject_unknown(config_dict)
        return cls(**config_dict)

    @classmethod
    def from_yaml(cls, config_path: str) -> "AnalysisSettings":
        """
        Load settings from a YAML file with size and structure limits.

        The file may hold the settings at top level or under an ``analysis`` key.

        Args:
            config_path: Path to YAML settings file

        Returns:
            AnalysisSettings instance

        Raises:
            ConfigError: If the file is missing or invalid
            YAMLSizeError: If the file exceeds size or structure limits
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        file_size = os.path.getsize(config_file)
        if file_size > MAX_YAML_FILE_SIZE:
            raise YAMLSizeError(
                f"Configuration file too large: {file_size:,} bytes. "
                f"Maximum allowed: {MAX_YAML_FILE_SIZE:,} bytes"
            )

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                config_dict = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML file: {str(e)}")
        except UnicodeDecodeError as e:
            raise ConfigError(f"Invalid file encoding (expected UTF-8): {str(e)}")

        if config_dict is None:
            return cls()

        cls._validate_yaml_structure(config_dict)

        if isinstance(config_dict, dict) and 'analysis' in config_dict:
            config_dict = config_dict['analysis']

        return cls.from_dict(config_dict)

    @classmethod
    def _reject_unknown(cls, overrides: Dict[str, Any]) -> None:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigError(
                f"Unknown setting(s): {', '.join(map(str, unknown))}",
                field=str(unknown[0])
            )

    @classmethod
    def _validate_yaml_structure(cls, obj: Any, current_depth: int = 0, total_keys: List[int] = None) -> None:
        """
        Reject YAML documents that are too deep or too large.

        Raises:
            YAMLSizeError: If structure is too complex
        """
        if total_keys is None:
            total_keys = [0]

        if current_depth > MAX_YAML_NESTING_DEPTH:
            raise YAMLSizeError(
                f"YAML nesting depth exceeds maximum of {MAX_YAML_NESTING_DEPTH} levels"
            )

        if isinstance(obj, (dict, list)):
            total_keys[0] += len(obj)
            if total_keys[0] > MAX_YAML_KEY_COUNT:
                raise YAMLSizeError(
                    f"YAML structure contains more than {MAX_YAML_KEY_COUNT:,} keys/items"
                )
            children = obj.values() if isinstance(obj, dict) else obj
            for child in children:
                cls._validate_yaml_structure(child, current_depth + 1, total_keys)

    def merged(self, overrides: Optional[Dict[str, Any]] = None) -> "AnalysisSettings":
        """Return a copy with ``overrides`` applied (validated like ``from_dict``)."""
        if not overrides:
            return self
        self._reject_unknown(overrides)
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return asdict(self)
