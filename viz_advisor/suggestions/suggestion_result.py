"""
Data structures for visualization suggestions.

A Suggestion is the contract a rendering layer binds to: ``visualization.type``
names the renderer and ``visualization.config`` carries that renderer's role
names (x, y, z, size, dimension, value, column, columns, bins).
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple


class ChartKind(str, Enum):
    """Closed set of chart types the engine can suggest."""
    BAR = "bar"
    PIE = "pie"
    TREEMAP = "treemap"
    SCATTER = "scatter"
    BUBBLE = "bubble"
    HEATMAP = "heatmap"
    LINE = "line"
    AREA = "area"
    SCATTER_3D = "scatter3d"
    BAR_3D = "bar3d"
    SURFACE = "surface"
    HISTOGRAM = "histogram"
    BOXPLOT = "boxplot"


class RuleDomain(str, Enum):
    """Data shape a rule applies to."""
    CATEGORICAL = "categorical"
    NUMERIC_RELATIONSHIP = "numeric_relationship"
    TIME_SERIES = "time_series"
    THREE_DIMENSIONAL = "three_dimensional"
    DISTRIBUTION = "distribution"


@dataclass(frozen=True)
class VisualizationSpec:
    """Chart type plus renderer configuration."""
    type: ChartKind
    config: Mapping[str, Any] = field(default_factory=dict)
    dimensions: int = 2

    def __post_init__(self):
        object.__setattr__(self, 'config', MappingProxyType(dict(self.config)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "config": {k: list(v) if isinstance(v, tuple) else v for k, v in self.config.items()},
            "dimensions": self.dimensions,
        }


def suggestion_id(kind: ChartKind, columns: Tuple[str, ...]) -> str:
    """Deterministic id: ``type-col1-col2...``."""
    return "-".join([kind.value, *columns])


@dataclass(frozen=True)
class Suggestion:
    """
    A candidate chart with column bindings and scores.

    Attributes:
        id: Deterministic id built from the chart type and bound columns
        type: Chart type
        title: Short human-readable title
        description: One-line explanation of why the chart fits
        columns: Role -> column name
        visualization: Renderer type and configuration
        domain: Rule domain that produced the suggestion
        base_score: Rule score scaled by pattern relevance, in [0, 1]
        final_score: Ranking score in [0, 1] (equal to base_score until scored)
    """
    id: str
    type: ChartKind
    title: str
    description: str
    columns: Mapping[str, str]
    visualization: VisualizationSpec
    domain: RuleDomain
    base_score: float
    final_score: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'columns', MappingProxyType(dict(self.columns)))

    @property
    def is_three_dimensional(self) -> bool:
        return self.visualization.dimensions >= 3

    def with_final_score(self, final_score: float) -> "Suggestion":
        return replace(self, final_score=final_score)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "columns": dict(self.columns),
            "visualization": self.visualization.to_dict(),
            "domain": self.domain.value,
            "base_score": round(float(self.base_score), 4),
            "final_score": round(float(self.final_score), 4),
        }
