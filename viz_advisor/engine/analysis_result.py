"""
AnalysisResult - the engine's output contract.

Rendering components read ``suggestions`` to pick a chart and
``metadata.primary_metric`` / ``metadata.suggested_metrics`` for default
column bindings.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from viz_advisor.patterns.pattern_result import PatternSet
from viz_advisor.profiler.profile_result import ColumnProfile
from viz_advisor.suggestions.insight_generator import Insight
from viz_advisor.suggestions.suggestion_result import Suggestion
from viz_advisor.utils.json_utils import dumps


@dataclass(frozen=True)
class AnalysisMetadata:
    """
    Run-level facts about an analysis.

    Attributes:
        row_count: Rows actually analyzed (the sample size when sampled)
        column_count: Fields per record
        sampled: True when a random sample replaced the dataset
        original_row_count: Rows in the dataset as supplied
        suggested_metrics: Numeric columns, in field order
        primary_metric: First numeric column, or None
        analysis_time_seconds: Wall-clock duration of the run
        analyzed_at: Completion time (UTC)
        cache_hit: True when profiles and patterns came from the cache
        partial: True for a timeout fallback result
        timed_out: True when the full analysis exceeded its timeout
        failed_steps: Pattern analyses downgraded to empty results
        performance_recommendations: Advice for large or high-cardinality data
    """
    row_count: int
    column_count: int
    sampled: bool = False
    original_row_count: int = 0
    suggested_metrics: Tuple[str, ...] = ()
    primary_metric: Optional[str] = None
    analysis_time_seconds: float = 0.0
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    cache_hit: bool = False
    partial: bool = False
    timed_out: bool = False
    failed_steps: Tuple[str, ...] = ()
    performance_recommendations: Tuple[Dict[str, Any], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_count": self.row_count,
            "column_count": self.column_count,
            "sampled": self.sampled,
            "original_row_count": self.original_row_count,
            "suggested_metrics": list(self.suggested_metrics),
            "primary_metric": self.primary_metric,
            "analysis_time_seconds": round(self.analysis_time_seconds, 4),
            "analyzed_at": self.analyzed_at.isoformat(),
            "cache_hit": self.cache_hit,
            "partial": self.partial,
            "timed_out": self.timed_out,
            "failed_steps": list(self.failed_steps),
            "performance_recommendations": [dict(r) for r in self.performance_recommendations],
        }


@dataclass(frozen=True)
class AnalysisResult:
    profiles: Mapping[str, ColumnProfile]
    patterns: PatternSet
    suggestions: Tuple[Suggestion, ...]
    insights: Tuple[Insight, ...]
    metadata: AnalysisMetadata

    @property
    def top_suggestion(self) -> Optional[Suggestion]:
        return self.suggestions[0] if self.suggestions else None

    def suggestions_of_type(self, chart_type: str) -> List[Suggestion]:
        return [s for s in self.suggestions if s.type.value == chart_type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profiles": {name: profile.to_dict() for name, profile in self.profiles.items()},
            "patterns": self.patterns.to_dict(),
            "suggestions": [s.to_dict() for s in self.suggestions],
            "insights": [i.to_dict() for i in self.insights],
            "metadata": self.metadata.to_dict(),
        }

    def to_json(self, indent: int = 2) -> str:
        return dumps(self.to_dict(), indent=indent)
