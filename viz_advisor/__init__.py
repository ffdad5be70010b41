"""
viz-advisor: visualization suggestions for tabular data.

Profiles the columns of a dataset, detects structural patterns (correlations,
trends, seasonality, distribution shape, outliers, categorical skew and
density clusters) and ranks chart suggestions with column bindings.

Key Components:
- AnalysisEngine: Orchestrates the pipeline (cache, memory guard, preferences)
- AnalysisSettings: Tunable thresholds, loadable from YAML
- ColumnProfiler / PatternDetector: Profiling and pattern detection
- RuleCatalog / SuggestionGenerator / SuggestionScorer: Suggestion rules and ranking
"""

from viz_advisor.core.cancellation import CancellationToken
from viz_advisor.core.config import AnalysisSettings
from viz_advisor.engine.analysis_result import AnalysisMetadata, AnalysisResult
from viz_advisor.engine.orchestrator import AnalysisEngine
from viz_advisor.patterns.pattern_detector import PatternDetector
from viz_advisor.profiler.column_profiler import ColumnProfiler
from viz_advisor.profiler.profile_result import ColumnProfile, ColumnType
from viz_advisor.suggestions.rule_catalog import Rule, RuleCatalog
from viz_advisor.suggestions.scorer import SuggestionScorer
from viz_advisor.suggestions.suggestion_generator import SuggestionGenerator
from viz_advisor.suggestions.suggestion_result import ChartKind, RuleDomain, Suggestion

__version__ = "0.1.0"

__all__ = [
    'AnalysisEngine',
    'AnalysisMetadata',
    'AnalysisResult',
    'AnalysisSettings',
    'CancellationToken',
    'ChartKind',
    'ColumnProfile',
    'ColumnProfiler',
    'ColumnType',
    'PatternDetector',
    'Rule',
    'RuleCatalog',
    'RuleDomain',
    'Suggestion',
    'SuggestionGenerator',
    'SuggestionScorer',
]
