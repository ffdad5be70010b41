"""
Analysis engine - orchestrates the full suggestion pipeline.

The engine:
1. Checks the result cache (keyed by dataset shape)
2. Applies the memory guard, sampling the dataset under memory pressure
3. Profiles columns
4. Detects patterns
5. Generates candidate suggestions and insights
6. Scores and ranks suggestions against the user preferences

The public contract is asynchronous: ``analyze`` schedules the CPU-bound
pipeline on a worker thread so an event loop serving a UI or requests is not
blocked. ``analyze_sync`` runs the same pipeline on the calling thread.

Cache and preference writes go through a single lock, so one engine can be
shared by concurrent callers.
"""

import asyncio
import functools
import logging
import threading
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from viz_advisor.core.cancellation import CancellationToken
from viz_advisor.core.config import AnalysisSettings
from viz_advisor.core.constants import HIGH_CARDINALITY_DISTINCT, LARGE_DATASET_ROWS
from viz_advisor.core.exceptions import MemoryPressure
from viz_advisor.core.observers import AnalysisObserver, ProgressCallbackObserver
from viz_advisor.engine.analysis_result import AnalysisMetadata, AnalysisResult
from viz_advisor.engine.cache import AnalysisCache, cache_key
from viz_advisor.engine.memory_guard import MemoryGuard
from viz_advisor.engine.preferences import LoadCallback, PersistCallback, PreferenceStore
from viz_advisor.engine.sampling import sample_records
from viz_advisor.patterns.pattern_detector import PatternDetector
from viz_advisor.patterns.pattern_result import PatternSet
from viz_advisor.profiler.column_profiler import ColumnProfiler, validate_records
from viz_advisor.profiler.profile_result import ColumnProfile
from viz_advisor.suggestions.insight_generator import Insight, InsightGenerator
from viz_advisor.suggestions.rule_catalog import RuleCatalog
from viz_advisor.suggestions.scorer import SuggestionScorer
from viz_advisor.suggestions.suggestion_generator import SuggestionGenerator
from viz_advisor.suggestions.suggestion_result import Suggestion

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]

# Option keys that are not AnalysisSettings fields
DECLARED_TYPES_OPTION = "declared_types"


def _discard_outcome(future: "asyncio.Future") -> None:
    # Abandoned runs end in AnalysisCancelledError; retrieve it so asyncio does not log it
    if not future.cancelled():
        future.exception()


@dataclass(frozen=True)
class AnalysisArtifacts:
    """Preference-independent outputs of one pipeline run (what the cache stores)."""
    profiles: Mapping[str, ColumnProfile]
    patterns: PatternSet
    candidates: Tuple[Suggestion, ...]
    insights: Tuple[Insight, ...]
    row_count: int
    original_row_count: int
    sampled: bool


class AnalysisEngine:
    """
    Main engine that turns a dataset into ranked visualization suggestions.

    Example usage:
        engine = AnalysisEngine(persist=store.save, load=store.load)
        result = await engine.analyze(records, progress=lambda pct, stage: print(pct, stage))
        best = result.top_suggestion

        # User picked a chart type in the UI
        reranked = engine.update_preferences({"preferredChartType": "line"})
    """

    def __init__(
        self,
        settings: Optional[AnalysisSettings] = None,
        observers: Optional[List[AnalysisObserver]] = None,
        persist: Optional[PersistCallback] = None,
        load: Optional[LoadCallback] = None,
        catalog: Optional[RuleCatalog] = None,
        memory_guard: Optional[MemoryGuard] = None,
        cache: Optional[AnalysisCache] = None
    ):
        """
        Initialize the analysis engine.

        Args:
            settings: Analysis settings (default: AnalysisSettings())
            observers: Observers notified of progress and results
            persist: Callback receiving the preference mapping after each update
            load: Callback returning the stored preference mapping
            catalog: Rule catalog (default: RuleCatalog.default())
            memory_guard: Memory guard (default: built from settings per run)
            cache: Result cache (default: bounded by settings.cache_max_entries)
        """
        self.settings: AnalysisSettings = settings or AnalysisSettings()
        self.observers: List[AnalysisObserver] = observers if observers is not None else []
        self.catalog: RuleCatalog = catalog or RuleCatalog.default()
        self.memory_guard = memory_guard
        self.cache: AnalysisCache = cache or AnalysisCache(self.settings.cache_max_entries)
        self.preferences = PreferenceStore(persist=persist, load=load)
        self.preferences.load()

        self._lock = threading.RLock()
        self._last_candidates: Tuple[Suggestion, ...] = ()
        self._last_scorer: Optional[SuggestionScorer] = None
        # Runs are numbered as they start; only the newest finished run sets the re-ranking state
        self._run_sequence = 0
        self._ranked_run = 0

    @classmethod
    def from_config(cls, config_path: str, **kwargs: Any) -> "AnalysisEngine":
        """
        Create engine from a YAML settings file.

        Raises:
            ConfigError: If the settings file is invalid
        """
        return cls(AnalysisSettings.from_yaml(config_path), **kwargs)

    @property
    def user_preferences(self) -> Mapping[str, Any]:
        return self.preferences.snapshot

    # ------------------------------------------------------------------
    # Observer notification
    # ------------------------------------------------------------------

    @staticmethod
    def _notify(observers: Sequence[AnalysisObserver], event: str, *args: Any) -> None:
        for observer in observers:
            try:
                getattr(observer, event)(*args)
            except Exception as e:
                logger.warning(f"Observer {observer.__class__.__name__} failed {event}: {e}")

    def _observers_for(self, progress: Optional[ProgressCallback]) -> List[AnalysisObserver]:
        observers = list(self.observers)
        if progress is not None:
            observers.append(ProgressCallbackObserver(progress))
        return observers

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def analyze(
        self,
        records: Sequence[Mapping],
        options: Optional[Dict[str, Any]] = None,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
        timeout: Optional[float] = None
    ) -> AnalysisResult:
        """
        Analyze a dataset on a worker thread.

        On timeout the full run is cancelled and a partial result computed on
        a small sample is returned instead of raising.

        Args:
            records: Non-empty sequence of uniform-shape mappings
            options: Settings overrides plus optional ``declared_types``
            progress: ``progress(percent, stage)`` callback
            cancel_token: Caller-owned cancellation token
            timeout: Seconds before falling back (default: settings.timeout_seconds)

        Returns:
            AnalysisResult

        Raises:
            InputError: If records is empty or malformed
            AnalysisCancelledError: If ``cancel_token`` is cancelled
        """
        records = validate_records(records)
        settings, _ = self._resolve_options(options)
        if timeout is None:
            timeout = settings.timeout_seconds

        loop = asyncio.get_running_loop()
        run_token = CancellationToken(parent=cancel_token)
        future = loop.run_in_executor(
            None, functools.partial(self._analyze, records, options, progress, run_token, self._next_run_id())
        )

        try:
            if timeout is None:
                return await future
            return await asyncio.wait_for(asyncio.shield(future), timeout)
        except asyncio.TimeoutError:
            run_token.cancel()
            future.add_done_callback(_discard_outcome)
            logger.warning(f"Analysis exceeded {timeout}s timeout; returning partial result from a sample")
            return await loop.run_in_executor(
                None, functools.partial(self._fallback, records, options, progress, cancel_token)
            )
        except asyncio.CancelledError:
            run_token.cancel()
            raise

    def analyze_sync(
        self,
        records: Sequence[Mapping],
        options: Optional[Dict[str, Any]] = None,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> AnalysisResult:
        """
        Run the full pipeline on the calling thread.

        Args and errors are as for ``analyze`` (no timeout handling).
        """
        return self._analyze(records, options, progress, cancel_token, self._next_run_id())

    def update_preferences(self, delta: Mapping[str, Any]) -> List[Suggestion]:
        """
        Merge a preference change and re-rank the last analysis.

        Only the scorer re-runs; profiles and patterns are reused.

        Args:
            delta: Preference keys to set (None removes a key)

        Returns:
            Re-ranked suggestions of the most recent analysis (empty if none ran)
        """
        with self._lock:
            snapshot = self.preferences.update(delta)
            candidates = self._last_candidates
            scorer = self._last_scorer

        if scorer is None:
            return []

        ranked = scorer.rank(candidates, snapshot)
        self._notify(self.observers, "on_suggestions_updated", ranked)
        return ranked

    def clear_cache(self) -> None:
        with self._lock:
            self.cache.clear()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _next_run_id(self) -> int:
        with self._lock:
            self._run_sequence += 1
            return self._run_sequence

    def _analyze(
        self,
        records: Sequence[Mapping],
        options: Optional[Dict[str, Any]],
        progress: Optional[ProgressCallback],
        cancel_token: Optional[CancellationToken],
        run_id: int
    ) -> AnalysisResult:
        records = validate_records(records)
        settings, declared_types = self._resolve_options(options)
        return self._run(records, settings, declared_types, self._observers_for(progress), cancel_token, run_id)

    def _resolve_options(self, options: Optional[Dict[str, Any]]) -> Tuple[AnalysisSettings, Optional[Dict[str, Any]]]:
        if not options:
            return self.settings, None
        overrides = dict(options)
        declared_types = overrides.pop(DECLARED_TYPES_OPTION, None)
        return self.settings.merged(overrides), declared_types

    @staticmethod
    def _fingerprint(settings: AnalysisSettings, declared_types: Optional[Dict[str, Any]]) -> Tuple:
        declared = tuple(sorted((str(k), str(v)) for k, v in (declared_types or {}).items()))
        return (tuple(sorted(settings.to_dict().items())), declared)

    def _run(
        self,
        records: Sequence[Mapping],
        settings: AnalysisSettings,
        declared_types: Optional[Dict[str, Any]],
        observers: List[AnalysisObserver],
        cancel_token: Optional[CancellationToken],
        run_id: int,
        partial: bool = False,
        use_cache: bool = True
    ) -> AnalysisResult:
        started = time.perf_counter()
        token = cancel_token or CancellationToken()
        column_count = len(records[0])
        self._notify(observers, "on_analysis_start", len(records), column_count)

        key = cache_key(records, self._fingerprint(settings, declared_types))
        artifacts = self.cache.get(key) if use_cache else None
        cache_hit = artifacts is not None

        if cache_hit:
            logger.info(f"Cache hit for {len(records):,} rows x {column_count} columns")
        else:
            artifacts = self._compute(records, settings, declared_types, observers, token, len(records))
            if use_cache:
                with self._lock:
                    self.cache.put(key, artifacts)

        token.raise_if_cancelled("ranking")
        self._notify(observers, "on_progress", 90, "ranking")
        scorer = SuggestionScorer(
            min_confidence_score=settings.min_confidence_score,
            max_total_suggestions=settings.max_total_suggestions,
        )
        suggestions = scorer.rank(artifacts.candidates, self.preferences.snapshot)

        with self._lock:
            if run_id > self._ranked_run:
                self._ranked_run = run_id
                self._last_candidates = artifacts.candidates
                self._last_scorer = scorer

        numeric = tuple(name for name, p in artifacts.profiles.items() if p.is_numeric)
        metadata = AnalysisMetadata(
            row_count=artifacts.row_count,
            column_count=column_count,
            sampled=artifacts.sampled,
            original_row_count=artifacts.original_row_count,
            suggested_metrics=numeric,
            primary_metric=numeric[0] if numeric else None,
            analysis_time_seconds=time.perf_counter() - started,
            cache_hit=cache_hit,
            partial=partial,
            timed_out=partial,
            failed_steps=artifacts.patterns.failed_steps,
            performance_recommendations=tuple(self._performance_recommendations(artifacts)),
        )
        result = AnalysisResult(
            profiles=artifacts.profiles,
            patterns=artifacts.patterns,
            suggestions=tuple(suggestions),
            insights=artifacts.insights,
            metadata=metadata,
        )

        self._notify(observers, "on_progress", 100, "complete")
        self._notify(observers, "on_analysis_complete", result)
        logger.info(
            f"Analysis complete: {len(suggestions)} suggestions, {len(result.insights)} insights "
            f"in {metadata.analysis_time_seconds:.2f}s"
        )
        return result

    def _compute(
        self,
        records: Sequence[Mapping],
        settings: AnalysisSettings,
        declared_types: Optional[Dict[str, Any]],
        observers: List[AnalysisObserver],
        token: CancellationToken,
        original_row_count: int,
        sampled: bool = False
    ) -> AnalysisArtifacts:
        """Memory guard, profiling, pattern detection, candidate and insight generation."""
        token.raise_if_cancelled("memory_check")
        self._notify(observers, "on_progress", 5, "memory_check")

        guard = self.memory_guard or MemoryGuard(
            max_memory_fraction=settings.max_memory_fraction,
            recommended_rows=settings.recommended_sample_size,
            max_rows=settings.max_data_points,
        )
        try:
            guard.check(records)
        except MemoryPressure as pressure:
            sample = sample_records(records, pressure.recommended_rows, settings.random_seed)
            if len(sample) < len(records):
                logger.info(f"Sampled {len(sample):,} of {len(records):,} rows")
                return self._compute(
                    sample, settings, declared_types, observers, token, original_row_count, sampled=True
                )
            logger.warning("Dataset is already at the recommended size; analyzing without further sampling")

        token.raise_if_cancelled("profiling")
        self._notify(observers, "on_progress", 10, "profiling")
        profiles = ColumnProfiler(type_sample_size=settings.type_sample_size).profile(records, declared_types)

        token.raise_if_cancelled("patterns")
        self._notify(observers, "on_progress", 30, "patterns")
        detector = PatternDetector.from_settings(
            settings,
            on_step_failed=lambda step, error: self._notify(observers, "on_step_failed", step, error),
        )
        patterns = detector.detect(records, profiles, token)

        token.raise_if_cancelled("suggestions")
        self._notify(observers, "on_progress", 70, "suggestions")
        generator = SuggestionGenerator(self.catalog, max_combination_columns=settings.max_combination_columns)
        candidates = generator.generate(profiles, patterns)

        token.raise_if_cancelled("insights")
        self._notify(observers, "on_progress", 85, "insights")
        insights = InsightGenerator(
            max_per_type=settings.max_insights_per_type,
            max_total=settings.max_total_insights,
        ).generate(patterns)

        return AnalysisArtifacts(
            profiles=profiles,
            patterns=patterns,
            candidates=tuple(candidates),
            insights=tuple(insights),
            row_count=len(records),
            original_row_count=original_row_count,
            sampled=sampled,
        )

    def _fallback(
        self,
        records: Sequence[Mapping],
        options: Optional[Dict[str, Any]],
        progress: Optional[ProgressCallback],
        cancel_token: Optional[CancellationToken]
    ) -> AnalysisResult:
        """Partial result on a small sample with clustering disabled (timeout path)."""
        settings, declared_types = self._resolve_options(options)
        settings = settings.merged({"enable_clustering": False})
        sample = sample_records(records, settings.fallback_sample_size, settings.random_seed)

        result = self._run(
            sample, settings, declared_types, self._observers_for(progress), cancel_token, self._next_run_id(),
            partial=True, use_cache=False
        )
        if len(sample) < len(records):
            metadata = replace(result.metadata, sampled=True, original_row_count=len(records))
            result = replace(result, metadata=metadata)
        return result

    @staticmethod
    def _performance_recommendations(artifacts: AnalysisArtifacts) -> List[Dict[str, Any]]:
        recommendations = []
        if artifacts.original_row_count > LARGE_DATASET_ROWS:
            recommendations.append({
                "type": "sampling",
                "message": (
                    f"Dataset has {artifacts.original_row_count:,} rows; "
                    f"sample or aggregate before rendering point-level charts"
                ),
            })
        for name, profile in artifacts.profiles.items():
            if profile.is_numeric and profile.distinct_count > HIGH_CARDINALITY_DISTINCT:
                recommendations.append({
                    "type": "binning",
                    "column": name,
                    "message": f"{name} has {profile.distinct_count:,} distinct values; bin it for bar-style charts",
                })
        if artifacts.sampled:
            recommendations.append({
                "type": "memory",
                "message": (
                    f"Analyzed a {artifacts.row_count:,}-row sample of {artifacts.original_row_count:,} rows "
                    f"to stay within the memory budget"
                ),
            })
        return recommendations
