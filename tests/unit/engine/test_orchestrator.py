"""
Unit tests for AnalysisEngine.

Covers the async entry point, caching, preference re-ranking, progress
reporting, cancellation, the timeout fallback and memory-pressure sampling.
Coroutines are driven with asyncio.run so no event-loop plugin is needed.
"""

import asyncio
import json
import threading
import time

import pytest

from viz_advisor.core.cancellation import CancellationToken
from viz_advisor.core.config import AnalysisSettings
from viz_advisor.core.exceptions import AnalysisCancelledError, ConfigError, EmptyDatasetError
from viz_advisor.core.observers import AnalysisObserver
from viz_advisor.engine.memory_guard import MemoryGuard
from viz_advisor.engine.orchestrator import AnalysisEngine
from viz_advisor.patterns.correlation import CorrelationAnalyzer
from viz_advisor.patterns.pattern_detector import PatternDetector


class RecordingObserver(AnalysisObserver):
    """Observer that records every event it receives."""

    def __init__(self):
        self.events = []

    def on_analysis_start(self, row_count, column_count):
        self.events.append(("start", row_count, column_count))

    def on_progress(self, percent, stage):
        self.events.append(("progress", percent, stage))

    def on_step_failed(self, step, error):
        self.events.append(("step_failed", step, error))

    def on_analysis_complete(self, result):
        self.events.append(("complete", result))

    def on_suggestions_updated(self, suggestions):
        self.events.append(("updated", suggestions))

    def of(self, kind):
        return [event for event in self.events if event[0] == kind]


class BrokenObserver(RecordingObserver):
    """Observer whose progress hook always fails."""

    def on_progress(self, percent, stage):
        raise RuntimeError("display gone")


def roomy_guard():
    return MemoryGuard(memory_probe=lambda: 10 ** 12)


@pytest.fixture
def engine():
    """Engine with a deterministic memory probe."""
    return AnalysisEngine(memory_guard=roomy_guard())


@pytest.fixture
def sales_records():
    """Sixty days of sales across three regions."""
    regions = ["north", "south", "east"]
    return [
        {
            "day": f"2024-{1 + i // 28:02d}-{1 + i % 28:02d}",
            "region": regions[i % 3],
            "units": i + 1,
            "revenue": (i + 1) * 12.5 + (i % 5),
        }
        for i in range(60)
    ]


@pytest.mark.unit
class TestAnalyze:
    """End-to-end analysis through the async API."""

    def test_result_contract(self, engine, sales_records):
        """Suggestions are unique, scored in [0, 1] and sorted."""
        result = asyncio.run(engine.analyze(sales_records))

        ids = [s.id for s in result.suggestions]
        scores = [s.final_score for s in result.suggestions]
        assert ids
        assert len(ids) == len(set(ids))
        assert all(0.0 <= score <= 1.0 for score in scores)
        assert scores == sorted(scores, reverse=True)
        assert len(result.suggestions) <= 10
        assert result.top_suggestion is result.suggestions[0]

    def test_metadata(self, engine, sales_records):
        """Metadata describes the run."""
        result = asyncio.run(engine.analyze(sales_records))
        meta = result.metadata

        assert meta.row_count == 60
        assert meta.column_count == 4
        assert meta.sampled is False
        assert meta.original_row_count == 60
        assert meta.suggested_metrics == ("units", "revenue")
        assert meta.primary_metric == "units"
        assert meta.cache_hit is False
        assert meta.partial is False
        assert meta.analyzed_at.tzinfo is not None

    def test_perfect_correlation_example(self, engine):
        """The x/y example correlates at 1 and yields a scatter suggestion."""
        records = [{"x": 1, "y": 2}, {"x": 2, "y": 4}, {"x": 3, "y": 6}]

        result = asyncio.run(engine.analyze(records))

        assert result.patterns.correlation_for("x", "y").coefficient == pytest.approx(1.0)
        scatter = result.suggestions_of_type("scatter")
        assert [s.id for s in scatter] == ["scatter-x-y"]
        assert scatter[0].base_score == pytest.approx(0.85)

    def test_declared_types_option(self, engine):
        """Declared types flow through options into profiling."""
        records = [{"c": value, "v": i * 10} for i, value in enumerate(["a", "a", "a", "a", "b"])]

        result = asyncio.run(engine.analyze(records, options={"declared_types": {"c": "categorical"}}))

        assert result.profiles["c"].stats.dominant_category == "a"
        assert any(s.id == "bar-c-v" for s in result.suggestions)
        assert any("dominates" in insight.description for insight in result.insights)

    def test_settings_override_option(self, engine, sales_records):
        """Setting overrides apply to one call only."""
        result = asyncio.run(engine.analyze(sales_records, options={"max_total_suggestions": 2}))

        assert len(result.suggestions) == 2
        assert engine.settings.max_total_suggestions == 10

    def test_empty_records(self, engine):
        """Empty datasets are rejected."""
        with pytest.raises(EmptyDatasetError):
            asyncio.run(engine.analyze([]))

    def test_analyze_sync(self, engine, sales_records):
        """The synchronous entry point runs the same pipeline."""
        result = engine.analyze_sync(sales_records)

        assert result.suggestions
        assert result.patterns.data_size == 60

    def test_to_json(self, engine):
        """Results serialize to strict JSON."""
        records = [{"x": 1, "y": 2}, {"x": 2, "y": 4}, {"x": 3, "y": 6}]
        result = asyncio.run(engine.analyze(records))

        payload = json.loads(result.to_json())

        assert payload["metadata"]["row_count"] == 3
        assert payload["patterns"]["correlations"][0]["significance"]["t_statistic"] is None
        assert payload["suggestions"][0]["id"] == "scatter-x-y"

    def test_concurrent_analyses_are_isolated(self, engine, sales_records):
        """Two analyses on one engine do not interfere."""
        small = [{"x": 1, "y": 2}, {"x": 2, "y": 4}, {"x": 3, "y": 6}]

        async def run_both():
            return await asyncio.gather(engine.analyze(sales_records), engine.analyze(small))

        large_result, small_result = asyncio.run(run_both())

        assert large_result.metadata.row_count == 60
        assert small_result.metadata.row_count == 3

    def test_from_config(self, tmp_path, sales_records):
        """Engines can be built from a YAML settings file."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("analysis:\n  max_total_suggestions: 3\n")

        engine = AnalysisEngine.from_config(str(config_file), memory_guard=roomy_guard())

        assert len(engine.analyze_sync(sales_records).suggestions) == 3

    def test_invalid_option(self, engine, sales_records):
        """Unknown option names are configuration errors."""
        with pytest.raises(ConfigError):
            asyncio.run(engine.analyze(sales_records, options={"max_rows": 5}))


@pytest.mark.unit
class TestCache:
    """Result caching."""

    def test_second_run_hits_cache(self, engine, sales_records):
        """The same dataset shape reuses profiles and patterns."""
        first = engine.analyze_sync(sales_records)
        second = engine.analyze_sync(sales_records)

        assert first.metadata.cache_hit is False
        assert second.metadata.cache_hit is True
        assert second.patterns is first.patterns
        assert [s.id for s in second.suggestions] == [s.id for s in first.suggestions]

    def test_different_options_miss(self, engine, sales_records):
        """Different settings never share a cache entry."""
        engine.analyze_sync(sales_records)
        result = engine.analyze_sync(sales_records, options={"correlation_threshold": 0.9})

        assert result.metadata.cache_hit is False

    def test_clear_cache(self, engine, sales_records):
        """clear_cache forces recomputation."""
        engine.analyze_sync(sales_records)
        engine.clear_cache()

        assert engine.analyze_sync(sales_records).metadata.cache_hit is False


@pytest.mark.unit
class TestPreferences:
    """Preference updates and re-ranking."""

    def test_update_reranks_last_analysis(self, sales_records):
        """Preferring a chart type moves it to the top."""
        observer = RecordingObserver()
        engine = AnalysisEngine(observers=[observer], memory_guard=roomy_guard())
        engine.analyze_sync(sales_records)

        reranked = engine.update_preferences({"preferredChartType": "boxplot"})

        assert reranked[0].type.value == "boxplot"
        assert observer.of("updated")[0][1] == reranked
        assert engine.user_preferences["preferredChartType"] == "boxplot"

    def test_update_before_analysis(self, engine):
        """Without a prior analysis there is nothing to re-rank."""
        assert engine.update_preferences({"preferredChartType": "line"}) == []
        assert engine.user_preferences == {"preferredChartType": "line"}

    def test_preferences_persisted_and_loaded(self, sales_records):
        """The persist hook sees updates; the load hook seeds the engine."""
        saved = []
        engine = AnalysisEngine(
            persist=saved.append,
            load=lambda: {"preferredChartType": "boxplot"},
            memory_guard=roomy_guard(),
        )

        result = engine.analyze_sync(sales_records)
        engine.update_preferences({"lastUsedSuggestionId": result.suggestions[0].id})

        assert result.suggestions[0].type.value == "boxplot"
        assert saved[-1]["preferredChartType"] == "boxplot"
        assert saved[-1]["lastUsedSuggestionId"] == result.suggestions[0].id

    def test_persist_failure_does_not_raise(self, sales_records):
        """A broken persist hook leaves the session usable."""
        def fail(preferences):
            raise OSError("read-only storage")

        engine = AnalysisEngine(persist=fail, memory_guard=roomy_guard())
        engine.analyze_sync(sales_records)

        assert engine.update_preferences({"preferredChartType": "line"})
        assert engine.preferences.last_error is not None


@pytest.mark.unit
class TestProgressAndObservers:
    """Progress reporting and observer isolation."""

    def test_progress_stages(self, engine, sales_records):
        """Progress moves through every stage in order."""
        calls = []

        asyncio.run(engine.analyze(sales_records, progress=lambda percent, stage: calls.append((percent, stage))))

        assert calls == [
            (5, "memory_check"),
            (10, "profiling"),
            (30, "patterns"),
            (70, "suggestions"),
            (85, "insights"),
            (90, "ranking"),
            (100, "complete"),
        ]

    def test_observer_events(self, sales_records):
        """Observers see start and completion."""
        observer = RecordingObserver()
        engine = AnalysisEngine(observers=[observer], memory_guard=roomy_guard())

        result = engine.analyze_sync(sales_records)

        assert observer.of("start") == [("start", 60, 4)]
        assert observer.of("complete")[0][1] is result

    def test_failing_observer_is_isolated(self, sales_records):
        """An observer that raises does not break the analysis."""
        engine = AnalysisEngine(observers=[BrokenObserver()], memory_guard=roomy_guard())

        assert engine.analyze_sync(sales_records).suggestions

    def test_step_failure_reported(self, sales_records, monkeypatch):
        """Failed pattern analyses are reported and recorded in metadata."""
        def explode(self, records, profiles, cancel_token=None):
            raise ValueError("singular matrix")

        monkeypatch.setattr(CorrelationAnalyzer, "analyze", explode)
        observer = RecordingObserver()
        engine = AnalysisEngine(observers=[observer], memory_guard=roomy_guard())

        result = engine.analyze_sync(sales_records)

        assert result.metadata.failed_steps == ("correlations",)
        assert observer.of("step_failed")[0][1] == "correlations"
        assert result.suggestions


@pytest.mark.unit
class TestCancellationAndTimeout:
    """Cancellation and the timeout fallback."""

    def test_cancelled_token(self, engine, sales_records):
        """A cancelled token aborts the run."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(AnalysisCancelledError):
            asyncio.run(engine.analyze(sales_records, cancel_token=token))

    def test_cancelled_run_is_not_cached(self, engine, sales_records):
        """An aborted run leaves no cache entry behind."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(AnalysisCancelledError):
            engine.analyze_sync(sales_records, cancel_token=token)

        assert len(engine.cache) == 0

    def test_timeout_returns_partial_result(self, engine, monkeypatch):
        """A slow analysis falls back to a small-sample partial result."""
        records = [{"a": i, "b": (i * 7) % 13, "c": 200 - i} for i in range(200)]
        original_detect = PatternDetector.detect

        def slow_detect(self, records, profiles, cancel_token=None):
            if len(records) > 50:
                time.sleep(1.0)
            return original_detect(self, records, profiles, cancel_token)

        monkeypatch.setattr(PatternDetector, "detect", slow_detect)

        result = asyncio.run(engine.analyze(records, options={"fallback_sample_size": 50}, timeout=0.2))

        meta = result.metadata
        assert meta.partial is True
        assert meta.timed_out is True
        assert meta.sampled is True
        assert meta.row_count == 50
        assert meta.original_row_count == 200
        assert result.patterns.clusters == ()

    def test_update_after_timeout_reranks_fallback(self, engine, monkeypatch):
        """After a timeout, preference updates re-rank the fallback result."""
        engine.analyze_sync([{"a": i, "b": 2 * i} for i in range(20)])
        records = [{"x": i, "y": (i * 7) % 13, "z": 200 - i} for i in range(200)]
        original_detect = PatternDetector.detect

        def slow_detect(self, records, profiles, cancel_token=None):
            if len(records) > 50:
                time.sleep(1.0)
            return original_detect(self, records, profiles, cancel_token)

        monkeypatch.setattr(PatternDetector, "detect", slow_detect)
        asyncio.run(engine.analyze(records, options={"fallback_sample_size": 50}, timeout=0.2))

        reranked = engine.update_preferences({"preferredChartType": "scatter"})

        assert reranked
        assert reranked[0].type.value == "scatter"
        assert all(set(s.columns.values()) <= {"x", "y", "z"} for s in reranked)

    def test_older_run_finishing_late_keeps_newer_ranking(self, engine, monkeypatch):
        """A run that started first but finished last does not replace the newer candidates."""
        entered = threading.Event()
        release = threading.Event()
        original_detect = PatternDetector.detect

        def gated_detect(self, records, profiles, cancel_token=None):
            if "a" in profiles:
                entered.set()
                release.wait(5)
            return original_detect(self, records, profiles, cancel_token)

        monkeypatch.setattr(PatternDetector, "detect", gated_detect)
        older = threading.Thread(target=engine.analyze_sync, args=([{"a": i, "b": 2 * i} for i in range(20)],))
        older.start()
        assert entered.wait(5)

        engine.analyze_sync([{"x": i, "y": 3 * i + 1, "z": 50 - i} for i in range(20)])
        release.set()
        older.join(5)

        reranked = engine.update_preferences({"preferredChartType": "scatter"})

        assert reranked
        assert all(set(s.columns.values()) <= {"x", "y", "z"} for s in reranked)


@pytest.mark.unit
class TestMemoryPressure:
    """Sampling under memory pressure."""

    def test_dataset_sampled(self):
        """A dataset over the memory budget is analyzed on a sample."""
        guard = MemoryGuard(recommended_rows=100, memory_probe=lambda: 1_000)
        engine = AnalysisEngine(memory_guard=guard)
        records = [{"x": i, "y": i * 3 + (i % 7)} for i in range(500)]

        result = engine.analyze_sync(records)

        meta = result.metadata
        assert meta.sampled is True
        assert meta.row_count == 100
        assert meta.original_row_count == 500
        assert result.patterns.data_size == 100
        assert any(r["type"] == "memory" for r in meta.performance_recommendations)

    def test_row_limit_sampling(self):
        """Datasets over max_data_points are sampled even with ample memory."""
        settings = AnalysisSettings(max_data_points=120, recommended_sample_size=80)
        engine = AnalysisEngine(settings, memory_guard=None)
        records = [{"x": i, "y": i % 9} for i in range(300)]

        result = engine.analyze_sync(records)

        assert result.metadata.sampled is True
        assert result.metadata.row_count == 80

    def test_small_dataset_not_sampled(self, engine, sales_records):
        """Datasets within the limits are analyzed whole."""
        result = engine.analyze_sync(sales_records)

        assert result.metadata.sampled is False
        assert result.metadata.row_count == len(sales_records)
