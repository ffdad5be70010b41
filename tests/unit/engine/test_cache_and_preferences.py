"""
Unit tests for the analysis cache and the preference store.
"""

import pytest

from viz_advisor.core.exceptions import PreferencePersistenceError
from viz_advisor.engine.cache import AnalysisCache, cache_key
from viz_advisor.engine.preferences import PreferenceStore


@pytest.mark.unit
class TestCacheKey:
    """Cache keys."""

    def test_key_ignores_column_order(self):
        """Keys use the column name set, not its order."""
        first = cache_key([{"a": 1, "b": 2}])
        second = cache_key([{"b": 5, "a": 9}])

        assert first == second

    def test_key_includes_row_count_and_fingerprint(self):
        """Row count and fingerprint distinguish keys."""
        records = [{"a": 1}, {"a": 2}]

        assert cache_key(records) != cache_key(records[:1])
        assert cache_key(records, "fast") != cache_key(records, "full")


@pytest.mark.unit
class TestAnalysisCache:
    """Bounded cache."""

    def test_get_and_put(self):
        """Stored values come back and hits/misses are counted."""
        cache = AnalysisCache(max_entries=5)
        key = cache_key([{"a": 1}])

        assert cache.get(key) is None
        cache.put(key, "artifacts")

        assert cache.get(key) == "artifacts"
        assert key in cache
        assert cache.hits == 1
        assert cache.misses == 1

    def test_eviction_removes_oldest(self):
        """Growing past the bound evicts the oldest entries."""
        cache = AnalysisCache(max_entries=10)
        for i in range(11):
            cache.put(("key", i), i)

        assert len(cache) == 9
        assert ("key", 0) not in cache
        assert ("key", 1) not in cache
        assert ("key", 10) in cache

    def test_eviction_removes_at_least_one(self):
        """Small caches still evict."""
        cache = AnalysisCache(max_entries=1)
        cache.put("a", 1)
        cache.put("b", 2)

        assert len(cache) == 1
        assert "b" in cache

    def test_clear(self):
        """clear empties the cache."""
        cache = AnalysisCache()
        cache.put("a", 1)
        cache.clear()

        assert len(cache) == 0


@pytest.mark.unit
class TestPreferenceStore:
    """Copy-on-write preferences."""

    def test_update_replaces_snapshot(self):
        """Updates build a new mapping; old snapshots are unchanged."""
        store = PreferenceStore({"preferredChartType": "bar"})
        before = store.snapshot

        after = store.update({"preferredChartType": "line", "pie": 0.9})

        assert before["preferredChartType"] == "bar"
        assert "pie" not in before
        assert after == {"preferredChartType": "line", "pie": 0.9}
        assert store.snapshot is after

    def test_snapshot_is_read_only(self):
        """Snapshots cannot be mutated."""
        store = PreferenceStore()

        with pytest.raises(TypeError):
            store.snapshot["bar"] = 1.0

    def test_none_removes_key(self):
        """A None value deletes the preference."""
        store = PreferenceStore({"bar": 0.7, "line": 0.9})

        assert store.update({"bar": None}) == {"line": 0.9}

    def test_persist_called_with_new_preferences(self):
        """The persist hook receives every new snapshot."""
        saved = []
        store = PreferenceStore(persist=saved.append)

        store.update({"lastUsedSuggestionId": "bar-region-sales"})

        assert saved == [{"lastUsedSuggestionId": "bar-region-sales"}]

    def test_persist_failure_is_not_raised(self):
        """A failing persist hook is recorded, and the update still applies."""
        def fail(preferences):
            raise OSError("disk full")

        store = PreferenceStore(persist=fail)

        snapshot = store.update({"bar": 1.0})

        assert snapshot == {"bar": 1.0}
        assert isinstance(store.last_error, PreferencePersistenceError)
        assert "disk full" in store.last_error.message

    def test_load(self):
        """load replaces preferences with the stored mapping."""
        store = PreferenceStore({"bar": 0.1}, load=lambda: {"line": 1.0})

        assert store.load() == {"line": 1.0}
        assert store.snapshot == {"line": 1.0}

    def test_load_failure_keeps_preferences(self):
        """A failing load hook leaves the current preferences in place."""
        def fail():
            raise ValueError("corrupt")

        store = PreferenceStore({"bar": 0.1}, load=fail)

        assert store.load() == {"bar": 0.1}
        assert store.last_error is not None
