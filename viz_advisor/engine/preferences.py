"""
User preference store.

Preferences are an immutable mapping replaced wholesale on every update
(copy-on-write), so a reader holding ``snapshot`` never sees a partially
applied update. Durable storage is delegated to injected callbacks.
"""

import logging
import threading
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from viz_advisor.core.exceptions import PreferencePersistenceError

logger = logging.getLogger(__name__)

PersistCallback = Callable[[Mapping[str, Any]], None]
LoadCallback = Callable[[], Optional[Mapping[str, Any]]]


class PreferenceStore:
    """
    Copy-on-write preference mapping with optional persistence hooks.

    Persistence failures are logged and never raised: the in-memory
    preferences stay valid for the session.
    """

    def __init__(
        self,
        initial: Optional[Mapping[str, Any]] = None,
        persist: Optional[PersistCallback] = None,
        load: Optional[LoadCallback] = None
    ):
        self._persist = persist
        self._load = load
        self._lock = threading.Lock()
        self._snapshot: Mapping[str, Any] = MappingProxyType(dict(initial or {}))
        self.last_error: Optional[PreferencePersistenceError] = None

    @property
    def snapshot(self) -> Mapping[str, Any]:
        """Current read-only preference mapping."""
        return self._snapshot

    def load(self) -> Mapping[str, Any]:
        """
        Replace the preferences with whatever the load hook returns.

        A failing or missing hook leaves the current preferences in place.
        """
        if self._load is None:
            return self._snapshot
        try:
            loaded = self._load()
        except Exception as e:
            self._record_failure("Failed to load preferences", e)
            return self._snapshot

        with self._lock:
            self._snapshot = MappingProxyType(dict(loaded or {}))
        logger.debug(f"Loaded {len(self._snapshot)} preferences")
        return self._snapshot

    def update(self, delta: Mapping[str, Any]) -> Mapping[str, Any]:
        """
        Merge ``delta`` into a new snapshot and persist it.

        A value of None removes the key.

        Returns:
            The new snapshot
        """
        with self._lock:
            merged = dict(self._snapshot)
            for key, value in delta.items():
                if value is None:
                    merged.pop(key, None)
                else:
                    merged[key] = value
            self._snapshot = MappingProxyType(merged)
            snapshot = self._snapshot

        self._save(snapshot)
        return snapshot

    def _save(self, snapshot: Mapping[str, Any]) -> None:
        if self._persist is None:
            return
        try:
            self._persist(dict(snapshot))
        except Exception as e:
            self._record_failure("Failed to persist preferences", e)

    def _record_failure(self, message: str, error: Exception) -> None:
        self.last_error = PreferencePersistenceError(f"{message}: {error}", original_exception=error)
        logger.warning(self.last_error.message)
