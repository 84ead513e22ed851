# backend/networth/services/storage.py
"""
Key-value persistence backends.

Both classes satisfy the KeyValueStore protocol:
- InMemoryKeyValueStore: per-session or per-test state
- SqlKeyValueStore: kv_entries table through a SQLAlchemy session factory

Values are JSON documents. Both backends hand out copies, so mutating a
returned document never changes stored state without an explicit ``set``.

Usage:
    store = SqlKeyValueStore(SessionLocal)
    store.set("preferences", {"display_currency": "CAD"})
    prefs = store.get("preferences")
"""

import copy
import logging
import threading
from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session

from networth.models import KeyValueEntry

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore:
    """Dictionary-backed store."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            value = self._data.get(key)
            return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class SqlKeyValueStore:
    """
    Store backed by the kv_entries table.

    Each call opens and commits its own short session, so the store can be
    shared across requests.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> Any | None:
        with self._session_factory() as session:
            entry = session.get(KeyValueEntry, key)
            return copy.deepcopy(entry.value) if entry is not None else None

    def set(self, key: str, value: Any) -> None:
        with self._session_factory() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = copy.deepcopy(value)
            session.commit()
        logger.debug(f"Persisted key '{key}'")

    def delete(self, key: str) -> None:
        with self._session_factory() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()
