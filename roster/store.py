"""Entity store: the four roster collections, persisted as whole snapshots.

Each collection is loaded lazily on first access and written back in full
on every mutation. Storage failures never reach the caller: a bad read
falls back to an empty collection and a failed write leaves the in-memory
state updated.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

from pydantic import TypeAdapter, ValidationError

from roster.models import Athlete, AttendanceRecord, Event, StorageKey, Team
from roster.storage import JsonFileStorage

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[StorageKey, list], None]

_ADAPTERS: dict[StorageKey, TypeAdapter] = {
    StorageKey.ATHLETES: TypeAdapter(list[Athlete]),
    StorageKey.TEAMS: TypeAdapter(list[Team]),
    StorageKey.EVENTS: TypeAdapter(list[Event]),
    StorageKey.ATTENDANCE: TypeAdapter(list[AttendanceRecord]),
}

COLLECTION_KEYS = tuple(_ADAPTERS)


class EntityStore:
    """In-memory roster collections backed by a key-value storage.

    Reads return a new list holding the full current collection; the
    entities themselves are replaced, never mutated, by the rules layer.
    """

    def __init__(self, storage: JsonFileStorage) -> None:
        self._storage = storage
        self._collections: dict[StorageKey, list] = {}
        self._listeners: list[SnapshotListener] = []
        self._counters: dict[str, int] = {
            "loads": 0,
            "load_errors": 0,
            "saves": 0,
            "save_errors": 0,
        }

    # -- loading ------------------------------------------------------------

    def load(self, key: StorageKey, default: Optional[list] = None) -> list:
        """Return the collection for ``key``, reading storage on first access.

        Args:
            key: One of the four collection keys.
            default: Collection to use when nothing valid is stored.

        Returns:
            A copy of the current collection.
        """
        if key not in self._collections:
            self._collections[key] = self._read(key, list(default or []))
        return list(self._collections[key])

    def _read(self, key: StorageKey, default: list) -> list:
        self._counters["loads"] += 1
        try:
            raw = self._storage.get_item(key.value)
            if raw is None:
                return default
            items = _ADAPTERS[key].validate_python(json.loads(raw))
        except (OSError, ValueError, ValidationError):
            # json.JSONDecodeError is a ValueError
            self._counters["load_errors"] += 1
            logger.warning(
                "Could not load '%s' from storage, using default", key.value,
                exc_info=True,
            )
            return default
        logger.info("Loaded %d %s from storage", len(items), key.value)
        return items

    def load_all(self) -> None:
        """Warm all four collections (called at startup)."""
        for key in COLLECTION_KEYS:
            self.load(key)

    # -- saving -------------------------------------------------------------

    def save(self, key: StorageKey, items: list) -> None:
        """Replace the collection for ``key`` and persist it in full.

        The in-memory collection is updated before the write, and stays
        updated if the write fails.
        """
        self._collections[key] = list(items)
        self._counters["saves"] += 1
        try:
            payload = json.dumps(
                [item.to_json_dict() for item in items], ensure_ascii=False
            )
            self._storage.set_item(key.value, payload)
        except (OSError, TypeError, ValueError):
            self._counters["save_errors"] += 1
            logger.error(
                "Could not persist '%s' (%d items); keeping in-memory state",
                key.value,
                len(items),
                exc_info=True,
            )
        self._notify(key)

    # -- listeners ----------------------------------------------------------

    def subscribe(self, listener: SnapshotListener) -> None:
        """Register a callback invoked with (key, items) after each save."""
        self._listeners.append(listener)

    def _notify(self, key: StorageKey) -> None:
        items = list(self._collections[key])
        for listener in self._listeners:
            try:
                listener(key, items)
            except Exception:
                logger.exception("Snapshot listener failed for '%s'", key.value)

    # -- typed accessors ----------------------------------------------------

    def athletes(self) -> list[Athlete]:
        return self.load(StorageKey.ATHLETES)

    def teams(self) -> list[Team]:
        return self.load(StorageKey.TEAMS)

    def events(self) -> list[Event]:
        return self.load(StorageKey.EVENTS)

    def attendance(self) -> list[AttendanceRecord]:
        return self.load(StorageKey.ATTENDANCE)

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Return every collection as JSON-ready dicts, keyed by storage key."""
        return {
            key.value: [item.to_json_dict() for item in self.load(key)]
            for key in COLLECTION_KEYS
        }

    @property
    def counters(self) -> dict[str, int]:
        """Return a copy of storage diagnostic counters."""
        return dict(self._counters)
