"""First-run welcome flag, stored beside (but independent of) the roster data."""

from __future__ import annotations

import json
import logging

from roster.models import StorageKey
from roster.storage import JsonFileStorage

logger = logging.getLogger(__name__)


class WelcomeFlag:
    """Boolean ``hasSeenWelcomePopup`` in the key-value storage."""

    def __init__(self, storage: JsonFileStorage) -> None:
        self._storage = storage

    def has_seen(self) -> bool:
        """Return True once the welcome popup has been dismissed.

        An unreadable flag counts as not seen.
        """
        try:
            raw = self._storage.get_item(StorageKey.WELCOME_SEEN.value)
            return bool(raw) and json.loads(raw) is True
        except (OSError, ValueError):
            logger.warning("Could not read welcome flag", exc_info=True)
            return False

    def mark_seen(self) -> None:
        try:
            self._storage.set_item(StorageKey.WELCOME_SEEN.value, "true")
        except OSError:
            logger.error("Could not persist welcome flag", exc_info=True)

    def reset(self) -> None:
        """Forget the flag so the popup shows again."""
        try:
            self._storage.remove_item(StorageKey.WELCOME_SEEN.value)
        except OSError:
            logger.error("Could not clear welcome flag", exc_info=True)
