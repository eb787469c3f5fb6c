"""Durable key-value storage on the local device.

Each key is a ``<key>.json`` file in the data directory holding one
JSON-serialized value. This mirrors browser local storage: string in,
string out, no schema.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class JsonFileStorage:
    """Key-value store backed by one JSON file per key."""

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        """Return the file backing ``key``.

        Raises:
            ValueError: If the key is not a plain file-safe name.
        """
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored text for ``key``, or None if never written.

        Raises:
            OSError: If the file exists but cannot be read.
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()

    def set_item(self, key: str, value: str) -> None:
        """Write ``value`` for ``key``, replacing the file atomically.

        Raises:
            OSError: If the file cannot be written.
        """
        path = self.path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d bytes to %s", len(value), path)

    def remove_item(self, key: str) -> None:
        """Delete the value for ``key`` if present."""
        path = self.path_for(key)
        if path.exists():
            path.unlink()
