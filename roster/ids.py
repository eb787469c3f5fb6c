"""Identifier generation for new entities."""

from __future__ import annotations

import uuid
from typing import Callable

IdFactory = Callable[[], str]


def next_id() -> str:
    """Return a new random 128-bit identifier as 32 hex characters.

    Independent of wall-clock resolution, so two entities created in the
    same instant still get distinct ids.
    """
    return uuid.uuid4().hex
