"""Pydantic models for the roster data model and the WebSocket snapshot message.

Persisted and wire JSON uses camelCase keys (``firstName``, ``athleteIds``,
``teamId``...); Python attributes are snake_case. Models accept either
spelling and are always dumped by alias.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from roster.calendar_grid import parse_date_key

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
DEFAULT_EVENT_TIME = "18:00"


def _calendar_date(value: str) -> str:
    # Pattern checks the shape; this rejects days that do not exist.
    parse_date_key(value)
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class StorageKey(str, Enum):
    """Keys of the durable key-value store."""

    ATHLETES = "athletes"
    TEAMS = "teams"
    EVENTS = "events"
    ATTENDANCE = "attendance"
    WELCOME_SEEN = "hasSeenWelcomePopup"


class AttendanceStatus(str, Enum):
    """Attendance status; values are the persisted and exported labels."""

    PRESENT = "Presente"
    ABSENT = "Assente"


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class AthleteData(CamelModel):
    """Fields of an athlete supplied by the add/edit form."""

    first_name: str
    last_name: str
    date_of_birth: str = Field(pattern=DATE_PATTERN)

    @field_validator("date_of_birth")
    @classmethod
    def _check_date_of_birth(cls, value: str) -> str:
        return _calendar_date(value)


class Athlete(AthleteData):
    id: str


class TeamData(CamelModel):
    """Fields of a team supplied by the add/edit form."""

    name: str
    athlete_ids: list[str] = Field(default_factory=list)

    @field_validator("athlete_ids")
    @classmethod
    def _dedupe_athlete_ids(cls, value: list[str]) -> list[str]:
        # Roster is an ordered set: keep first occurrence of each id.
        return list(dict.fromkeys(value))


class Team(TeamData):
    id: str


class EventData(CamelModel):
    """Fields of an event supplied by the add/edit form.

    ``team_id`` is required and non-empty: an event cannot be created
    without selecting a team.
    """

    title: str
    date: str = Field(pattern=DATE_PATTERN)
    time: str = Field(default=DEFAULT_EVENT_TIME, pattern=TIME_PATTERN)
    team_id: str = Field(min_length=1)

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        return _calendar_date(value)


class Event(EventData):
    id: str


class AttendanceRecord(CamelModel):
    """Attendance of one athlete at one event, keyed by (event_id, athlete_id)."""

    event_id: str
    athlete_id: str
    status: AttendanceStatus = AttendanceStatus.PRESENT
    notes: str = ""

    @field_validator("notes", mode="before")
    @classmethod
    def _none_notes_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def key(self) -> tuple[str, str]:
        """Composite natural key."""
        return (self.event_id, self.athlete_id)


# ---------------------------------------------------------------------------
# WebSocket envelope
# ---------------------------------------------------------------------------

class SnapshotMessage(BaseModel):
    """Pushed to WebSocket clients after a collection has been persisted."""

    type: str = "snapshot"
    schema_version: str = "1.0"
    seq: int
    ts_ms: int = Field(default_factory=lambda: int(time.time() * 1000))
    key: str
    items: list[dict[str, Any]]

    def to_json_str(self) -> str:
        """Serialize to JSON string for WebSocket transmission."""
        return self.model_dump_json()
