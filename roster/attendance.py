"""Attendance resolution: default lookup and upsert by (event_id, athlete_id).

Records are materialized lazily. An athlete with no stored record for an
event is Present with empty notes, and reading that default never writes it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from roster.models import Athlete, AttendanceRecord, AttendanceStatus, Event, StorageKey, Team
from roster.service import RosterService
from roster.store import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SheetRow:
    """One athlete line of an event's attendance sheet."""

    athlete: Athlete
    record: AttendanceRecord


@dataclass(frozen=True)
class AttendanceSheet:
    """Resolved attendance for every member of an event's team."""

    event: Event
    team: Team
    rows: list[SheetRow]


class AttendanceBook:
    """Reads and writes attendance records in the entity store."""

    def __init__(self, store: EntityStore, roster: RosterService) -> None:
        self._store = store
        self._roster = roster

    def find(self, event_id: str, athlete_id: str) -> Optional[AttendanceRecord]:
        """Return the stored record for the pair, or None."""
        for record in self._store.attendance():
            if record.event_id == event_id and record.athlete_id == athlete_id:
                return record
        return None

    def get_attendance(self, event_id: str, athlete_id: str) -> AttendanceRecord:
        """Return the stored record, or a synthesized Present default."""
        record = self.find(event_id, athlete_id)
        if record is not None:
            return record
        return AttendanceRecord(
            event_id=event_id,
            athlete_id=athlete_id,
            status=AttendanceStatus.PRESENT,
            notes="",
        )

    def upsert_attendance(self, record: AttendanceRecord) -> None:
        """Replace the record with the same pair in place, or append it."""
        records = self._store.attendance()
        for index, existing in enumerate(records):
            if existing.key == record.key:
                records[index] = record
                break
        else:
            records.append(record)
        self._store.save(StorageKey.ATTENDANCE, records)
        logger.debug(
            "Attendance %s/%s -> %s", record.event_id, record.athlete_id, record.status.value
        )

    def set_status(
        self, event_id: str, athlete_id: str, status: AttendanceStatus
    ) -> AttendanceRecord:
        record = self.get_attendance(event_id, athlete_id).model_copy(
            update={"status": status}
        )
        self.upsert_attendance(record)
        return record

    def set_notes(self, event_id: str, athlete_id: str, notes: str) -> AttendanceRecord:
        record = self.get_attendance(event_id, athlete_id).model_copy(
            update={"notes": notes}
        )
        self.upsert_attendance(record)
        return record

    def mark_all_present(self, event_id: str, athlete_ids: Iterable[str]) -> int:
        """Record every listed athlete as Present with cleared notes.

        Stored records that are already Present are left untouched; athletes
        with no stored record get one, so the roll call shows up in exports.

        Returns:
            Number of records written.
        """
        written = 0
        for athlete_id in athlete_ids:
            stored = self.find(event_id, athlete_id)
            if stored is not None and stored.status == AttendanceStatus.PRESENT:
                continue
            record = stored or self.get_attendance(event_id, athlete_id)
            self.upsert_attendance(
                record.model_copy(
                    update={"status": AttendanceStatus.PRESENT, "notes": ""}
                )
            )
            written += 1
        logger.info("Marked all present for event %s (%d changed)", event_id, written)
        return written

    def sheet(self, event: Event) -> Optional[AttendanceSheet]:
        """Build the attendance sheet for ``event``.

        Returns:
            None if the event's team no longer exists.
        """
        team = self._roster.get_team(event.team_id)
        if team is None:
            return None
        rows = [
            SheetRow(athlete=a, record=self.get_attendance(event.id, a.id))
            for a in self._roster.team_members(team)
        ]
        return AttendanceSheet(event=event, team=team, rows=rows)
