"""CSV export of athletes, teams and attendance.

Cells containing a comma are wrapped in double quotes. Embedded quotes and
newlines are written as-is; consumers rely on this exact format.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from roster.models import Athlete, AttendanceRecord, Event, Team

ATHLETES_FILENAME = "atleti.csv"
TEAMS_FILENAME = "squadre.csv"
ATTENDANCE_FILENAME = "presenze.csv"

ATHLETE_HEADERS = ["ID Atleta", "Nome", "Cognome", "Data di Nascita"]
TEAM_HEADERS = ["ID Squadra", "Nome Squadra", "ID Atleta", "Nome Atleta", "Cognome Atleta"]
ATTENDANCE_HEADERS = [
    "Data Evento",
    "Orario Evento",
    "Titolo Evento",
    "Nome Squadra",
    "Nome Atleta",
    "Cognome Atleta",
    "Stato",
    "Note",
]


def escape_cell(cell: Any) -> str:
    if cell is None:
        return ""
    text = str(cell)
    return f'"{text}"' if "," in text else text


def _render(headers: list[str], rows: Iterable[list[Any]]) -> str:
    lines = [",".join(headers)]
    lines.extend(",".join(escape_cell(c) for c in row) for row in rows)
    return "\n".join(lines)


def _index(items: Iterable) -> dict:
    # First entity wins on a duplicated id, like a linear find.
    index: dict = {}
    for item in items:
        index.setdefault(item.id, item)
    return index


def export_athletes_csv(athletes: list[Athlete]) -> str:
    return _render(
        ATHLETE_HEADERS,
        ([a.id, a.first_name, a.last_name, a.date_of_birth] for a in athletes),
    )


def export_teams_csv(teams: list[Team], athletes: list[Athlete]) -> str:
    """One row per (team, member); members that no longer exist are skipped."""
    by_id = _index(athletes)
    rows = []
    for team in teams:
        for athlete_id in team.athlete_ids:
            athlete: Optional[Athlete] = by_id.get(athlete_id)
            if athlete is not None:
                rows.append(
                    [team.id, team.name, athlete.id, athlete.first_name, athlete.last_name]
                )
    return _render(TEAM_HEADERS, rows)


def export_attendance_csv(
    attendance: list[AttendanceRecord],
    events: list[Event],
    athletes: list[Athlete],
    teams: list[Team],
) -> str:
    """One row per record whose event, athlete and team all still resolve."""
    events_by_id = _index(events)
    athletes_by_id = _index(athletes)
    teams_by_id = _index(teams)

    rows = []
    for record in attendance:
        event = events_by_id.get(record.event_id)
        athlete = athletes_by_id.get(record.athlete_id)
        team = teams_by_id.get(event.team_id) if event is not None else None
        if event is None or athlete is None or team is None:
            continue
        rows.append(
            [
                event.date,
                event.time,
                event.title,
                team.name,
                athlete.first_name,
                athlete.last_name,
                record.status.value,
                record.notes or "",
            ]
        )
    return _render(ATTENDANCE_HEADERS, rows)
