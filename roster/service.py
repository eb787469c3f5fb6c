"""Roster consistency rules: CRUD on athletes, teams and events.

Relationships are identifier lookups resolved at read time. Deleting an
athlete cascades into every team roster. Deleting a team does not touch
events or attendance, so readers must tolerate a dangling ``team_id``.
"""

from __future__ import annotations

import logging
from typing import Optional

from roster.ids import IdFactory, next_id
from roster.models import (
    Athlete,
    AthleteData,
    Event,
    EventData,
    StorageKey,
    Team,
    TeamData,
)
from roster.store import EntityStore

logger = logging.getLogger(__name__)

UNKNOWN_ATHLETE_NAME = "Sconosciuto"


def _replace_by_id(items: list, updated) -> tuple[list, bool]:
    """Return (items with the entity of the same id replaced, found)."""
    found = False
    result = []
    for item in items:
        if item.id == updated.id:
            result.append(updated)
            found = True
        else:
            result.append(item)
    return result, found


class RosterService:
    """Mutations and lookups over the entity store."""

    def __init__(self, store: EntityStore, id_factory: IdFactory = next_id) -> None:
        self._store = store
        self._next_id = id_factory

    @property
    def store(self) -> EntityStore:
        return self._store

    # -- athletes -----------------------------------------------------------

    def add_athlete(self, data: AthleteData) -> Athlete:
        athlete = Athlete(id=self._next_id(), **data.model_dump(exclude={"id"}))
        self._store.save(StorageKey.ATHLETES, self._store.athletes() + [athlete])
        logger.info("Added athlete %s", athlete.id)
        return athlete

    def update_athlete(self, athlete: Athlete) -> bool:
        """Replace the athlete with the same id.

        Returns:
            False if no athlete has that id (nothing is written).
        """
        athletes, found = _replace_by_id(self._store.athletes(), athlete)
        if not found:
            logger.debug("update_athlete: no athlete with id %s", athlete.id)
            return False
        self._store.save(StorageKey.ATHLETES, athletes)
        return True

    def delete_athlete(self, athlete_id: str) -> None:
        """Delete an athlete and remove it from every team roster.

        Idempotent. Attendance records for the athlete are kept.
        """
        athletes = self._store.athletes()
        remaining = [a for a in athletes if a.id != athlete_id]
        if len(remaining) != len(athletes):
            self._store.save(StorageKey.ATHLETES, remaining)
            logger.info("Deleted athlete %s", athlete_id)

        teams = self._store.teams()
        if any(athlete_id in t.athlete_ids for t in teams):
            self._store.save(
                StorageKey.TEAMS,
                [
                    t.model_copy(
                        update={
                            "athlete_ids": [i for i in t.athlete_ids if i != athlete_id]
                        }
                    )
                    for t in teams
                ],
            )

    def get_athlete(self, athlete_id: str) -> Optional[Athlete]:
        for athlete in self._store.athletes():
            if athlete.id == athlete_id:
                return athlete
        return None

    def athlete_display_name(self, athlete_id: str) -> str:
        """Return "First Last", or a placeholder for an unknown id."""
        athlete = self.get_athlete(athlete_id)
        if athlete is None:
            return UNKNOWN_ATHLETE_NAME
        return f"{athlete.first_name} {athlete.last_name}"

    # -- teams --------------------------------------------------------------

    def add_team(self, data: TeamData) -> Team:
        team = Team(id=self._next_id(), **data.model_dump(exclude={"id"}))
        self._store.save(StorageKey.TEAMS, self._store.teams() + [team])
        logger.info("Added team %s (%d athletes)", team.id, len(team.athlete_ids))
        return team

    def update_team(self, team: Team) -> bool:
        """Replace the team with the same id; False if there is none."""
        teams, found = _replace_by_id(self._store.teams(), team)
        if not found:
            logger.debug("update_team: no team with id %s", team.id)
            return False
        self._store.save(StorageKey.TEAMS, teams)
        return True

    def delete_team(self, team_id: str) -> None:
        """Delete a team only; events keep referencing its id."""
        teams = self._store.teams()
        remaining = [t for t in teams if t.id != team_id]
        if len(remaining) != len(teams):
            self._store.save(StorageKey.TEAMS, remaining)
            logger.info("Deleted team %s", team_id)

    def get_team(self, team_id: str) -> Optional[Team]:
        for team in self._store.teams():
            if team.id == team_id:
                return team
        return None

    def team_members(self, team: Team) -> list[Athlete]:
        """Return the roster's existing athletes in athlete-collection order."""
        member_ids = set(team.athlete_ids)
        return [a for a in self._store.athletes() if a.id in member_ids]

    # -- events -------------------------------------------------------------

    def add_event(self, data: EventData) -> Event:
        event = Event(id=self._next_id(), **data.model_dump(exclude={"id"}))
        self._store.save(StorageKey.EVENTS, self._store.events() + [event])
        logger.info("Added event %s on %s %s", event.id, event.date, event.time)
        return event

    def update_event(self, event: Event) -> bool:
        """Replace the event with the same id; False if there is none."""
        events, found = _replace_by_id(self._store.events(), event)
        if not found:
            logger.debug("update_event: no event with id %s", event.id)
            return False
        self._store.save(StorageKey.EVENTS, events)
        return True

    def get_event(self, event_id: str) -> Optional[Event]:
        for event in self._store.events():
            if event.id == event_id:
                return event
        return None

    def events_on(self, date_key: str) -> list[Event]:
        """Return the events whose date equals ``date_key`` exactly."""
        return [e for e in self._store.events() if e.date == date_key]
