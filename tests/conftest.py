import itertools

import pytest

from roster.attendance import AttendanceBook
from roster.models import AthleteData, EventData, TeamData
from roster.service import RosterService
from roster.storage import JsonFileStorage
from roster.store import EntityStore


@pytest.fixture
def storage(tmp_path):
    return JsonFileStorage(tmp_path / "store")


@pytest.fixture
def store(storage):
    return EntityStore(storage)


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"id{next(counter)}"


@pytest.fixture
def roster(store, id_factory):
    return RosterService(store, id_factory=id_factory)


@pytest.fixture
def book(store, roster):
    return AttendanceBook(store, roster)


@pytest.fixture
def mario_u16(roster):
    """Mario Rossi in team U16 with a training on 2024-05-01 at 18:00."""
    mario = roster.add_athlete(
        AthleteData(first_name="Mario", last_name="Rossi", date_of_birth="2009-04-12")
    )
    team = roster.add_team(TeamData(name="U16", athlete_ids=[mario.id]))
    event = roster.add_event(
        EventData(title="Allenamento", date="2024-05-01", time="18:00", team_id=team.id)
    )
    return mario, team, event
