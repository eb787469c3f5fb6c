"""Tests for the key-value storage and the entity store."""

import json

import pytest

from roster.models import Athlete, StorageKey, Team
from roster.storage import JsonFileStorage
from roster.store import EntityStore


def _athlete(i, first="Mario"):
    return Athlete(id=f"a{i}", first_name=first, last_name="Rossi", date_of_birth="2010-01-01")


class TestJsonFileStorage:
    def test_missing_key_is_none(self, storage):
        assert storage.get_item("athletes") is None

    def test_set_then_get(self, storage):
        storage.set_item("teams", "[]")
        assert storage.get_item("teams") == "[]"
        assert (storage.data_dir / "teams.json").exists()
        assert not (storage.data_dir / "teams.json.tmp").exists()

    def test_failed_write_leaves_no_temp_file(self, storage, monkeypatch):
        storage.set_item("teams", "[]")

        def boom(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("roster.storage.os.replace", boom)
        with pytest.raises(OSError):
            storage.set_item("teams", "[1]")
        assert not (storage.data_dir / "teams.json.tmp").exists()
        assert storage.get_item("teams") == "[]"

    def test_rejects_path_like_keys(self, storage):
        with pytest.raises(ValueError):
            storage.path_for("../escape")

    def test_remove_item(self, storage):
        storage.set_item("hasSeenWelcomePopup", "true")
        storage.remove_item("hasSeenWelcomePopup")
        storage.remove_item("hasSeenWelcomePopup")
        assert storage.get_item("hasSeenWelcomePopup") is None


class TestLoad:
    def test_empty_storage_gives_default(self, store):
        assert store.athletes() == []
        assert store.counters["load_errors"] == 0

    def test_reads_persisted_camel_case(self, storage):
        storage.set_item(
            "athletes",
            json.dumps([{"id": "1", "firstName": "Anna", "lastName": "Bianchi",
                         "dateOfBirth": "2011-02-03"}]),
        )
        athletes = EntityStore(storage).athletes()
        assert athletes[0].first_name == "Anna"
        assert athletes[0].date_of_birth == "2011-02-03"

    def test_attendance_without_notes_defaults_empty(self, storage):
        storage.set_item(
            "attendance",
            json.dumps([{"eventId": "e", "athleteId": "a", "status": "Assente"}]),
        )
        record = EntityStore(storage).attendance()[0]
        assert record.notes == ""

    def test_corrupt_json_falls_back_to_default(self, storage):
        storage.set_item("teams", "{not json")
        store = EntityStore(storage)
        assert store.teams() == []
        assert store.counters["load_errors"] == 1

    def test_invalid_shape_falls_back_to_default(self, storage):
        storage.set_item("events", json.dumps([{"id": "x"}]))
        store = EntityStore(storage)
        assert store.events() == []
        assert store.counters["load_errors"] == 1

    def test_read_error_falls_back_to_default(self, storage, monkeypatch):
        def boom(key):
            raise OSError("disk gone")

        monkeypatch.setattr(storage, "get_item", boom)
        assert EntityStore(storage).athletes() == []

    def test_loaded_once_per_key(self, store, storage):
        assert store.athletes() == []
        storage.set_item("athletes", json.dumps([_athlete(1).to_json_dict()]))
        assert store.athletes() == []
        assert store.counters["loads"] == 1

    def test_reads_return_copies(self, store):
        store.save(StorageKey.ATHLETES, [_athlete(1)])
        store.athletes().append(_athlete(2))
        assert len(store.athletes()) == 1


class TestSave:
    def test_persists_whole_collection(self, store, storage):
        store.save(StorageKey.ATHLETES, [_athlete(1), _athlete(2, "Luca")])
        data = json.loads(storage.get_item("athletes"))
        assert [a["firstName"] for a in data] == ["Mario", "Luca"]
        assert set(data[0]) == {"id", "firstName", "lastName", "dateOfBirth"}

    def test_round_trip_through_new_store(self, store, storage):
        team = Team(id="t1", name="U16", athlete_ids=["a1", "a2"])
        store.save(StorageKey.TEAMS, [team])
        assert EntityStore(storage).teams() == [team]

    def test_write_failure_keeps_memory(self, store, storage, monkeypatch):
        def boom(key, value):
            raise OSError("read-only")

        monkeypatch.setattr(storage, "set_item", boom)
        store.save(StorageKey.ATHLETES, [_athlete(1)])
        assert [a.id for a in store.athletes()] == ["a1"]
        assert store.counters["save_errors"] == 1

    def test_keys_are_independent(self, store, storage):
        store.save(StorageKey.TEAMS, [Team(id="t1", name="U16")])
        assert storage.get_item("athletes") is None


class TestListeners:
    def test_notified_after_save(self, store):
        seen = []
        store.subscribe(lambda key, items: seen.append((key, [i.id for i in items])))
        store.save(StorageKey.ATHLETES, [_athlete(1)])
        assert seen == [(StorageKey.ATHLETES, ["a1"])]

    def test_failing_listener_does_not_break_save(self, store):
        def bad(key, items):
            raise RuntimeError("listener bug")

        store.subscribe(bad)
        store.save(StorageKey.ATHLETES, [_athlete(1)])
        assert len(store.athletes()) == 1

    def test_snapshot_has_all_keys(self, store):
        store.save(StorageKey.ATHLETES, [_athlete(1)])
        snap = store.snapshot()
        assert set(snap) == {"athletes", "teams", "events", "attendance"}
        assert snap["athletes"][0]["firstName"] == "Mario"
