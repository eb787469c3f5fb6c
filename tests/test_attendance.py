"""Tests for attendance resolution."""

from roster.models import AttendanceRecord, AttendanceStatus, TeamData, AthleteData


def test_default_is_present_and_not_persisted(book, store, storage):
    record = book.get_attendance("e1", "a1")
    assert record.status is AttendanceStatus.PRESENT
    assert record.notes == ""
    assert store.attendance() == []
    assert storage.get_item("attendance") is None


def test_upsert_never_duplicates_pair(book, store):
    book.upsert_attendance(AttendanceRecord(event_id="e1", athlete_id="a1",
                                            status=AttendanceStatus.ABSENT, notes="medico"))
    book.upsert_attendance(AttendanceRecord(event_id="e1", athlete_id="a1",
                                            status=AttendanceStatus.PRESENT))
    records = store.attendance()
    assert len(records) == 1
    assert records[0].status is AttendanceStatus.PRESENT


def test_upsert_preserves_position(book, store):
    for athlete_id in ("a1", "a2", "a3"):
        book.upsert_attendance(AttendanceRecord(event_id="e1", athlete_id=athlete_id))
    book.set_status("e1", "a2", AttendanceStatus.ABSENT)
    assert [r.athlete_id for r in store.attendance()] == ["a1", "a2", "a3"]
    assert store.attendance()[1].status is AttendanceStatus.ABSENT


def test_same_athlete_different_events_are_distinct(book, store):
    book.set_status("e1", "a1", AttendanceStatus.ABSENT)
    book.set_status("e2", "a1", AttendanceStatus.ABSENT)
    assert len(store.attendance()) == 2


def test_set_notes_keeps_status(book):
    book.set_status("e1", "a1", AttendanceStatus.ABSENT)
    record = book.set_notes("e1", "a1", "scuola")
    assert record.status is AttendanceStatus.ABSENT
    assert book.get_attendance("e1", "a1").notes == "scuola"


class TestMarkAllPresent:
    def test_resets_absent_and_clears_notes(self, book):
        book.set_status("e1", "a1", AttendanceStatus.ABSENT)
        book.set_notes("e1", "a1", "influenza")
        book.mark_all_present("e1", ["a1"])
        record = book.get_attendance("e1", "a1")
        assert record.status is AttendanceStatus.PRESENT
        assert record.notes == ""

    def test_stored_present_records_untouched(self, book, store):
        book.upsert_attendance(AttendanceRecord(event_id="e1", athlete_id="a1",
                                                status=AttendanceStatus.PRESENT, notes="in ritardo"))
        saves = store.counters["saves"]
        assert book.mark_all_present("e1", ["a1"]) == 0
        assert store.counters["saves"] == saves
        assert book.get_attendance("e1", "a1").notes == "in ritardo"

    def test_materializes_missing_records(self, book, store, mario_u16):
        mario, _, event = mario_u16
        assert book.mark_all_present(event.id, [mario.id]) == 1
        assert store.attendance() == [
            AttendanceRecord(event_id=event.id, athlete_id=mario.id,
                             status=AttendanceStatus.PRESENT, notes="")
        ]
        assert book.mark_all_present(event.id, [mario.id]) == 0
        assert len(store.attendance()) == 1


class TestSheet:
    def test_rows_for_team_members(self, book, roster, mario_u16):
        mario, team, event = mario_u16
        luca = roster.add_athlete(AthleteData(first_name="Luca", last_name="Verdi",
                                              date_of_birth="2009-09-09"))
        roster.update_team(team.model_copy(update={"athlete_ids": [mario.id, luca.id]}))
        book.set_status(event.id, luca.id, AttendanceStatus.ABSENT)

        sheet = book.sheet(event)
        assert [row.athlete.first_name for row in sheet.rows] == ["Mario", "Luca"]
        assert [row.record.status for row in sheet.rows] == [
            AttendanceStatus.PRESENT, AttendanceStatus.ABSENT,
        ]

    def test_missing_team_gives_none(self, book, roster, mario_u16):
        _, team, event = mario_u16
        roster.delete_team(team.id)
        assert book.sheet(event) is None

    def test_empty_team(self, book, roster):
        from roster.models import EventData

        team = roster.add_team(TeamData(name="Vuota"))
        event = roster.add_event(EventData(title="X", date="2024-01-01", team_id=team.id))
        assert book.sheet(event).rows == []
