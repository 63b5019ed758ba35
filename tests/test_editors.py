"""Tests für Ausstattungs-Editor, Stundenplan-Editor, Anwesenheit und Anfragen."""

import itertools
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from config.schema import NotificationConfig
from engine.attendance import log_attendance
from engine.errors import InputValidationError
from engine.facility_editor import FacilityEditor
from engine.requests import send_request, send_special_request
from engine.schedule_editor import ScheduleEditor, ScheduleInput, normalize_days
from models.commands import SetFacilities, apply_command
from models.records import AuditKind
from models.room import AcUnit, CleaningStatus, Facilities, Room

TZ = ZoneInfo("Europe/Berlin")
MONDAY_9 = datetime(2025, 3, 3, 9, 0, tzinfo=TZ)


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

def make_room(ac_count: int = 2) -> Room:
    units = tuple(AcUnit(id=f"ac-{i}") for i in range(1, ac_count + 1))
    return Room(id="LH-01", name="Hall 1", cleaning_status=CleaningStatus.dirty(),
                facilities=Facilities(ac_machines=units))


def counter_ids(prefix: str = "new"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def schedule_input(**overrides) -> ScheduleInput:
    fields = dict(days=["Monday", "Wednesday"], name="Databases", lecturer="Prof. Y",
                  subject_codes="CS301", duration_hours=2, start_time="10:00")
    fields.update(overrides)
    return ScheduleInput(**fields)


# ─── FacilityEditor ───────────────────────────────────────────────────────────

class TestFacilityEditor:
    def test_grow_and_shrink_restores_original(self):
        """2 → 5 → 2 Klimageräte ergibt wieder genau die ursprünglichen zwei."""
        room = make_room(2)
        editor = FacilityEditor(room, id_factory=counter_ids())
        editor.set_ac_count(5)
        assert len(editor.ac_units) == 5
        assert all(ac.working for ac in editor.ac_units[2:])
        editor.set_ac_count(2)
        assert editor.ac_units == room.facilities.ac_machines

    def test_new_ids_skip_existing(self):
        """Bereits vergebene IDs aus der Fabrik werden übersprungen."""
        ids = iter(["ac-1", "ac-2", "fresh"])
        editor = FacilityEditor(make_room(2), id_factory=lambda: next(ids))
        editor.set_ac_count(3)
        assert editor.ac_units[-1].id == "fresh"

    def test_negative_ac_count_raises(self):
        with pytest.raises(InputValidationError):
            FacilityEditor(make_room()).set_ac_count(-1)

    def test_toggle_ac(self):
        editor = FacilityEditor(make_room())
        assert editor.toggle_ac("ac-1") is False
        assert editor.preview().working_ac_count == 1
        assert editor.toggle_ac("ac-1") is True

    def test_toggle_unknown_ac_raises(self):
        with pytest.raises(InputValidationError):
            FacilityEditor(make_room()).toggle_ac("ac-99")

    def test_commit_is_single_write(self):
        """Commit erzeugt genau einen SetFacilities-Befehl mit allen Änderungen."""
        room = make_room()
        editor = FacilityEditor(room, id_factory=counter_ids(), user="tester")
        editor.set_chairs(80)
        editor.smart_board = False
        editor.set_ac_count(3)
        result = editor.commit(MONDAY_9)
        assert len(result.commands) == 1
        assert isinstance(result.commands[0], SetFacilities)
        after = apply_command(room, result.commands[0])
        assert after.facilities.chairs_available == 80
        assert after.facilities.smart_board is False
        assert len(after.facilities.ac_machines) == 3
        (record,) = result.audit_records
        assert record.kind == AuditKind.FACILITIES_UPDATE
        assert record.details.ac_units == 3

    def test_discard_resets(self):
        editor = FacilityEditor(make_room())
        editor.set_chairs(10)
        editor.set_ac_count(0)
        assert editor.is_dirty
        editor.discard()
        assert not editor.is_dirty

    def test_negative_chairs_raise(self):
        with pytest.raises(InputValidationError):
            FacilityEditor(make_room()).set_chairs(-5)


# ─── ScheduleEditor ───────────────────────────────────────────────────────────

class TestScheduleEditor:
    def test_normalize_days(self):
        """Kürzel und Groß-/Kleinschreibung; sortiert Montag → Sonntag."""
        assert normalize_days(["fri", "MONDAY", "Mon"]) == ("Monday", "Friday")

    def test_normalize_days_empty_raises(self):
        with pytest.raises(InputValidationError):
            normalize_days([])

    def test_normalize_days_unknown_raises(self):
        with pytest.raises(InputValidationError):
            normalize_days(["Funday"])

    def test_add_entry(self):
        room = make_room()
        result = ScheduleEditor(id_factory=counter_ids("s")).add(room, schedule_input(),
                                                                 MONDAY_9)
        after = apply_command(room, result.commands[0])
        (entry,) = after.schedule
        assert entry.schedule_id == "s-1"
        assert entry.days == ("Monday", "Wednesday")
        assert result.audit_records[0].kind == AuditKind.SCHEDULE_ADDED

    def test_update_and_delete(self):
        editor = ScheduleEditor(id_factory=counter_ids("s"))
        room = make_room()
        room = apply_command(room, editor.add(room, schedule_input(), MONDAY_9).commands[0])
        room = apply_command(room, editor.update(
            room, "s-1", schedule_input(name="Compilers"), MONDAY_9).commands[0])
        assert room.schedule[0].lecture.name == "Compilers"
        result = editor.delete(room, "s-1", MONDAY_9)
        assert result.audit_records[0].kind == AuditKind.SCHEDULE_DELETED
        assert apply_command(room, result.commands[0]).schedule == ()

    def test_update_unknown_raises(self):
        with pytest.raises(InputValidationError):
            ScheduleEditor().update(make_room(), "nope", schedule_input(), MONDAY_9)

    def test_delete_unknown_raises(self):
        with pytest.raises(InputValidationError):
            ScheduleEditor().delete(make_room(), "nope", MONDAY_9)

    @pytest.mark.parametrize("overrides", [
        {"start_time": "10 Uhr"},
        {"duration_hours": 0},
        {"duration_hours": "inf"},
        {"duration_hours": "1e9"},
        {"name": ""},
        {"days": []},
    ])
    def test_invalid_input_raises(self, overrides):
        with pytest.raises(InputValidationError):
            ScheduleEditor().add(make_room(), schedule_input(**overrides), MONDAY_9)


# ─── Anwesenheit & Anfragen ───────────────────────────────────────────────────

class TestAttendance:
    def test_log_attendance(self):
        room = make_room()
        result = log_attendance(room, "42", "tester", MONDAY_9)
        after = apply_command(room, result.commands[0])
        assert after.attendance_records[0].count == 42
        assert result.audit_records[0].kind == AuditKind.ATTENDANCE

    @pytest.mark.parametrize("count", ["-1", "viele", None, "3.5"])
    def test_invalid_count_raises(self, count):
        with pytest.raises(InputValidationError):
            log_attendance(make_room(), count, "tester", MONDAY_9)


class TestRequests:
    def test_general_request(self):
        result = send_request(make_room(), "Beamer defekt", MONDAY_9)
        (entry,) = result.requests
        assert entry.hall == "Hall 1"
        assert entry.type == "General Request"
        assert entry.email_recipient is None
        assert result.audit_records[0].kind == AuditKind.GENERAL_REQUEST
        assert result.commands == []

    def test_special_request_has_recipient(self):
        result = send_special_request(make_room(), "Schlüssel fehlt", MONDAY_9,
                                      NotificationConfig())
        (entry,) = result.requests
        assert entry.email_recipient == "responsible.person@university.edu"
        assert result.audit_records[0].kind == AuditKind.SPECIAL_REQUEST

    def test_empty_message_raises(self):
        with pytest.raises(InputValidationError):
            send_request(make_room(), "   ", MONDAY_9)
