"""Tests für Bestand, Abonnements, Protokoll, Seed und HallService."""

from datetime import datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from config.defaults import default_app_config
from config.schema import SeedConfig
from data.seed import SeedGenerator, seed_if_empty
from engine.errors import IllegalTransition, StoreWriteError, UnknownRoomError
from engine.lifecycle import LectureInput
from engine.schedule_editor import ScheduleInput
from engine.service import HallService
from models.commands import (
    AppendAuditRecord,
    ClearCurrentLecture,
    SetCleaningStatus,
    SetFacilities,
    SetRoomStatus,
)
from models.records import AuditKind
from models.room import CleaningStatus, Facilities, Room, RoomStatus
from store.ledger import AuditLog, RequestLedger
from store.memory import JsonRoomStore, RoomStore

TZ = ZoneInfo("Europe/Berlin")
MONDAY_9 = datetime(2025, 3, 3, 9, 0, tzinfo=TZ)


# ─── Hilfsfunktionen ──────────────────────────────────────────────────────────

class FakeClock:
    """Steuerbare Uhr für den HallService."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FailingStore(RoomStore):
    """Bestand, dessen Speicherung ab ``fail`` fehlschlägt."""

    fail = False

    def _persist(self) -> None:
        if self.fail:
            raise StoreWriteError("Platte voll")


class CountingStore(RoomStore):
    """Zählt geschriebene Reinigungs-Resets."""

    def __init__(self) -> None:
        super().__init__()
        self.resets = 0

    def apply(self, command) -> None:
        if isinstance(command, SetCleaningStatus) and not command.cleaning_status.is_clean:
            self.resets += 1
        super().apply(command)


def make_room(room_id: str = "LH-01", name: str = "Hall 1", **fields) -> Room:
    fields.setdefault("cleaning_status", CleaningStatus.dirty())
    return Room(id=room_id, name=name, **fields)


def make_service(store: RoomStore = None, now: datetime = MONDAY_9):
    store = store or RoomStore()
    clock = FakeClock(now)
    service = HallService(store, default_app_config(), clock=clock, user="tester")
    return service, clock


def seeded_service(now: datetime = MONDAY_9):
    service, clock = make_service(now=now)
    config = service.config.model_copy(
        update={"seed": SeedConfig(hall_count=3, ac_units_min=2, ac_units_max=2)})
    seed_if_empty(service.store, config, now)
    return service, clock


# ─── RoomStore ────────────────────────────────────────────────────────────────

class TestRoomStore:
    def test_get_unknown_raises(self):
        with pytest.raises(UnknownRoomError):
            RoomStore().get("LH-99")

    def test_subscribe_delivers_immediately_and_on_change(self):
        store = RoomStore()
        store.put_room(make_room())
        seen = []
        store.subscribe_rooms(lambda rooms: seen.append(rooms["LH-01"].status))
        store.apply(SetRoomStatus(room_id="LH-01", status=RoomStatus.CLEANING))
        assert seen == [RoomStatus.FREE, RoomStatus.CLEANING]

    def test_unsubscribe(self):
        store = RoomStore()
        store.put_room(make_room())
        seen = []
        unsubscribe = store.subscribe_rooms(lambda rooms: seen.append(len(rooms)))
        unsubscribe()
        store.put_room(make_room("LH-02", "Hall 2"))
        assert seen == [1]

    def test_nested_write_renotifies_with_latest(self):
        """Schreibt ein Abonnent während der Benachrichtigung, sehen alle den neuesten Stand."""
        store = RoomStore()
        store.put_room(make_room())

        def writer(rooms):
            if rooms["LH-01"].status == RoomStatus.CLEANING:
                store.apply(SetRoomStatus(room_id="LH-01", status=RoomStatus.FREE))

        seen = []
        store.subscribe_rooms(writer)
        store.subscribe_rooms(lambda rooms: seen.append(rooms["LH-01"].status))
        store.apply(SetRoomStatus(room_id="LH-01", status=RoomStatus.CLEANING))
        assert seen[-1] == RoomStatus.FREE

    def test_failed_write_rolls_back(self):
        store = FailingStore()
        store.put_room(make_room())
        store.fail = True
        with pytest.raises(StoreWriteError):
            store.apply(SetRoomStatus(room_id="LH-01", status=RoomStatus.CLEANING))
        assert store.get("LH-01").status == RoomStatus.FREE

    def test_clear_lecture_on_free_room(self):
        """ClearCurrentLecture auf freiem Hörsaal lässt ihn frei."""
        store = RoomStore()
        store.put_room(make_room())
        store.apply(ClearCurrentLecture(room_id="LH-01"))
        assert store.get("LH-01").status == RoomStatus.FREE

    def test_unknown_room_command_raises(self):
        store = RoomStore()
        with pytest.raises(UnknownRoomError):
            store.apply(ClearCurrentLecture(room_id="LH-99"))


class TestJsonRoomStore:
    def test_persist_and_reload(self, tmp_path: Path):
        path = tmp_path / "halls.json"
        store = JsonRoomStore(path)
        store.put_room(make_room())
        AuditLog(store).append(AuditKind.CLEANING_STARTED, "Hall 1", "Cleaning started.",
                               MONDAY_9)
        assert path.exists()

        reloaded = JsonRoomStore(path)
        assert reloaded.get("LH-01") == store.get("LH-01")
        assert reloaded.recent_audit()[0].message == "Cleaning started."

    def test_two_clients_edit_different_rooms(self, tmp_path: Path):
        """Zwei Prozesse auf derselben Datei: beide Änderungen bleiben erhalten."""
        path = tmp_path / "halls.json"
        clean = CleaningStatus(is_clean=True, cleaned_by="Anna", cleaned_at=MONDAY_9,
                               employee_id="E-7")
        seed = JsonRoomStore(path)
        seed.put_room(make_room("LH-01", "Hall 1", cleaning_status=clean))
        seed.put_room(make_room("LH-02", "Hall 2"))

        client_a = JsonRoomStore(path)
        client_b = JsonRoomStore(path)
        client_a.apply(SetCleaningStatus(room_id="LH-01",
                                         cleaning_status=CleaningStatus.dirty()))
        client_b.apply(SetFacilities(room_id="LH-02",
                                     facilities=Facilities(chairs_available=5)))

        reloaded = JsonRoomStore(path)
        assert reloaded.get("LH-01").cleaning_status.is_clean is False
        assert reloaded.get("LH-02").facilities.chairs_available == 5
        assert client_b.get("LH-01").cleaning_status.is_clean is False

    def test_two_clients_append_audit(self, tmp_path: Path):
        path = tmp_path / "halls.json"
        client_a = JsonRoomStore(path)
        client_b = JsonRoomStore(path)
        AuditLog(client_a).append(AuditKind.CLEANING_STARTED, "Hall 1", "von A", MONDAY_9)
        AuditLog(client_b).append(AuditKind.CLEANING_STARTED, "Hall 2", "von B", MONDAY_9)
        messages = {r.message for r in JsonRoomStore(path).all_audit()}
        assert messages == {"von A", "von B"}

    def test_unwritable_path_raises(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("kein Verzeichnis", encoding="utf-8")
        store = JsonRoomStore(blocker / "halls.json")
        with pytest.raises(StoreWriteError):
            store.put_room(make_room())
        assert store.is_empty()


# ─── Protokoll & Anfragen ─────────────────────────────────────────────────────

class TestLedgers:
    def test_audit_newest_first_and_limited(self):
        log = AuditLog(RoomStore(), limit=3)
        for i in range(5):
            log.append(AuditKind.CLEANING_STARTED, "Hall 1", f"Eintrag {i}",
                       MONDAY_9 + timedelta(minutes=i))
        assert [r.message for r in log.recent()] == ["Eintrag 4", "Eintrag 3", "Eintrag 2"]
        assert len(log.store.all_audit()) == 5

    def test_limit_zero_returns_nothing(self):
        """Ein explizites limit=0 liefert keine Einträge statt der Standard-Grenze."""
        store = RoomStore()
        log = AuditLog(store)
        log.append(AuditKind.CLEANING_STARTED, "Hall 1", "x", MONDAY_9)
        assert log.recent(0) == []
        assert store.recent_audit(0) == []
        assert store.recent_announcements(0) == []
        ledger = RequestLedger()
        from engine.requests import send_request
        ledger.append(send_request(make_room(), "Anfrage", MONDAY_9).requests[0])
        assert ledger.recent(0) == []

    def test_audit_equal_timestamps_newest_arrival_first(self):
        log = AuditLog(RoomStore())
        log.append(AuditKind.CLEANING_STARTED, "Hall 1", "erster", MONDAY_9)
        log.append(AuditKind.CLEANING_STARTED, "Hall 1", "zweiter", MONDAY_9)
        assert log.recent()[0].message == "zweiter"

    def test_audit_rejects_mismatched_details(self):
        from models.records import AttendanceDetails
        with pytest.raises(ValueError):
            AuditLog(RoomStore()).append(AuditKind.CLEANING, "Hall 1", "x", MONDAY_9,
                                         details=AttendanceDetails(count=3))

    def test_audit_subscription(self):
        store = RoomStore()
        seen = []
        store.subscribe_audit(lambda records: seen.append(len(records)))
        AuditLog(store).append(AuditKind.CLEANING_STARTED, "Hall 1", "x", MONDAY_9)
        assert seen == [0, 1]

    def test_request_ledger_recent(self):
        from engine.requests import send_request
        ledger = RequestLedger(limit=2)
        for i in range(3):
            result = send_request(make_room(), f"Anfrage {i}",
                                  MONDAY_9 + timedelta(minutes=i))
            ledger.append(result.requests[0])
        assert [e.message for e in ledger.recent()] == ["Anfrage 2", "Anfrage 1"]
        assert len(ledger) == 3


# ─── Seed ─────────────────────────────────────────────────────────────────────

class TestSeed:
    def test_seed_creates_free_clean_halls(self):
        service, _ = seeded_service()
        rooms = service.sorted_rooms()
        assert [r.id for r in rooms] == ["LH-01", "LH-02", "LH-03"]
        for room in rooms:
            assert room.status == RoomStatus.FREE
            assert room.cleaning_status.is_clean
            assert room.cleaning_status.cleaned_by == "System"
            assert len(room.facilities.ac_machines) == 2
        assert service.store.recent_announcements()[0].author == "Admin"

    def test_seed_only_when_empty(self):
        service, _ = seeded_service()
        assert seed_if_empty(service.store, service.config, MONDAY_9) is False
        assert len(service.store.rooms()) == 3

    def test_seed_reproducible(self):
        cfg = SeedConfig(hall_count=2)
        a = SeedGenerator(cfg, seed=7).generate_rooms(MONDAY_9)
        b = SeedGenerator(cfg, seed=7).generate_rooms(MONDAY_9)
        assert a == b

    def test_sorted_by_hall_number(self):
        service, _ = make_service()
        for room_id, name in [("x", "Hall 10"), ("y", "Hall 2"), ("z", "Hall 1")]:
            service.store.put_room(make_room(room_id, name))
        assert [r.name for r in service.sorted_rooms()] == ["Hall 1", "Hall 2", "Hall 10"]


# ─── HallService ──────────────────────────────────────────────────────────────

class TestHallService:
    def test_start_lecture_writes_state_and_audit(self):
        service, _ = seeded_service()
        service.start_lecture("LH-01", LectureInput(
            name="Algorithms", lecturer="Dr. X", subject_codes="CS201",
            duration_hours=1.5, start_time=MONDAY_9))
        assert service.room("LH-01").status == RoomStatus.OCCUPIED
        assert service.audit_log.recent()[0].kind == AuditKind.LECTURE_START

    def test_failed_transition_writes_nothing(self):
        service, _ = seeded_service()
        before = service.store.rooms()
        audit_before = len(service.store.all_audit())
        with pytest.raises(IllegalTransition):
            service.mark_free("LH-01")
        assert service.store.rooms() == before
        assert len(service.store.all_audit()) == audit_before

    def test_unknown_room(self):
        service, _ = seeded_service()
        with pytest.raises(UnknownRoomError):
            service.start_cleaning("LH-99")

    def test_scheduled_held_picks_earliest_today(self):
        service, _ = seeded_service()
        for start in ("10:00", "08:00"):
            service.add_schedule_entry("LH-01", ScheduleInput(
                days=["Monday"], name=f"Vorlesung {start}", lecturer="Prof. Y",
                subject_codes="CS", duration_hours=1, start_time=start))
        service.mark_scheduled_held("LH-01")
        assert service.room("LH-01").current_lecture.name == "Vorlesung 08:00"

    def test_scheduled_held_without_entry(self):
        service, _ = seeded_service()
        before = service.room("LH-01")
        with pytest.raises(IllegalTransition):
            service.mark_scheduled_held("LH-01")
        assert service.room("LH-01") == before

    def test_skip_goes_to_request_ledger(self):
        service, _ = seeded_service()
        service.add_schedule_entry("LH-01", ScheduleInput(
            days=["Monday"], name="Databases", lecturer="Prof. Y",
            subject_codes="CS301", duration_hours=2, start_time="08:00"))
        service.mark_scheduled_held("LH-01")
        service.mark_scheduled_skipped("LH-01")
        assert service.room("LH-01").status == RoomStatus.FREE
        assert service.requests.recent()[0].department == "Academic Affairs"

    def test_reconciler_resets_on_next_day(self):
        """Nach Mitternacht setzt der angehängte Abgleich alle Hörsäle zurück."""
        service, clock = seeded_service(now=datetime(2025, 3, 3, 23, 0, tzinfo=TZ))
        service.attach_reconciler()
        assert all(r.cleaning_status.is_clean for r in service.store.rooms().values())

        clock.advance(hours=1, minutes=5)
        service.start_cleaning("LH-01")   # beliebiger Schreibvorgang löst Push aus
        assert not any(r.cleaning_status.is_clean for r in service.store.rooms().values())

    def test_attached_reconciler_writes_each_room_once(self):
        """Verschachtelte Benachrichtigungen führen nicht zu doppelten Resets."""
        store = CountingStore()
        service, clock = make_service(store)
        config = service.config.model_copy(update={"seed": SeedConfig(hall_count=4)})
        seed_if_empty(store, config, MONDAY_9)
        clock.advance(days=1)
        service.attach_reconciler()
        assert store.resets == 4
        assert not any(r.cleaning_status.is_clean for r in store.rooms().values())

    def test_reconcile_counts_and_is_idempotent(self):
        service, clock = seeded_service()
        clock.advance(days=1)
        assert service.reconcile() == 3
        assert service.reconcile() == 0

    def test_complete_cleaning_after_reset(self):
        service, clock = seeded_service()
        clock.advance(days=1)
        service.reconcile()
        service.complete_cleaning("LH-02", "Anna", "E-7")
        room = service.room("LH-02")
        assert room.cleaning_status.is_clean
        assert room.cleaning_status.cleaned_at == clock.now

    def test_audit_write_failure_keeps_command(self):
        """Scheitert nur das Protokoll, bleibt der Zustandswechsel bestehen."""
        store = RoomStore()
        service, _ = make_service(store)
        store.put_room(make_room())
        original_apply = store.apply

        def apply(command):
            if isinstance(command, AppendAuditRecord):
                raise StoreWriteError("Protokoll voll")
            original_apply(command)

        store.apply = apply
        service.start_cleaning("LH-01")
        assert store.get("LH-01").status == RoomStatus.CLEANING
        assert store.all_audit() == []

    def test_facilities_commit(self):
        service, _ = seeded_service()
        editor = service.edit_facilities("LH-01")
        editor.set_ac_count(4)
        service.commit_facilities(editor)
        assert len(service.room("LH-01").facilities.ac_machines) == 4
        assert service.audit_log.recent()[0].kind == AuditKind.FACILITIES_UPDATE

    def test_attendance_and_requests(self):
        service, _ = seeded_service()
        service.log_attendance("LH-03", 17)
        service.send_special_request("LH-03", "Mikrofon fehlt")
        assert service.room("LH-03").attendance_records[0].count == 17
        kinds = [r.kind for r in service.audit_log.recent()[:2]]
        assert kinds == [AuditKind.SPECIAL_REQUEST, AuditKind.ATTENDANCE]
