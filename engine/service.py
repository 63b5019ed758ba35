"""HallService: verbindet Zustandsautomat, Editoren und Bestand.

Holt den aktuellen Snapshot, ruft die Operation auf, schreibt die Befehle in
den Bestand und hängt Protokoll- und Anfrage-Einträge an. Mit
``attach_reconciler`` läuft der tägliche Reinigungs-Wechsel bei jedem
Snapshot-Push des Bestands.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from config.schema import AppConfig
from engine.attendance import log_attendance
from engine.errors import StoreWriteError
from engine.facility_editor import FacilityEditor
from engine.lifecycle import LectureInput, LectureLifecycle, TransitionResult
from engine.requests import send_request, send_special_request
from engine.rollover import is_stale, reconcile_all
from engine.schedule_editor import ScheduleEditor, ScheduleInput
from engine.schedule_matcher import next_entry_today, todays_entries
from models.records import AuditKind
from models.room import Room, ScheduleEntry
from store.ledger import AuditLog, RequestLedger
from store.memory import RoomStore

logger = logging.getLogger(__name__)


class HallService:
    """Fassade für Hosts (CLI, API, ...) über einem gemeinsamen Bestand."""

    def __init__(
        self,
        store: RoomStore,
        config: AppConfig,
        clock: Optional[Callable[[], datetime]] = None,
        user: Optional[str] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.tz = config.tzinfo
        self.user = user or config.user
        self._clock = clock or (lambda: datetime.now(self.tz))

        self.lifecycle = LectureLifecycle(config, user=self.user)
        self.schedule_editor = ScheduleEditor(user=self.user)
        self.audit_log = AuditLog(store, limit=config.display.audit_limit)
        self.requests = RequestLedger(limit=config.display.request_limit)

    def now(self) -> datetime:
        return self._clock()

    def room(self, room_id: str) -> Room:
        return self.store.get(room_id)

    def sorted_rooms(self) -> list[Room]:
        """Alle Hörsäle nach der Nummer im Namen sortiert."""
        return sorted(self.store.rooms().values(), key=lambda r: (r.hall_number, r.name))

    # ─── Ausführung ───

    def execute(self, result: TransitionResult) -> TransitionResult:
        """Schreibt Befehle, dann Protokoll, dann Anfragen.

        Ein Schreibfehler bei den Befehlen bricht ab (kein Protokoll für eine
        nicht geschehene Aktion). Ein Schreibfehler beim Protokoll wird nur
        geloggt.
        """
        self.store.apply_all(result.commands)
        for record in result.audit_records:
            try:
                self.audit_log.append_record(record)
            except StoreWriteError as e:
                logger.warning(f"Protokoll-Eintrag nicht gespeichert: {e}")
        for request in result.requests:
            self.requests.append(request)
        return result

    # ─── Belegung ───

    def start_lecture(self, room_id: str, data: LectureInput) -> TransitionResult:
        return self.execute(self.lifecycle.start_lecture(self.room(room_id), data, self.now()))

    def mark_free(self, room_id: str) -> TransitionResult:
        return self.execute(self.lifecycle.mark_free(self.room(room_id), self.now()))

    def resolve_entry(self, room: Room, schedule_id: Optional[str]) -> Optional[ScheduleEntry]:
        """Eintrag per ID oder – ohne ID – der früheste heute geltende."""
        if schedule_id:
            return room.find_schedule_entry(schedule_id)
        return next_entry_today(room, self.now(), self.tz)

    def mark_scheduled_held(self, room_id: str,
                            schedule_id: Optional[str] = None) -> TransitionResult:
        room = self.room(room_id)
        entry = self.resolve_entry(room, schedule_id)
        return self.execute(self.lifecycle.mark_scheduled_held(room, entry, self.now()))

    def mark_scheduled_skipped(self, room_id: str,
                               schedule_id: Optional[str] = None) -> TransitionResult:
        room = self.room(room_id)
        entry = self.resolve_entry(room, schedule_id)
        return self.execute(self.lifecycle.mark_scheduled_skipped(room, entry, self.now()))

    def todays_schedule(self, room_id: str) -> list[ScheduleEntry]:
        return todays_entries(self.room(room_id), self.now(), self.tz)

    # ─── Reinigung ───

    def start_cleaning(self, room_id: str) -> TransitionResult:
        return self.execute(self.lifecycle.start_cleaning(self.room(room_id), self.now()))

    def complete_cleaning(self, room_id: str, cleaner_name: str, employee_id: str,
                          notes: str = "") -> TransitionResult:
        return self.execute(self.lifecycle.complete_cleaning(
            self.room(room_id), cleaner_name, employee_id, notes, self.now()))

    def reconcile(self) -> int:
        """Ein Abgleich-Durchlauf über alle Hörsäle. Gibt die Zahl geschriebener Resets zurück."""
        return self._apply_rollover(self.store.rooms())

    def attach_reconciler(self) -> Callable[[], None]:
        """Abgleich bei jedem Snapshot-Push; gibt die Abmelde-Funktion zurück."""
        return self.store.subscribe_rooms(self._apply_rollover)

    def _apply_rollover(self, rooms: dict[str, Room]) -> int:
        written = 0
        now = self.now()
        for command in reconcile_all(rooms, now, self.tz):
            # Jeder Schreibvorgang benachrichtigt erneut; ein verschachtelter
            # Durchlauf kann den Hörsaal schon zurückgesetzt haben
            if not is_stale(self.store.get(command.room_id).cleaning_status, now, self.tz):
                continue
            try:
                self.store.apply(command)
                written += 1
            except StoreWriteError as e:
                # Nächste Beobachtung findet denselben Zustand und versucht es erneut
                logger.warning(f"Reinigungs-Reset für {command.room_id} nicht gespeichert: {e}")
        return written

    # ─── Ausstattung ───

    def edit_facilities(self, room_id: str) -> FacilityEditor:
        return FacilityEditor(self.room(room_id), user=self.user)

    def commit_facilities(self, editor: FacilityEditor) -> TransitionResult:
        return self.execute(editor.commit(self.now()))

    # ─── Stundenplan ───

    def add_schedule_entry(self, room_id: str, data: ScheduleInput) -> TransitionResult:
        return self.execute(self.schedule_editor.add(self.room(room_id), data, self.now()))

    def update_schedule_entry(self, room_id: str, schedule_id: str,
                              data: ScheduleInput) -> TransitionResult:
        return self.execute(
            self.schedule_editor.update(self.room(room_id), schedule_id, data, self.now()))

    def delete_schedule_entry(self, room_id: str, schedule_id: str) -> TransitionResult:
        return self.execute(
            self.schedule_editor.delete(self.room(room_id), schedule_id, self.now()))

    # ─── Anwesenheit & Anfragen ───

    def log_attendance(self, room_id: str, count) -> TransitionResult:
        return self.execute(log_attendance(self.room(room_id), count, self.user, self.now()))

    def send_request(self, room_id: str, message: str) -> TransitionResult:
        return self.execute(send_request(
            self.room(room_id), message, self.now(),
            kind=AuditKind.GENERAL_REQUEST,
            department=self.config.notifications.general_request_department,
            user=self.user,
        ))

    def send_special_request(self, room_id: str, notes: str) -> TransitionResult:
        return self.execute(send_special_request(
            self.room(room_id), notes, self.now(), self.config.notifications, user=self.user))
