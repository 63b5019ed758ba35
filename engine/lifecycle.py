"""Belegungs-Zustandsautomat eines Hörsaals.

Zustände: free → occupied → free, free → cleaning → free, beliebig → free
(durch abgeschlossene Reinigung). Es gibt keinen Endzustand.

Jede Operation prüft ihre Vorbedingungen am übergebenen Snapshot und liefert
ein ``TransitionResult`` mit den zu schreibenden Befehlen, Protokoll-Einträgen
und Benachrichtigungen. Bei ``IllegalTransition`` oder
``InputValidationError`` entsteht nichts davon.

Belegung allein macht einen Hörsaal nie reinigungsbedürftig; das übernimmt
ausschließlich der tägliche Wechsel in ``engine.rollover``.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, time, tzinfo
from typing import Optional, Union

from config.defaults import MAX_LECTURE_HOURS
from config.schema import AppConfig
from engine.errors import IllegalTransition, InputValidationError
from engine.schedule_matcher import local_time, matches_today, parse_clock_time
from models.commands import (
    ClearCurrentLecture,
    RoomCommand,
    SetCleaningStatus,
    SetCurrentLecture,
    SetRoomStatus,
)
from models.records import (
    AuditKind,
    AuditRecord,
    CleaningDetails,
    LectureDetails,
    NoDetails,
    RequestEntry,
)
from models.room import CleaningStatus, CurrentLecture, Room, RoomStatus, ScheduleEntry

logger = logging.getLogger(__name__)

SKIP_REQUEST_TYPE = "Scheduled Lecture Canceled"


# ─── Ein- und Ausgabe ─────────────────────────────────────────────────────────

@dataclass
class LectureInput:
    """Rohdaten einer manuell gestarteten Vorlesung (wie aus einem Formular)."""

    name: str
    lecturer: str
    subject_codes: str
    duration_hours: Union[float, str, None]
    start_time: Union[datetime, str, None]
    students_count: Union[int, str, None] = 0


@dataclass
class TransitionResult:
    """Ergebnis einer Operation: Befehle an den Bestand plus Nebenwirkungen."""

    commands: list[RoomCommand] = field(default_factory=list)
    audit_records: list[AuditRecord] = field(default_factory=list)
    requests: list[RequestEntry] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.commands and not self.audit_records and not self.requests


# ─── Eingabe-Prüfung ──────────────────────────────────────────────────────────

def require_text(value: Optional[str], label: str) -> str:
    """Getrimmter Pflichttext; leer → InputValidationError."""
    text = (value or "").strip()
    if not text:
        raise InputValidationError(f"{label} darf nicht leer sein.")
    return text


def parse_duration(value: Union[float, str, None]) -> float:
    """Dauer in Stunden (> 0)."""
    if value is None or value == "":
        raise InputValidationError("Dauer fehlt.")
    try:
        hours = float(value)
    except (TypeError, ValueError) as e:
        raise InputValidationError(f"Dauer ist keine Zahl: {value!r}") from e
    if not math.isfinite(hours) or not 0 < hours <= MAX_LECTURE_HOURS:
        raise InputValidationError(
            f"Dauer muss > 0 und ≤ {MAX_LECTURE_HOURS} Stunden sein, nicht {hours}."
        )
    return hours


def parse_start_time(value: Union[datetime, str, None], tz: Optional[tzinfo]) -> datetime:
    """Startzeitpunkt aus datetime oder ISO-String; naive Werte gelten in ``tz``."""
    if value is None or value == "":
        raise InputValidationError("Startzeit fehlt.")
    if isinstance(value, datetime):
        moment = value
    else:
        try:
            moment = datetime.fromisoformat(str(value).strip())
        except ValueError as e:
            raise InputValidationError(f"Startzeit nicht lesbar: {value!r}") from e
    if moment.tzinfo is None and tz is not None:
        moment = moment.replace(tzinfo=tz)
    return moment


def parse_students(value: Union[int, str, None]) -> int:
    """Teilnehmerzahl ist optional; leer oder unlesbar zählt als 0."""
    try:
        count = int(value or 0)
    except (TypeError, ValueError):
        return 0
    return max(count, 0)


# ─── Zustandsautomat ──────────────────────────────────────────────────────────

class LectureLifecycle:
    """Prüft und führt Belegungsübergänge aus.

    Verwendung:
        lifecycle = LectureLifecycle(config)
        result = lifecycle.mark_free(room, now)
        store.apply_all(result.commands)
    """

    def __init__(self, config: AppConfig, user: Optional[str] = None) -> None:
        self.config = config
        self.tz = config.tzinfo
        self.user = user or config.user

    def _audit(self, kind: AuditKind, room: Room, message: str,
               details, now: datetime) -> AuditRecord:
        return AuditRecord(kind=kind, room_name=room.name, message=message,
                           details=details, timestamp=now, user=self.user)

    # ─── Manuelle Vorlesung ───

    def start_lecture(self, room: Room, data: LectureInput, now: datetime) -> TransitionResult:
        """free → occupied mit einer manuell eingetragenen Vorlesung."""
        if room.status != RoomStatus.FREE:
            raise IllegalTransition("StartLecture", room.id,
                                    f"Status ist {room.status.value}, nicht free")

        name = require_text(data.name, "Vorlesungsname")
        lecturer = require_text(data.lecturer, "Dozent")
        subject_codes = require_text(data.subject_codes, "Fachkürzel")
        duration = parse_duration(data.duration_hours)
        start = parse_start_time(data.start_time, self.tz)

        lecture = CurrentLecture.starting_at(
            start, duration,
            name=name,
            lecturer=lecturer,
            subject_codes=subject_codes,
            students_count=parse_students(data.students_count),
            is_scheduled_lecture=False,
        )
        logger.info(f"{room.name}: Vorlesung '{name}' gestartet (bis {lecture.end_time:%H:%M})")
        return TransitionResult(
            commands=[SetCurrentLecture(room_id=room.id, lecture=lecture)],
            audit_records=[self._audit(
                AuditKind.LECTURE_START, room,
                f'Started: "{name}" by {lecturer}.',
                LectureDetails(lecture_name=name, lecturer=lecturer), now,
            )],
        )

    def mark_free(self, room: Room, now: datetime) -> TransitionResult:
        """occupied → free. Der Reinigungszustand bleibt unverändert."""
        if room.status != RoomStatus.OCCUPIED:
            raise IllegalTransition("MarkFree", room.id,
                                    f"Status ist {room.status.value}, nicht occupied")
        lecture = room.current_lecture
        logger.info(f"{room.name}: '{lecture.name}' beendet, Hörsaal frei")
        return TransitionResult(
            commands=[ClearCurrentLecture(room_id=room.id)],
            audit_records=[self._audit(
                AuditKind.LECTURE_END, room,
                f'Ended: "{lecture.name}". Hall is now free.',
                LectureDetails(lecture_name=lecture.name, lecturer=lecture.lecturer), now,
            )],
        )

    # ─── Geplante Vorlesungen ───

    def mark_scheduled_held(
        self,
        room: Room,
        entry: Optional[ScheduleEntry],
        now: datetime,
    ) -> TransitionResult:
        """free → occupied mit der heute geplanten Vorlesung aus ``entry``."""
        if room.status != RoomStatus.FREE:
            raise IllegalTransition("MarkScheduledHeld", room.id,
                                    f"Status ist {room.status.value}, nicht free")
        if entry is None:
            raise IllegalTransition("MarkScheduledHeld", room.id,
                                    "kein Stundenplan-Eintrag angegeben")
        if not matches_today(room, entry, now, self.tz):
            raise IllegalTransition("MarkScheduledHeld", room.id,
                                    f"Eintrag {entry.schedule_id} gilt heute nicht")
        # Gespeicherten Eintrag verwenden, nicht das übergebene Objekt
        entry = room.find_schedule_entry(entry.schedule_id)

        minutes = parse_clock_time(entry.lecture.start_time)
        if minutes is None:
            raise InputValidationError(
                f"Startzeit '{entry.lecture.start_time}' von Eintrag "
                f"{entry.schedule_id} nicht lesbar."
            )
        local_now = local_time(now, self.tz)
        start = datetime.combine(local_now.date(), time(minutes // 60, minutes % 60),
                                 tzinfo=local_now.tzinfo)
        lec = entry.lecture
        lecture = CurrentLecture.starting_at(
            start, lec.duration_hours,
            name=lec.name,
            lecturer=lec.lecturer,
            subject_codes=lec.subject_codes,
            students_count=0,
            is_scheduled_lecture=True,
        )
        logger.info(f"{room.name}: geplante Vorlesung '{lec.name}' findet statt")
        return TransitionResult(
            commands=[SetCurrentLecture(room_id=room.id, lecture=lecture)],
            audit_records=[self._audit(
                AuditKind.SCHEDULED_START, room,
                f'Scheduled lecture "{lec.name}" started.',
                LectureDetails(lecture_name=lec.name, lecturer=lec.lecturer,
                               schedule_id=entry.schedule_id), now,
            )],
        )

    def mark_scheduled_skipped(
        self,
        room: Room,
        entry: Optional[ScheduleEntry],
        now: datetime,
    ) -> TransitionResult:
        """Geplante Vorlesung fällt aus.

        Läuft genau diese Vorlesung gerade, wird der Hörsaal wie bei
        ``mark_free`` frei. Andernfalls ändert sich nichts am Zustand; es
        entstehen nur Protokoll-Eintrag und Benachrichtigung.
        """
        if entry is None:
            raise IllegalTransition("MarkScheduledSkipped", room.id,
                                    "kein Stundenplan-Eintrag angegeben")
        entry = room.find_schedule_entry(entry.schedule_id) or entry

        lec = entry.lecture
        notify = self.config.notifications
        request = RequestEntry(
            hall=room.name,
            type=SKIP_REQUEST_TYPE,
            message=f'Scheduled lecture "{lec.name}" in {room.name} was skipped/canceled.',
            time=now,
            department=notify.skip_department,
            email_recipient=notify.skip_recipient,
        )
        skip_record = self._audit(
            AuditKind.SCHEDULED_SKIPPED, room,
            f'Scheduled lecture "{lec.name}" was skipped.',
            LectureDetails(lecture_name=lec.name, lecturer=lec.lecturer,
                           schedule_id=entry.schedule_id), now,
        )

        current = room.current_lecture
        if current is not None and current.is_scheduled_lecture and current.name == lec.name:
            freed = self.mark_free(room, now)
            freed.audit_records.append(skip_record)
            freed.requests.append(request)
            return freed

        logger.info(f"{room.name}: geplante Vorlesung '{lec.name}' fällt aus")
        return TransitionResult(audit_records=[skip_record], requests=[request])

    # ─── Reinigung ───

    def start_cleaning(self, room: Room, now: datetime) -> TransitionResult:
        """free → cleaning. Reiner Anzeige-Marker, der Reinigungszustand bleibt."""
        if room.status != RoomStatus.FREE:
            raise IllegalTransition("StartCleaning", room.id,
                                    f"Status ist {room.status.value}, nicht free")
        return TransitionResult(
            commands=[SetRoomStatus(room_id=room.id, status=RoomStatus.CLEANING)],
            audit_records=[self._audit(
                AuditKind.CLEANING_STARTED, room, "Cleaning started.", NoDetails(), now,
            )],
        )

    def complete_cleaning(
        self,
        room: Room,
        cleaner_name: str,
        employee_id: str,
        notes: str,
        now: datetime,
    ) -> TransitionResult:
        """Beliebiger Status → free, Hörsaal sauber mit Zeitstempel ``now``."""
        cleaner = require_text(cleaner_name, "Name der Reinigungskraft")
        employee = require_text(employee_id, "Personalnummer")

        status = CleaningStatus(is_clean=True, cleaned_by=cleaner,
                                cleaned_at=now, employee_id=employee)
        logger.info(f"{room.name}: gereinigt von {cleaner} ({employee})")
        return TransitionResult(
            commands=[SetCleaningStatus(room_id=room.id, cleaning_status=status, vacate=True)],
            audit_records=[self._audit(
                AuditKind.CLEANING, room, f"Cleaned by {cleaner}.",
                CleaningDetails(employee_id=employee, notes=(notes or "").strip()), now,
            )],
        )
