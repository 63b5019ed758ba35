"""Pflege des wöchentlichen Stundenplans eines Hörsaals."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Union

from config.defaults import DAYS_OF_WEEK, DEFAULT_SCHEDULE_START
from engine.errors import InputValidationError
from engine.lifecycle import TransitionResult, parse_duration, require_text
from engine.schedule_matcher import parse_clock_time
from models.commands import AddScheduleEntry, DeleteScheduleEntry, UpdateScheduleEntry
from models.records import AuditKind, AuditRecord, ScheduleDetails
from models.room import Room, ScheduledLecture, ScheduleEntry

logger = logging.getLogger(__name__)


@dataclass
class ScheduleInput:
    """Formulardaten eines Stundenplan-Eintrags."""

    days: list[str] = field(default_factory=list)
    name: str = ""
    lecturer: str = ""
    subject_codes: str = ""
    duration_hours: Union[float, str, None] = None
    start_time: str = DEFAULT_SCHEDULE_START


def normalize_days(days: list[str]) -> tuple[str, ...]:
    """Prüft die Wochentage und sortiert sie Montag → Sonntag (ohne Duplikate).

    Groß-/Kleinschreibung und dreibuchstabige Kürzel ("mon") werden akzeptiert.
    """
    if not days:
        raise InputValidationError("Mindestens ein Wochentag ist nötig.")
    by_key = {d.lower(): d for d in DAYS_OF_WEEK}
    by_key.update({d[:3].lower(): d for d in DAYS_OF_WEEK})
    result = set()
    for raw in days:
        day = by_key.get(raw.strip().lower())
        if day is None:
            raise InputValidationError(f"Unbekannter Wochentag: {raw!r}")
        result.add(day)
    return tuple(d for d in DAYS_OF_WEEK if d in result)


def build_entry(data: ScheduleInput, schedule_id: str) -> ScheduleEntry:
    days = normalize_days(data.days)
    name = require_text(data.name, "Vorlesungsname")
    lecturer = require_text(data.lecturer, "Dozent")
    subject_codes = require_text(data.subject_codes, "Fachkürzel")
    duration = parse_duration(data.duration_hours)
    start = (data.start_time or "").strip()
    if parse_clock_time(start) is None:
        raise InputValidationError(f"Startzeit '{data.start_time}' ist keine Uhrzeit HH:MM.")
    return ScheduleEntry(
        schedule_id=schedule_id,
        days=days,
        lecture=ScheduledLecture(
            name=name,
            lecturer=lecturer,
            subject_codes=subject_codes,
            duration_hours=duration,
            start_time=start,
        ),
    )


class ScheduleEditor:
    """Erzeugt Befehle zum Anlegen, Ändern und Löschen von Stundenplan-Einträgen."""

    def __init__(self, id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
                 user: str = "") -> None:
        self._id_factory = id_factory
        self.user = user

    def _audit(self, kind: AuditKind, room: Room, message: str,
               entry: ScheduleEntry, now: datetime) -> AuditRecord:
        return AuditRecord(
            kind=kind, room_name=room.name, message=message,
            details=ScheduleDetails(schedule_id=entry.schedule_id, days=entry.days),
            timestamp=now, user=self.user,
        )

    def add(self, room: Room, data: ScheduleInput, now: datetime) -> TransitionResult:
        schedule_id = self._id_factory()
        while room.find_schedule_entry(schedule_id) is not None:
            schedule_id = self._id_factory()
        entry = build_entry(data, schedule_id)
        logger.info(f"{room.name}: Stundenplan-Eintrag '{entry.lecture.name}' angelegt")
        return TransitionResult(
            commands=[AddScheduleEntry(room_id=room.id, entry=entry)],
            audit_records=[self._audit(
                AuditKind.SCHEDULE_ADDED, room,
                f'Schedule entry "{entry.lecture.name}" added '
                f'({", ".join(entry.days)} {entry.lecture.start_time}).',
                entry, now,
            )],
        )

    def update(self, room: Room, schedule_id: str, data: ScheduleInput,
               now: datetime) -> TransitionResult:
        if room.find_schedule_entry(schedule_id) is None:
            raise InputValidationError(
                f"Stundenplan-Eintrag {schedule_id} existiert in {room.name} nicht."
            )
        entry = build_entry(data, schedule_id)
        return TransitionResult(
            commands=[UpdateScheduleEntry(room_id=room.id, entry=entry)],
            audit_records=[self._audit(
                AuditKind.SCHEDULE_UPDATED, room,
                f'Schedule entry "{entry.lecture.name}" updated.', entry, now,
            )],
        )

    def delete(self, room: Room, schedule_id: str, now: datetime) -> TransitionResult:
        entry = room.find_schedule_entry(schedule_id)
        if entry is None:
            raise InputValidationError(
                f"Stundenplan-Eintrag {schedule_id} existiert in {room.name} nicht."
            )
        return TransitionResult(
            commands=[DeleteScheduleEntry(room_id=room.id, schedule_id=schedule_id)],
            audit_records=[self._audit(
                AuditKind.SCHEDULE_DELETED, room,
                f'Schedule entry "{entry.lecture.name}" deleted.', entry, now,
            )],
        )
