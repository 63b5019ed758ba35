"""Datenmodell für einen Hörsaal-Snapshot (Pydantic v2, unveränderlich).

Ein ``Room`` beschreibt den vollständigen Zustand eines Hörsaals zu einem
Beobachtungszeitpunkt. Änderungen erzeugen immer einen neuen Snapshot.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from config.defaults import DAYS_OF_WEEK, MAX_LECTURE_HOURS


class RoomStatus(str, Enum):
    FREE = "free"
    OCCUPIED = "occupied"
    CLEANING = "cleaning"


class AcUnit(BaseModel):
    """Ein Klimagerät im Hörsaal."""

    model_config = ConfigDict(frozen=True)

    id: str
    working: bool = True


class Facilities(BaseModel):
    """Ausstattung eines Hörsaals (unabhängig von der Belegung)."""

    model_config = ConfigDict(frozen=True)

    chairs_available: int = Field(100, ge=0)
    smart_board: bool = True
    white_board: bool = True
    pens_available: bool = True
    ac_machines: tuple[AcUnit, ...] = ()

    @model_validator(mode='after')
    def _check_unique_ac_ids(self):
        ids = [ac.id for ac in self.ac_machines]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Doppelte Klimageräte-IDs: {ids}")
        return self

    @property
    def working_ac_count(self) -> int:
        return sum(1 for ac in self.ac_machines if ac.working)


class CurrentLecture(BaseModel):
    """Die laufende Vorlesung eines belegten Hörsaals."""

    model_config = ConfigDict(frozen=True)

    name: str
    lecturer: str
    subject_codes: str
    students_count: int = Field(0, ge=0)
    duration_hours: float = Field(gt=0, le=MAX_LECTURE_HOURS)
    start_time: datetime
    end_time: datetime
    is_scheduled_lecture: bool = False

    @model_validator(mode='after')
    def _check_end_time(self):
        expected = self.start_time + timedelta(hours=self.duration_hours)
        if self.end_time != expected:
            raise ValueError(
                f"end_time ({self.end_time}) ≠ start_time + duration_hours ({expected})"
            )
        return self

    @classmethod
    def starting_at(
        cls,
        start_time: datetime,
        duration_hours: float,
        **fields,
    ) -> "CurrentLecture":
        """Baut eine Vorlesung und berechnet end_time aus der Dauer."""
        return cls(
            start_time=start_time,
            end_time=start_time + timedelta(hours=duration_hours),
            duration_hours=duration_hours,
            **fields,
        )


class CleaningStatus(BaseModel):
    """Reinigungszustand des laufenden Kalendertags."""

    model_config = ConfigDict(frozen=True)

    is_clean: bool
    cleaned_by: str = ""
    cleaned_at: Optional[datetime] = None
    employee_id: str = ""

    @model_validator(mode='after')
    def _check_consistency(self):
        if self.is_clean and self.cleaned_at is None:
            raise ValueError("Sauberer Hörsaal braucht cleaned_at.")
        if not self.is_clean and (self.cleaned_at is not None
                                  or self.cleaned_by or self.employee_id):
            raise ValueError(
                "Reinigungsbedürftiger Hörsaal darf keine Reinigungsdaten tragen."
            )
        return self

    @classmethod
    def dirty(cls) -> "CleaningStatus":
        return cls(is_clean=False, cleaned_by="", cleaned_at=None, employee_id="")


class ScheduledLecture(BaseModel):
    """Vorlage einer wöchentlich wiederkehrenden Vorlesung."""

    model_config = ConfigDict(frozen=True)

    name: str
    lecturer: str
    subject_codes: str
    duration_hours: float = Field(gt=0, le=MAX_LECTURE_HOURS)
    start_time: str   # Uhrzeit "HH:MM"


class ScheduleEntry(BaseModel):
    """Ein Stundenplan-Eintrag: Vorlesung an bestimmten Wochentagen."""

    model_config = ConfigDict(frozen=True)

    schedule_id: str
    days: tuple[str, ...]
    lecture: ScheduledLecture

    @model_validator(mode='after')
    def _check_days(self):
        if not self.days:
            raise ValueError(f"Eintrag {self.schedule_id}: mindestens ein Wochentag nötig.")
        unknown = [d for d in self.days if d not in DAYS_OF_WEEK]
        if unknown:
            raise ValueError(f"Eintrag {self.schedule_id}: unbekannte Wochentage {unknown}")
        return self


class AttendanceRecord(BaseModel):
    """Eine protokollierte Teilnehmerzahl."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    count: int = Field(ge=0)
    logged_by: str


class Room(BaseModel):
    """Snapshot eines Hörsaals."""

    model_config = ConfigDict(frozen=True)

    id: str                                 # "LH-01"
    name: str                               # "Hall 1"
    status: RoomStatus = RoomStatus.FREE
    facilities: Facilities = Field(default_factory=Facilities)
    current_lecture: Optional[CurrentLecture] = None
    cleaning_status: CleaningStatus
    schedule: tuple[ScheduleEntry, ...] = ()
    attendance_records: tuple[AttendanceRecord, ...] = ()

    @model_validator(mode='after')
    def _check_occupancy(self):
        occupied = self.status == RoomStatus.OCCUPIED
        if occupied != (self.current_lecture is not None):
            raise ValueError(
                f"Hörsaal {self.id}: status={self.status.value} passt nicht zu "
                f"current_lecture={'gesetzt' if self.current_lecture else 'leer'}"
            )
        return self

    @model_validator(mode='after')
    def _check_unique_schedule_ids(self):
        ids = [e.schedule_id for e in self.schedule]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Hörsaal {self.id}: doppelte schedule_id in {ids}")
        return self

    @property
    def is_occupied(self) -> bool:
        return self.status == RoomStatus.OCCUPIED

    @property
    def hall_number(self) -> float:
        """Erste Zahl im Namen ("Hall 12" → 12), für die Sortierung der Übersicht."""
        digits = ""
        for ch in self.name:
            if ch.isdigit():
                digits += ch
            elif digits:
                break
        return int(digits) if digits else float("inf")

    def find_schedule_entry(self, schedule_id: str) -> Optional[ScheduleEntry]:
        return next((e for e in self.schedule if e.schedule_id == schedule_id), None)
