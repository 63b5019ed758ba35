"""Protokoll-, Anfrage- und Ankündigungs-Einträge (Pydantic v2).

Protokoll-Einträge sind eine geschlossene Menge von Ereignisarten. Jede Art
hat genau einen zulässigen Detail-Typ; die Kombination wird beim Anlegen
geprüft.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AuditKind(str, Enum):
    CLEANING = "Cleaning"
    LECTURE_START = "Lecture Start"
    LECTURE_END = "Lecture End"
    SCHEDULED_START = "Scheduled Lecture Start"
    SCHEDULED_SKIPPED = "Scheduled Lecture Skipped"
    CLEANING_STARTED = "Cleaning Started"
    FACILITIES_UPDATE = "Facilities Update"
    SCHEDULE_ADDED = "Schedule Added"
    SCHEDULE_UPDATED = "Schedule Updated"
    SCHEDULE_DELETED = "Schedule Deleted"
    ATTENDANCE = "Attendance Log"
    GENERAL_REQUEST = "General Request"
    SPECIAL_REQUEST = "Special Request (Email)"


# ─── Detail-Typen ─────────────────────────────────────────────────────────────

class NoDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["none"] = "none"


class CleaningDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["cleaning"] = "cleaning"
    employee_id: str
    notes: str = ""


class LectureDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["lecture"] = "lecture"
    lecture_name: str
    lecturer: str = ""
    schedule_id: Optional[str] = None


class FacilityDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["facilities"] = "facilities"
    chairs_available: int
    ac_units: int
    ac_working: int


class ScheduleDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["schedule"] = "schedule"
    schedule_id: str
    days: tuple[str, ...] = ()


class AttendanceDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["attendance"] = "attendance"
    count: int = Field(ge=0)


class RequestDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["request"] = "request"
    department: str
    email_recipient: Optional[str] = None


AuditDetails = Annotated[
    Union[
        NoDetails,
        CleaningDetails,
        LectureDetails,
        FacilityDetails,
        ScheduleDetails,
        AttendanceDetails,
        RequestDetails,
    ],
    Field(discriminator="type"),
]

# Welche Detail-Art zu welcher Ereignisart gehört
DETAILS_BY_KIND: dict[AuditKind, type] = {
    AuditKind.CLEANING: CleaningDetails,
    AuditKind.LECTURE_START: LectureDetails,
    AuditKind.LECTURE_END: LectureDetails,
    AuditKind.SCHEDULED_START: LectureDetails,
    AuditKind.SCHEDULED_SKIPPED: LectureDetails,
    AuditKind.CLEANING_STARTED: NoDetails,
    AuditKind.FACILITIES_UPDATE: FacilityDetails,
    AuditKind.SCHEDULE_ADDED: ScheduleDetails,
    AuditKind.SCHEDULE_UPDATED: ScheduleDetails,
    AuditKind.SCHEDULE_DELETED: ScheduleDetails,
    AuditKind.ATTENDANCE: AttendanceDetails,
    AuditKind.GENERAL_REQUEST: RequestDetails,
    AuditKind.SPECIAL_REQUEST: RequestDetails,
}


# ─── Einträge ─────────────────────────────────────────────────────────────────

class AuditRecord(BaseModel):
    """Unveränderlicher Protokoll-Eintrag zu genau einer zustandsändernden Aktion."""

    model_config = ConfigDict(frozen=True)

    kind: AuditKind
    room_name: str
    message: str
    details: AuditDetails = Field(default_factory=NoDetails)
    timestamp: datetime
    user: str = ""

    @model_validator(mode='after')
    def _check_details_match_kind(self):
        expected = DETAILS_BY_KIND[self.kind]
        if not isinstance(self.details, expected):
            raise ValueError(
                f"Ereignis '{self.kind.value}' erwartet {expected.__name__}, "
                f"nicht {type(self.details).__name__}"
            )
        if not self.message.strip():
            raise ValueError("Protokoll-Eintrag ohne Nachricht.")
        return self


class RequestEntry(BaseModel):
    """Eine Anfrage oder Benachrichtigung (z.B. ausgefallene Vorlesung)."""

    model_config = ConfigDict(frozen=True)

    hall: str
    type: str
    message: str
    time: datetime
    department: str
    email_recipient: Optional[str] = None


class Announcement(BaseModel):
    """Eine Ankündigung auf dem Dashboard."""

    model_config = ConfigDict(frozen=True)

    text: str
    timestamp: datetime
    author: str
