from models.room import (
    AcUnit,
    AttendanceRecord,
    CleaningStatus,
    CurrentLecture,
    Facilities,
    Room,
    RoomStatus,
    ScheduledLecture,
    ScheduleEntry,
)
from models.records import Announcement, AuditKind, AuditRecord, RequestEntry
from models.commands import Command, RoomCommand, apply_command

__all__ = [
    "AcUnit",
    "AttendanceRecord",
    "CleaningStatus",
    "CurrentLecture",
    "Facilities",
    "Room",
    "RoomStatus",
    "ScheduledLecture",
    "ScheduleEntry",
    "Announcement",
    "AuditKind",
    "AuditRecord",
    "RequestEntry",
    "Command",
    "RoomCommand",
    "apply_command",
]
