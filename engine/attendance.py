"""Anwesenheit protokollieren."""

from datetime import datetime
from typing import Union

from engine.errors import InputValidationError
from engine.lifecycle import TransitionResult
from models.commands import AppendAttendanceRecord
from models.records import AttendanceDetails, AuditKind, AuditRecord
from models.room import AttendanceRecord, Room


def log_attendance(
    room: Room,
    count: Union[int, str, None],
    logged_by: str,
    now: datetime,
) -> TransitionResult:
    """Hängt eine Teilnehmerzahl (ganzzahlig, ≥ 0) an die Anwesenheitsliste an."""
    try:
        value = int(str(count).strip())
    except (TypeError, ValueError) as e:
        raise InputValidationError(f"Ungültige Teilnehmerzahl: {count!r}") from e
    if value < 0:
        raise InputValidationError(f"Teilnehmerzahl muss ≥ 0 sein, nicht {value}.")

    record = AttendanceRecord(timestamp=now, count=value, logged_by=logged_by)
    return TransitionResult(
        commands=[AppendAttendanceRecord(room_id=room.id, record=record)],
        audit_records=[AuditRecord(
            kind=AuditKind.ATTENDANCE,
            room_name=room.name,
            message=f"Logged attendance: {value} students.",
            details=AttendanceDetails(count=value),
            timestamp=now,
            user=logged_by,
        )],
    )
