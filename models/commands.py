"""Befehle an den gemeinsamen Hörsaal-Bestand.

Jeder Befehl ist ein atomares Teil-Update genau einer Feldgruppe eines
Hörsaals (Belegung, Reinigung, Ausstattung, Stundenplan, Anwesenheit) oder ein
Anhängen an Protokoll/Ankündigungen. Konkurrierende Befehle auf dieselbe
Feldgruppe gewinnt der zuletzt eintreffende.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.records import Announcement, AuditRecord
from models.room import (
    AttendanceRecord,
    CleaningStatus,
    CurrentLecture,
    Facilities,
    Room,
    RoomStatus,
    ScheduleEntry,
)


class _RoomCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    room_id: str


class SetCleaningStatus(_RoomCommand):
    """Setzt den Reinigungszustand; mit ``vacate`` wird der Saal im selben Schreibvorgang frei."""

    kind: Literal["set_cleaning_status"] = "set_cleaning_status"
    cleaning_status: CleaningStatus
    vacate: bool = False


class SetCurrentLecture(_RoomCommand):
    kind: Literal["set_current_lecture"] = "set_current_lecture"
    lecture: CurrentLecture


class ClearCurrentLecture(_RoomCommand):
    kind: Literal["clear_current_lecture"] = "clear_current_lecture"


class SetRoomStatus(_RoomCommand):
    """Reiner Status-Marker ohne Vorlesung (frei / in Reinigung)."""

    kind: Literal["set_room_status"] = "set_room_status"
    status: RoomStatus

    @field_validator("status")
    @classmethod
    def _no_occupied(cls, v: RoomStatus) -> RoomStatus:
        if v == RoomStatus.OCCUPIED:
            raise ValueError("Belegung nur über SetCurrentLecture.")
        return v


class SetFacilities(_RoomCommand):
    kind: Literal["set_facilities"] = "set_facilities"
    facilities: Facilities


class AddScheduleEntry(_RoomCommand):
    kind: Literal["add_schedule_entry"] = "add_schedule_entry"
    entry: ScheduleEntry


class UpdateScheduleEntry(_RoomCommand):
    kind: Literal["update_schedule_entry"] = "update_schedule_entry"
    entry: ScheduleEntry


class DeleteScheduleEntry(_RoomCommand):
    kind: Literal["delete_schedule_entry"] = "delete_schedule_entry"
    schedule_id: str


class AppendAttendanceRecord(_RoomCommand):
    kind: Literal["append_attendance_record"] = "append_attendance_record"
    record: AttendanceRecord


class AppendAuditRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["append_audit_record"] = "append_audit_record"
    record: AuditRecord


class AppendAnnouncement(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["append_announcement"] = "append_announcement"
    announcement: Announcement


RoomCommand = Annotated[
    Union[
        SetCleaningStatus,
        SetCurrentLecture,
        ClearCurrentLecture,
        SetRoomStatus,
        SetFacilities,
        AddScheduleEntry,
        UpdateScheduleEntry,
        DeleteScheduleEntry,
        AppendAttendanceRecord,
    ],
    Field(discriminator="kind"),
]

Command = Annotated[
    Union[
        SetCleaningStatus,
        SetCurrentLecture,
        ClearCurrentLecture,
        SetRoomStatus,
        SetFacilities,
        AddScheduleEntry,
        UpdateScheduleEntry,
        DeleteScheduleEntry,
        AppendAttendanceRecord,
        AppendAuditRecord,
        AppendAnnouncement,
    ],
    Field(discriminator="kind"),
]


def _rebuild(room: Room, **update) -> Room:
    # Neu konstruieren statt model_copy, damit die Invarianten geprüft werden
    return Room(**{**dict(room), **update})


def apply_command(room: Room, command: _RoomCommand) -> Room:
    """Wendet einen Hörsaal-Befehl auf einen Snapshot an und gibt den neuen Snapshot zurück."""
    if command.room_id != room.id:
        raise ValueError(f"Befehl für {command.room_id} auf Hörsaal {room.id} angewendet")

    if isinstance(command, SetCleaningStatus):
        if command.vacate:
            return _rebuild(room, cleaning_status=command.cleaning_status,
                            status=RoomStatus.FREE, current_lecture=None)
        return _rebuild(room, cleaning_status=command.cleaning_status)

    if isinstance(command, SetCurrentLecture):
        return _rebuild(room, status=RoomStatus.OCCUPIED, current_lecture=command.lecture)

    if isinstance(command, ClearCurrentLecture):
        return _rebuild(room, status=RoomStatus.FREE, current_lecture=None)

    if isinstance(command, SetRoomStatus):
        return _rebuild(room, status=command.status, current_lecture=None)

    if isinstance(command, SetFacilities):
        return _rebuild(room, facilities=command.facilities)

    if isinstance(command, AddScheduleEntry):
        # Gleiche schedule_id erneut hinzufügen ersetzt den Eintrag
        if room.find_schedule_entry(command.entry.schedule_id) is not None:
            return _rebuild(room, schedule=tuple(
                command.entry if e.schedule_id == command.entry.schedule_id else e
                for e in room.schedule
            ))
        return _rebuild(room, schedule=room.schedule + (command.entry,))

    if isinstance(command, UpdateScheduleEntry):
        return _rebuild(room, schedule=tuple(
            command.entry if e.schedule_id == command.entry.schedule_id else e
            for e in room.schedule
        ))

    if isinstance(command, DeleteScheduleEntry):
        return _rebuild(room, schedule=tuple(
            e for e in room.schedule if e.schedule_id != command.schedule_id
        ))

    if isinstance(command, AppendAttendanceRecord):
        return _rebuild(room, attendance_records=room.attendance_records + (command.record,))

    raise TypeError(f"Unbekannter Befehl: {type(command).__name__}")
