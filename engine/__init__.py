"""Hörsaal-Engine: Zustandsautomat, Stundenplan-Abgleich und Reinigungs-Wechsel."""

from .errors import (
    HallError,
    IllegalTransition,
    InputValidationError,
    StoreWriteError,
    UnknownRoomError,
)
from .lifecycle import LectureInput, LectureLifecycle, TransitionResult
from .rollover import reconcile, reconcile_all
from .schedule_matcher import next_entry_today, todays_entries
from .facility_editor import FacilityEditor
from .schedule_editor import ScheduleEditor, ScheduleInput

__all__ = [
    "HallError",
    "IllegalTransition",
    "InputValidationError",
    "StoreWriteError",
    "UnknownRoomError",
    "LectureInput",
    "LectureLifecycle",
    "TransitionResult",
    "reconcile",
    "reconcile_all",
    "next_entry_today",
    "todays_entries",
    "FacilityEditor",
    "ScheduleEditor",
    "ScheduleInput",
]
