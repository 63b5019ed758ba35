"""Täglicher Reinigungs-Wechsel ("rollover").

Ein Hörsaal, der an einem früheren Kalendertag gereinigt wurde, gilt ab dem
ersten Beobachten nach Mitternacht wieder als reinigungsbedürftig.

``reconcile`` hängt nur von (Snapshot, now) ab. Beliebig viele Beobachter
dürfen es gleichzeitig und wiederholt ausführen: ein bereits
reinigungsbedürftiger Hörsaal erzeugt keinen Befehl mehr. Schlägt das
Schreiben fehl, wird nichts wiederholt; die nächste Beobachtung findet
denselben Zustand und korrigiert ihn erneut.
"""

import logging
from datetime import date, datetime, tzinfo
from typing import Iterable, Mapping, Optional, Union

from engine.schedule_matcher import local_time
from models.commands import SetCleaningStatus
from models.room import CleaningStatus, Room

logger = logging.getLogger(__name__)


def calendar_date(moment: datetime, tz: Optional[tzinfo] = None) -> date:
    return local_time(moment, tz).date()


def is_stale(status: CleaningStatus, now: datetime, tz: Optional[tzinfo] = None) -> bool:
    """True, wenn der Hörsaal als sauber gilt, aber nicht heute gereinigt wurde."""
    if not status.is_clean or status.cleaned_at is None:
        return False
    return calendar_date(status.cleaned_at, tz) != calendar_date(now, tz)


def reconcile(
    room: Room,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> list[SetCleaningStatus]:
    """Liefert den Befehl, der einen veralteten Reinigungszustand zurücksetzt (oder [])."""
    if not is_stale(room.cleaning_status, now, tz):
        return []
    logger.info(
        f"{room.name}: zuletzt gereinigt am "
        f"{calendar_date(room.cleaning_status.cleaned_at, tz).isoformat()} "
        f"→ reinigungsbedürftig"
    )
    return [SetCleaningStatus(room_id=room.id, cleaning_status=CleaningStatus.dirty())]


def reconcile_all(
    rooms: Union[Mapping[str, Room], Iterable[Room]],
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> list[SetCleaningStatus]:
    """``reconcile`` für alle Hörsäle eines Snapshots."""
    if isinstance(rooms, Mapping):
        rooms = rooms.values()
    commands: list[SetCleaningStatus] = []
    for room in rooms:
        commands.extend(reconcile(room, now, tz))
    return commands
