"""Welche Stundenplan-Einträge gelten heute?

Der Matcher schlägt nur eine Aktion vor (z.B. "Vorlesung findet statt"); er
verändert nie selbst den Zustand.
"""

from datetime import datetime, tzinfo
from typing import Optional

from config.defaults import DAYS_OF_WEEK
from models.room import Room, ScheduleEntry


def parse_clock_time(value: Optional[str]) -> Optional[int]:
    """Wandelt "HH:MM" in Minuten seit Mitternacht um. Unlesbar → None."""
    if not value:
        return None
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        return None
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None
    return hours * 60 + minutes


def local_time(moment: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Zeitpunkt in der Deployment-Zeitzone. Naive Zeitpunkte gelten bereits als lokal."""
    if tz is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(tz)


def weekday_name(moment: datetime, tz: Optional[tzinfo] = None) -> str:
    """Wochentagsname ("Monday", ...) des Zeitpunkts in der Deployment-Zeitzone."""
    return DAYS_OF_WEEK[local_time(moment, tz).weekday()]


def todays_entries(
    room: Room,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> list[ScheduleEntry]:
    """Alle heute geltenden Einträge, aufsteigend nach Startzeit.

    Unlesbare Startzeiten kommen ans Ende; bei Gleichstand bleibt die
    gespeicherte Reihenfolge erhalten.
    """
    today = weekday_name(now, tz)
    matching = [e for e in room.schedule if today in e.days]

    def sort_key(entry: ScheduleEntry) -> tuple[bool, int]:
        minutes = parse_clock_time(entry.lecture.start_time)
        return (minutes is None, minutes if minutes is not None else 0)

    return sorted(matching, key=sort_key)


def next_entry_today(
    room: Room,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> Optional[ScheduleEntry]:
    """Frühester heute geltender Eintrag oder None.

    Es wird immer nur der früheste Eintrag geliefert, auch wenn er bereits
    erledigt ist; weitere Einträge desselben Tages werden nicht nachgerückt.
    """
    entries = todays_entries(room, now, tz)
    return entries[0] if entries else None


def matches_today(
    room: Room,
    entry: ScheduleEntry,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> bool:
    """True, wenn ``entry`` im Hörsaal gespeichert ist und heute gilt."""
    return any(e.schedule_id == entry.schedule_id
               for e in todays_entries(room, now, tz))
