"""Erstbefüllung des Hörsaal-Bestands.

Läuft nur, wenn der Bestand leer ist. Alle Hörsäle starten frei und sauber
(gereinigt von "System" zum Seed-Zeitpunkt), dazu kommt eine
Willkommens-Ankündigung. Die Klimageräte werden mit einem festen Seed
zufällig erzeugt, damit Testläufe reproduzierbar bleiben.
"""

import logging
import random
import uuid
from datetime import datetime

from config.defaults import SYSTEM_EMPLOYEE_ID, SYSTEM_USER
from config.schema import AppConfig, SeedConfig
from models.commands import AppendAnnouncement
from models.records import Announcement
from models.room import AcUnit, CleaningStatus, Facilities, Room, RoomStatus
from store.memory import RoomStore

logger = logging.getLogger(__name__)


class SeedGenerator:
    """Erzeugt die Standard-Hörsäle laut SeedConfig."""

    def __init__(self, config: SeedConfig, seed: int = 42) -> None:
        self.config = config
        self.rng = random.Random(seed)

    def _ac_id(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128), version=4))

    def _facilities(self) -> Facilities:
        cfg = self.config
        count = self.rng.randint(cfg.ac_units_min, cfg.ac_units_max)
        units = tuple(
            AcUnit(id=self._ac_id(), working=self.rng.random() >= cfg.ac_failure_rate)
            for _ in range(count)
        )
        return Facilities(
            chairs_available=cfg.chairs_available,
            smart_board=True,
            white_board=True,
            pens_available=True,
            ac_machines=units,
        )

    def generate_rooms(self, now: datetime) -> list[Room]:
        cfg = self.config
        width = max(2, len(str(cfg.hall_count)))
        return [
            Room(
                id=f"{cfg.id_prefix}-{i:0{width}d}",
                name=f"{cfg.name_prefix} {i}",
                status=RoomStatus.FREE,
                facilities=self._facilities(),
                current_lecture=None,
                cleaning_status=CleaningStatus(
                    is_clean=True,
                    cleaned_by=SYSTEM_USER,
                    cleaned_at=now,
                    employee_id=SYSTEM_EMPLOYEE_ID,
                ),
            )
            for i in range(1, cfg.hall_count + 1)
        ]

    def welcome_announcement(self, now: datetime) -> Announcement:
        return Announcement(
            text=self.config.welcome_text,
            timestamp=now,
            author=self.config.welcome_author,
        )


def seed_if_empty(store: RoomStore, config: AppConfig, now: datetime,
                  seed: int = 42) -> bool:
    """Legt die Standard-Hörsäle an, falls der Bestand leer ist.

    Returns:
        True wenn angelegt wurde, False wenn bereits Hörsäle existierten.
    """
    if not store.is_empty():
        logger.debug("Bestand nicht leer – kein Seed")
        return False

    gen = SeedGenerator(config.seed, seed=seed)
    rooms = gen.generate_rooms(now)
    logger.info(f"Erstelle {len(rooms)} Hörsäle ...")
    for room in rooms:
        store.put_room(room)
    store.apply(AppendAnnouncement(announcement=gen.welcome_announcement(now)))
    return True
