"""Lokaler Editor für die Ausstattung eines Hörsaals.

Alle Änderungen (Stühle, Tafeln, Stifte, Anzahl und Zustand der
Klimageräte) sammeln sich lokal und werden mit ``commit`` als genau ein
``SetFacilities``-Befehl geschrieben. ``discard`` verwirft alles; ein
halb geschriebener Zustand ist nicht möglich.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional

from engine.errors import InputValidationError
from engine.lifecycle import TransitionResult
from models.commands import SetFacilities
from models.records import AuditKind, AuditRecord, FacilityDetails
from models.room import AcUnit, Facilities, Room

logger = logging.getLogger(__name__)


def _new_ac_id() -> str:
    return str(uuid.uuid4())


class FacilityEditor:
    """Sammelt Ausstattungs-Änderungen für einen Hörsaal bis zum Commit."""

    def __init__(
        self,
        room: Room,
        id_factory: Callable[[], str] = _new_ac_id,
        user: str = "",
    ) -> None:
        self.room = room
        self.user = user
        self._id_factory = id_factory
        self._reset()

    def _reset(self) -> None:
        f = self.room.facilities
        self.chairs_available = f.chairs_available
        self.smart_board = f.smart_board
        self.white_board = f.white_board
        self.pens_available = f.pens_available
        self._ac_units: list[AcUnit] = list(f.ac_machines)

    # ─── Lokale Änderungen ───

    def set_chairs(self, count: int) -> None:
        if count < 0:
            raise InputValidationError(f"Stuhlanzahl muss ≥ 0 sein, nicht {count}.")
        self.chairs_available = count

    def set_ac_count(self, target: int) -> None:
        """Wachsen hängt neue (funktionierende) Geräte an, Schrumpfen kürzt am Ende."""
        if target < 0:
            raise InputValidationError(f"Anzahl Klimageräte muss ≥ 0 sein, nicht {target}.")
        current = len(self._ac_units)
        if target > current:
            existing = {ac.id for ac in self._ac_units}
            for _ in range(target - current):
                new_id = self._id_factory()
                while new_id in existing:
                    new_id = self._id_factory()
                existing.add(new_id)
                self._ac_units.append(AcUnit(id=new_id, working=True))
        elif target < current:
            del self._ac_units[target:]

    def toggle_ac(self, ac_id: str) -> bool:
        """Schaltet den Zustand eines Geräts um und gibt den neuen Zustand zurück."""
        for i, ac in enumerate(self._ac_units):
            if ac.id == ac_id:
                self._ac_units[i] = AcUnit(id=ac.id, working=not ac.working)
                return not ac.working
        raise InputValidationError(f"Klimagerät {ac_id} nicht in {self.room.name}.")

    @property
    def ac_units(self) -> tuple[AcUnit, ...]:
        return tuple(self._ac_units)

    def preview(self) -> Facilities:
        """Die Ausstattung, wie sie ein Commit schreiben würde."""
        return Facilities(
            chairs_available=self.chairs_available,
            smart_board=self.smart_board,
            white_board=self.white_board,
            pens_available=self.pens_available,
            ac_machines=tuple(self._ac_units),
        )

    @property
    def is_dirty(self) -> bool:
        return self.preview() != self.room.facilities

    # ─── Abschluss ───

    def commit(self, now: datetime) -> TransitionResult:
        """Genau ein atomares Update der gesamten Ausstattung."""
        facilities = self.preview()
        logger.info(
            f"{self.room.name}: Ausstattung aktualisiert "
            f"({facilities.chairs_available} Stühle, "
            f"{facilities.working_ac_count}/{len(facilities.ac_machines)} Klimageräte ok)"
        )
        record = AuditRecord(
            kind=AuditKind.FACILITIES_UPDATE,
            room_name=self.room.name,
            message="Facility details updated.",
            details=FacilityDetails(
                chairs_available=facilities.chairs_available,
                ac_units=len(facilities.ac_machines),
                ac_working=facilities.working_ac_count,
            ),
            timestamp=now,
            user=self.user,
        )
        return TransitionResult(
            commands=[SetFacilities(room_id=self.room.id, facilities=facilities)],
            audit_records=[record],
        )

    def discard(self, room: Optional[Room] = None) -> None:
        """Verwirft alle lokalen Änderungen (optional gegen einen neueren Snapshot)."""
        if room is not None:
            self.room = room
        self._reset()
