"""Gemeinsamer Hörsaal-Bestand mit Push-Abonnements.

``RoomStore`` hält alle Hörsaal-Snapshots, das Protokoll und die
Ankündigungen im Speicher. Jeder Befehl ist ein atomarer Schreibvorgang;
konkurrierende Befehle auf dieselbe Feldgruppe gewinnt der spätere. Es gibt
keine Sperren und keine Versionsnummern.

``JsonRoomStore`` schreibt nach jedem Befehl den kompletten Zustand in eine
JSON-Datei (unter Dateisperre, auf dem frisch gelesenen Stand). Schlägt das
fehl, bleibt der vorherige Zustand erhalten und ``StoreWriteError`` geht an
den Aufrufer.
"""

import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from filelock import FileLock, Timeout
from pydantic import BaseModel

from engine.errors import StoreWriteError, UnknownRoomError
from models.commands import AppendAnnouncement, AppendAuditRecord, Command, apply_command
from models.records import Announcement, AuditRecord
from models.room import Room

logger = logging.getLogger(__name__)

RoomsCallback = Callable[[dict[str, Room]], None]
AuditCallback = Callable[[list[AuditRecord]], None]
AnnouncementCallback = Callable[[list[Announcement]], None]


def newest_first(items: Iterable, key) -> list:
    # Bei gleichem Zeitstempel steht der später eingetroffene Eintrag vorne
    return sorted(reversed(list(items)), key=key, reverse=True)


class RoomStore:
    """In-Memory-Bestand mit Abonnements für Hörsäle, Protokoll und Ankündigungen."""

    def __init__(self, audit_limit: int = 100, announcement_limit: int = 5) -> None:
        self.audit_limit = audit_limit
        self.announcement_limit = announcement_limit
        self._rooms: dict[str, Room] = {}
        self._audit: list[AuditRecord] = []
        self._announcements: list[Announcement] = []

        self._room_subscribers: list[RoomsCallback] = []
        self._audit_subscribers: list[tuple[AuditCallback, int]] = []
        self._announcement_subscribers: list[tuple[AnnouncementCallback, int]] = []
        self._notifying = False
        self._renotify = False

    # ─── Lesen ───

    def is_empty(self) -> bool:
        return not self._rooms

    def rooms(self) -> dict[str, Room]:
        """Kopie der aktuellen Snapshots, nach ID."""
        return dict(self._rooms)

    def get(self, room_id: str) -> Room:
        try:
            return self._rooms[room_id]
        except KeyError:
            raise UnknownRoomError(room_id) from None

    def recent_audit(self, limit: Optional[int] = None) -> list[AuditRecord]:
        """Protokoll, neueste zuerst, begrenzt auf ``limit`` (Standard: audit_limit)."""
        records = newest_first(self._audit, key=lambda r: r.timestamp)
        return records[: limit if limit is not None else self.audit_limit]

    def all_audit(self) -> list[AuditRecord]:
        return list(self._audit)

    def recent_announcements(self, limit: Optional[int] = None) -> list[Announcement]:
        items = newest_first(self._announcements, key=lambda a: a.timestamp)
        return items[: limit if limit is not None else self.announcement_limit]

    # ─── Schreiben ───

    def put_room(self, room: Room) -> None:
        """Legt einen Hörsaal an (nur beim Seed)."""
        with self._transaction():
            self._write(lambda: self._rooms.__setitem__(room.id, room))
        self._notify_rooms()

    def apply(self, command: Command) -> None:
        """Wendet genau einen Befehl atomar an und benachrichtigt die Abonnenten.

        Der Befehl wirkt auf den neuesten Stand des Hörsaals; Abonnenten
        werden erst nach Abschluss des Schreibvorgangs benachrichtigt.
        """
        with self._transaction():
            if isinstance(command, AppendAuditRecord):
                self._write(lambda: self._audit.append(command.record))
                notify = self._notify_audit
            elif isinstance(command, AppendAnnouncement):
                self._write(lambda: self._announcements.append(command.announcement))
                notify = self._notify_announcements
            else:
                updated = apply_command(self.get(command.room_id), command)
                self._write(lambda: self._rooms.__setitem__(updated.id, updated))
                notify = self._notify_rooms
        notify()

    def apply_all(self, commands: Iterable[Command]) -> None:
        """Jeder Befehl ist ein eigener Schreibvorgang (keine Transaktion)."""
        for command in commands:
            self.apply(command)

    def _write(self, change: Callable[[], None]) -> None:
        backup = (dict(self._rooms), list(self._audit), list(self._announcements))
        change()
        try:
            self._persist()
        except StoreWriteError:
            self._rooms, self._audit, self._announcements = backup
            raise

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Klammer um Lesen-Ändern-Schreiben eines Befehls; im Speicher nichts zu tun."""
        yield

    def _persist(self) -> None:
        """Hook für dauerhafte Speicherung; im Speicher nichts zu tun."""

    # ─── Abonnements ───

    def subscribe_rooms(self, callback: RoomsCallback) -> Callable[[], None]:
        """Ruft ``callback`` sofort und nach jeder Änderung mit allen Snapshots auf."""
        self._room_subscribers.append(callback)
        callback(self.rooms())
        return lambda: self._room_subscribers.remove(callback)

    def subscribe_audit(self, callback: AuditCallback,
                        limit: Optional[int] = None) -> Callable[[], None]:
        entry = (callback, limit if limit is not None else self.audit_limit)
        self._audit_subscribers.append(entry)
        callback(self.recent_audit(entry[1]))
        return lambda: self._audit_subscribers.remove(entry)

    def subscribe_announcements(self, callback: AnnouncementCallback,
                                limit: Optional[int] = None) -> Callable[[], None]:
        entry = (callback, limit if limit is not None else self.announcement_limit)
        self._announcement_subscribers.append(entry)
        callback(self.recent_announcements(entry[1]))
        return lambda: self._announcement_subscribers.remove(entry)

    def _notify_rooms(self) -> None:
        # Schreibt ein Abonnent während der Benachrichtigung, wird danach
        # genau eine weitere Runde mit dem neuesten Stand ausgeliefert.
        if self._notifying:
            self._renotify = True
            return
        self._notifying = True
        try:
            while True:
                self._renotify = False
                snapshot = self.rooms()
                for callback in list(self._room_subscribers):
                    callback(snapshot)
                if not self._renotify:
                    break
        finally:
            self._notifying = False

    def _notify_audit(self) -> None:
        for callback, limit in list(self._audit_subscribers):
            callback(self.recent_audit(limit))

    def _notify_announcements(self) -> None:
        for callback, limit in list(self._announcement_subscribers):
            callback(self.recent_announcements(limit))


# ─── JSON-Persistenz ──────────────────────────────────────────────────────────

class StoreState(BaseModel):
    """Dateiformat des JsonRoomStore."""

    rooms: list[Room] = []
    audit: list[AuditRecord] = []
    announcements: list[Announcement] = []
    modified_at: Optional[datetime] = None
    data_version: str = "1.0"


class JsonRoomStore(RoomStore):
    """RoomStore, der jeden Schreibvorgang in eine JSON-Datei übernimmt.

    Mehrere Prozesse dürfen dieselbe Datei benutzen. Jeder Befehl liest unter
    einer Dateisperre zuerst den aktuellen Dateistand, wendet sich darauf an
    und schreibt zurück. Änderungen an verschiedenen Hörsälen oder
    Feldgruppen gehen so nicht verloren.
    """

    LOCK_TIMEOUT = 10.0   # Sekunden

    def __init__(self, path: Path, audit_limit: int = 100,
                 announcement_limit: int = 5) -> None:
        super().__init__(audit_limit=audit_limit, announcement_limit=announcement_limit)
        self.path = Path(path)
        self._lock = FileLock(str(self.path) + ".lock")
        if self.path.exists():
            self._load()

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._lock.acquire(timeout=self.LOCK_TIMEOUT)
        except (Timeout, OSError) as e:
            raise StoreWriteError(f"Bestand {self.path} nicht sperrbar: {e}") from e
        try:
            if self.path.exists():
                self._load()
            yield
        finally:
            self._lock.release()

    def _load(self) -> None:
        with open(self.path, "r", encoding="utf-8") as f:
            state = StoreState.model_validate_json(f.read())
        self._rooms = {r.id: r for r in state.rooms}
        self._audit = list(state.audit)
        self._announcements = list(state.announcements)
        logger.debug(f"{len(self._rooms)} Hörsäle aus {self.path} geladen")

    def _persist(self) -> None:
        state = StoreState(
            rooms=list(self._rooms.values()),
            audit=self._audit,
            announcements=self._announcements,
            modified_at=datetime.now(timezone.utc),
        )
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(state.model_dump_json(indent=2))
            os.replace(tmp, self.path)
        except OSError as e:
            raise StoreWriteError(f"Bestand konnte nicht gespeichert werden: {self.path}: {e}") from e
