"""Protokoll (dauerhaft, im Bestand) und Anfrage-Liste (prozesslokal)."""

import logging
from datetime import datetime
from typing import Optional

from models.commands import AppendAuditRecord
from models.records import AuditDetails, AuditKind, AuditRecord, NoDetails, RequestEntry
from store.memory import RoomStore, newest_first

logger = logging.getLogger(__name__)


class AuditLog:
    """Nur-anhängendes Protokoll zustandsändernder Aktionen.

    Gespeichert wird unbegrenzt im Bestand; ``recent`` liefert die neuesten
    Einträge zuerst und ist auf die Anzeige-Grenze beschränkt.
    """

    def __init__(self, store: RoomStore, limit: int = 100) -> None:
        self.store = store
        self.limit = limit

    def append(
        self,
        kind: AuditKind,
        room_name: str,
        message: str,
        now: datetime,
        details: Optional[AuditDetails] = None,
        user: str = "",
    ) -> AuditRecord:
        """Prüft und speichert einen neuen Eintrag. Ungültige Kombinationen → ValueError."""
        record = AuditRecord(
            kind=kind,
            room_name=room_name,
            message=message,
            details=details if details is not None else NoDetails(),
            timestamp=now,
            user=user,
        )
        self.append_record(record)
        return record

    def append_record(self, record: AuditRecord) -> None:
        self.store.apply(AppendAuditRecord(record=record))
        logger.debug(f"Protokoll: [{record.kind.value}] {record.room_name}: {record.message}")

    def recent(self, limit: Optional[int] = None) -> list[AuditRecord]:
        return self.store.recent_audit(limit if limit is not None else self.limit)


class RequestLedger:
    """Prozesslokale Liste von Anfragen und Benachrichtigungen.

    Behält alle Einträge; angezeigt werden nur die neuesten (Standard: 5).
    Dauerhaft ist nur das Duplikat im Protokoll.
    """

    def __init__(self, limit: int = 5) -> None:
        self.limit = limit
        self._entries: list[RequestEntry] = []

    def append(self, entry: RequestEntry) -> None:
        self._entries.append(entry)

    def recent(self, limit: Optional[int] = None) -> list[RequestEntry]:
        limit = limit if limit is not None else self.limit
        return newest_first(self._entries, key=lambda e: e.time)[:limit]

    def all(self) -> list[RequestEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
