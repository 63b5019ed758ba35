"""Gemeinsamer Hörsaal-Bestand, Protokoll und Anfrage-Liste."""

from .memory import JsonRoomStore, RoomStore, StoreState
from .ledger import AuditLog, RequestLedger

__all__ = [
    "JsonRoomStore",
    "RoomStore",
    "StoreState",
    "AuditLog",
    "RequestLedger",
]
