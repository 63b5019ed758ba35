"""Allgemeine Anfragen und Sonderanfragen zu einem Hörsaal.

Anfragen landen im prozesslokalen RequestLedger und zusätzlich im
dauerhaften Protokoll. Versendet wird nichts; der Empfänger wird nur
festgehalten.
"""

import logging
from datetime import datetime
from typing import Optional

from config.schema import NotificationConfig
from engine.lifecycle import TransitionResult, require_text
from models.records import AuditKind, AuditRecord, RequestDetails, RequestEntry
from models.room import Room

logger = logging.getLogger(__name__)


def send_request(
    room: Room,
    message: str,
    now: datetime,
    kind: AuditKind = AuditKind.GENERAL_REQUEST,
    department: str = "Administration",
    email_recipient: Optional[str] = None,
    user: str = "",
) -> TransitionResult:
    """Erzeugt Anfrage-Eintrag und passenden Protokoll-Eintrag."""
    if kind not in (AuditKind.GENERAL_REQUEST, AuditKind.SPECIAL_REQUEST):
        raise ValueError(f"Keine Anfrage-Art: {kind}")
    text = require_text(message, "Anfragetext")

    entry = RequestEntry(
        hall=room.name,
        type=kind.value,
        message=text,
        time=now,
        department=department,
        email_recipient=email_recipient,
    )
    record = AuditRecord(
        kind=kind,
        room_name=room.name,
        message=text,
        details=RequestDetails(department=department, email_recipient=email_recipient),
        timestamp=now,
        user=user,
    )
    logger.info(
        f"Anfrage: {kind.value} - {text}"
        + (f" (E-Mail an: {email_recipient})" if email_recipient else "")
    )
    return TransitionResult(audit_records=[record], requests=[entry])


def send_special_request(
    room: Room,
    notes: str,
    now: datetime,
    notifications: NotificationConfig,
    user: str = "",
) -> TransitionResult:
    """Sonderanfrage an die zuständige Person (laut Konfiguration)."""
    return send_request(
        room, notes, now,
        kind=AuditKind.SPECIAL_REQUEST,
        department=notifications.special_request_department,
        email_recipient=notifications.special_request_recipient,
        user=user,
    )
