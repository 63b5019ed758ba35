from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator


# ─── SEED (Erstbefüllung des Hörsaal-Bestands) ───

class SeedConfig(BaseModel):
    """Parameter für die einmalige Erstbefüllung einer leeren Hörsaal-Sammlung."""
    # Anzahl anzulegender Hörsäle
    hall_count: int = Field(16, ge=1, le=999,
        description="Anzahl Hörsäle")
    # Präfix der Hörsaal-IDs ("LH" → "LH-01", "LH-02", ...)
    id_prefix: str = Field("LH",
        description="Präfix der Hörsaal-IDs")
    # Präfix der Anzeigenamen ("Hall" → "Hall 1", "Hall 2", ...)
    name_prefix: str = Field("Hall",
        description="Präfix der Hörsaal-Namen")
    # Stühle pro Hörsaal
    chairs_available: int = Field(100, ge=0,
        description="Stühle pro Hörsaal")
    # Minimale / maximale Anzahl Klimageräte pro Hörsaal
    ac_units_min: int = Field(2, ge=0,
        description="Minimale Anzahl Klimageräte")
    ac_units_max: int = Field(3, ge=0,
        description="Maximale Anzahl Klimageräte")
    # Wahrscheinlichkeit, dass ein Klimagerät beim Seed defekt ist
    ac_failure_rate: float = Field(0.15, ge=0.0, le=1.0,
        description="Anteil defekter Klimageräte beim Seed")
    # Willkommens-Ankündigung
    welcome_text: str = Field(
        "Welcome to the new University Hall Management System!",
        description="Text der Willkommens-Ankündigung")
    welcome_author: str = Field("Admin",
        description="Autor der Willkommens-Ankündigung")

    @model_validator(mode='after')
    def _check_ac_bounds(self):
        if self.ac_units_min > self.ac_units_max:
            raise ValueError(
                f"ac_units_min ({self.ac_units_min}) > ac_units_max ({self.ac_units_max})"
            )
        return self


# ─── ANZEIGE-GRENZEN ───

class DisplayConfig(BaseModel):
    """Wie viele Einträge die Abonnements/Übersichten höchstens liefern."""
    # Protokoll-Einträge (neueste zuerst)
    audit_limit: int = Field(100, ge=1,
        description="Max. angezeigte Protokoll-Einträge")
    # Ankündigungen (neueste zuerst)
    announcement_limit: int = Field(5, ge=1,
        description="Max. angezeigte Ankündigungen")
    # Anfragen / Benachrichtigungen (neueste zuerst)
    request_limit: int = Field(5, ge=1,
        description="Max. angezeigte Anfragen")


# ─── BENACHRICHTIGUNGEN ───

class NotificationConfig(BaseModel):
    """Empfänger für Anfragen und Ausfall-Benachrichtigungen.

    Es wird nichts versendet; die Empfänger landen nur im Anfrage-Eintrag.
    """
    skip_department: str = Field("Academic Affairs",
        description="Abteilung für ausgefallene Vorlesungen")
    skip_recipient: Optional[str] = Field("academic.head@example.com",
        description="Empfänger für ausgefallene Vorlesungen")
    special_request_department: str = Field("Administration",
        description="Abteilung für Sonderanfragen")
    special_request_recipient: Optional[str] = Field(
        "responsible.person@university.edu",
        description="Empfänger für Sonderanfragen (E-Mail)")
    general_request_department: str = Field("Administration",
        description="Abteilung für allgemeine Anfragen")


# ─── GESAMT-CONFIG ───

class AppConfig(BaseModel):
    """Gesamtkonfiguration der Hörsaalverwaltung."""
    # Name des Campus (nur Anzeige)
    campus_name: str = Field("Universität",
        description="Name des Campus")
    # IANA-Zeitzone, in der der Kalendertag für die Reinigung bestimmt wird
    timezone: str = Field("Europe/Berlin",
        description="Zeitzone für Tageswechsel und Wochentage")
    # Pfad der JSON-Datei mit dem gemeinsamen Zustand
    state_file: str = Field("output/halls.json",
        description="JSON-Datei mit Hörsaal-Zustand und Protokoll")
    # Log-Level für die Konsole
    log_level: str = Field("INFO",
        description="Log-Level (DEBUG, INFO, WARNING, ...)")
    # Kennung des Bedieners in Protokoll-Einträgen
    user: str = Field("operator",
        description="Bedienerkennung im Protokoll")
    seed: SeedConfig = Field(default_factory=SeedConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unbekannte Zeitzone: {v}") from e
        return v

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unbekanntes Log-Level: {v}")
        return level

    @property
    def tzinfo(self) -> ZoneInfo:
        """Zeitzone als tzinfo-Objekt."""
        return ZoneInfo(self.timezone)
