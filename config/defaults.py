from config.schema import (
    AppConfig,
    DisplayConfig,
    NotificationConfig,
    SeedConfig,
)


# Wochentagsnamen, wie sie in Stundenplan-Einträgen gespeichert werden.
# Reihenfolge entspricht datetime.weekday() (0=Montag).
DAYS_OF_WEEK = [
    "Monday", "Tuesday", "Wednesday", "Thursday",
    "Friday", "Saturday", "Sunday",
]

# Kennung, unter der automatische Aktionen (Seed, Tageswechsel) laufen
SYSTEM_USER = "System"
SYSTEM_EMPLOYEE_ID = "AUTO"

# Standard-Startzeit für neue Stundenplan-Einträge
DEFAULT_SCHEDULE_START = "08:00"

# Obergrenze für die Dauer einer Vorlesung (Stunden)
MAX_LECTURE_HOURS = 24


def default_seed() -> SeedConfig:
    """Standard-Seed: 16 Hörsäle mit je 100 Stühlen und 2–3 Klimageräten."""
    return SeedConfig(
        hall_count=16,
        id_prefix="LH",
        name_prefix="Hall",
        chairs_available=100,
        ac_units_min=2,
        ac_units_max=3,
        ac_failure_rate=0.15,
    )


def default_display() -> DisplayConfig:
    """Anzeige: 100 Protokoll-Einträge, je 5 Ankündigungen und Anfragen."""
    return DisplayConfig(audit_limit=100, announcement_limit=5, request_limit=5)


def default_notifications() -> NotificationConfig:
    return NotificationConfig()


def default_app_config() -> AppConfig:
    """Vollständige Standard-Konfiguration."""
    return AppConfig(
        campus_name="Universität",
        timezone="Europe/Berlin",
        state_file="output/halls.json",
        log_level="INFO",
        user="operator",
        seed=default_seed(),
        display=default_display(),
        notifications=default_notifications(),
    )
