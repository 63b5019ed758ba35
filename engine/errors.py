"""Fehlerarten der Hörsaal-Engine.

Keiner dieser Fehler ist für den Prozess fatal. Eingabe- und Übergangsfehler
gehen an den Aufrufer zurück, ohne den Zustand zu verändern; Schreibfehler
werden vom Aufrufer protokolliert.
"""


class HallError(Exception):
    """Basisklasse aller Engine-Fehler."""


class InputValidationError(HallError, ValueError):
    """Ungültige Eingabe (leerer Pflichttext, Dauer ≤ 0, unlesbare Uhrzeit, ...)."""


class IllegalTransition(HallError):
    """Operation außerhalb ihrer Vorbedingung aufgerufen. Kein Befehl wurde erzeugt."""

    def __init__(self, operation: str, room_id: str, reason: str) -> None:
        self.operation = operation
        self.room_id = room_id
        self.reason = reason
        super().__init__(f"{operation} in {room_id} nicht möglich: {reason}")


class UnknownRoomError(HallError, KeyError):
    """Hörsaal-ID existiert im Bestand nicht."""

    def __str__(self) -> str:
        return f"Unbekannter Hörsaal: {self.args[0]}"


class StoreWriteError(HallError):
    """Schreibvorgang in den gemeinsamen Bestand fehlgeschlagen."""
