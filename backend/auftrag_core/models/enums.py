from enum import Enum
from typing import Optional


# Alternative Schreibweisen aus Altdaten und Query-Parametern
_ALIASES = {
    "geprueft": "geprüft",
    "stueck": "stück",
    "stk": "stück",
    "st": "stück",
}


def _normalize(value: str) -> str:
    """Vereinheitlicht Schreibweisen: 'in_bearbeitung' -> 'in bearbeitung'"""
    normalized = value.strip().replace("_", " ").replace("-", " ").lower()
    return _ALIASES.get(normalized, normalized)


class _LenientEnum(str, Enum):
    """
    Geschlossene Statuswerte, die an der Systemgrenze tolerant geparst werden
    (Groß-/Kleinschreibung, Unterstrich statt Leerzeichen, Umlaut-Ersatz).
    """

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        wanted = _normalize(value)
        for member in cls:
            if wanted in (_normalize(member.value), _normalize(member.name)):
                return member
        return None


class OrderStatus(_LenientEnum):
    """Gesamtstatus eines Auftrags"""
    OFFEN = "offen"
    IN_BEARBEITUNG = "in Bearbeitung"
    ABGESCHLOSSEN = "abgeschlossen"
    STORNIERT = "storniert"


class KommissionierStatus(_LenientEnum):
    """Status der Kommissionierung (offen -> gestartet -> fertig)"""
    OFFEN = "offen"
    GESTARTET = "gestartet"
    FERTIG = "fertig"


class KontrollStatus(_LenientEnum):
    """Status der Kontrolle (offen -> in Kontrolle -> geprüft)"""
    OFFEN = "offen"
    IN_KONTROLLE = "in Kontrolle"
    GEPRUEFT = "geprüft"


class Unit(_LenientEnum):
    """Bestelleinheit einer Position"""
    KG = "kg"
    STUECK = "stück"
    KISTE = "kiste"
    KARTON = "karton"

    @classmethod
    def parse(cls, value) -> Optional["Unit"]:
        """Liefert die Einheit oder None, wenn der Wert unbekannt ist"""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class Role(_LenientEnum):
    """Mitarbeiter- und Kundenrollen, die der Core auswertet"""
    ADMIN = "admin"
    VERKAUF = "verkauf"
    KOMMISSIONIERUNG = "kommissionierung"
    KONTROLLE = "kontrolle"
    ZERLEGER = "zerleger"
    KUNDE = "kunde"


class BulkMode(str, Enum):
    """Art der Massenänderung von Kundenaufpreisen"""
    SET = "set"
    ADD = "add"
    SUB = "sub"
