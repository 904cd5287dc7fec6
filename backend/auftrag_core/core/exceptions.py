"""
Fehlerklassen des Auftrag-Cores.

Services werfen diese Fehler, die API-Schicht übersetzt sie über einen
gemeinsamen Exception Handler in HTTP-Antworten (siehe ``main.py``).
"""
from fastapi import status


class AuftragError(Exception):
    """Basisklasse aller fachlichen Fehler"""

    kind: str = "error"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind}


class ValidationError(AuftragError):
    """Pflichtfeld fehlt oder Auswahlkriterien sind leer"""

    kind = "validation"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class PermissionDenied(AuftragError):
    """Rolle oder Zuständigkeit passt nicht zur Aktion"""

    kind = "permission"
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(AuftragError):
    """Bereits übernommen, veraltete Version oder unzulässiger Statuswechsel"""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(AuftragError):
    """Auftrag, Position, Kunde oder Artikel existiert nicht"""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
