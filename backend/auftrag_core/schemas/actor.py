"""
Akteur: wer eine Operation ausführt (aus dem Session-Token abgeleitet)
"""
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from auftrag_core.models.enums import Role


class Actor(BaseModel):
    """
    Identität und Rollen des aufrufenden Mitarbeiters oder Kunden.

    Wird explizit an jede Engine-Operation übergeben.
    """
    id: str = Field(..., min_length=1, description="Benutzer-ID (Keycloak sub)")
    roles: list[Role] = Field(default_factory=list, description="Rollen")
    # Für Kunden-Logins: der Kunde, auf den Lesezugriffe beschränkt sind
    customer_id: Optional[UUID] = None
    name: Optional[str] = None

    @field_validator("roles", mode="before")
    @classmethod
    def drop_unknown_roles(cls, v):
        """Fremde Realm-Rollen (offline_access, ...) werden ignoriert"""
        if v is None:
            return []
        roles = []
        for raw in v:
            try:
                role = Role(raw)
            except ValueError:
                continue
            if role not in roles:
                roles.append(role)
        return roles

    def has_role(self, *roles: Role) -> bool:
        return any(r in self.roles for r in roles)

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles
