"""
API Dependencies - Gemeinsame Abhängigkeiten für Endpoints
"""
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from auftrag_core.config import get_settings
from auftrag_core.core.exceptions import PermissionDenied
from auftrag_core.core.security import verify_token, realm_roles
from auftrag_core.database import get_db
from auftrag_core.schemas.actor import Actor

# Type Alias für DB Session Dependency
DBSession = Annotated[Session, Depends(get_db)]

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")  # URL nur als Hinweis für Swagger UI


async def get_current_actor(token: Annotated[str, Depends(oauth2_scheme)]) -> Actor:
    """
    Dependency für den angemeldeten Akteur.
    Verifiziert das JWT gegen Keycloak und liest Realm-Rollen und Kundenbindung.
    """
    payload = verify_token(token)
    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token ohne Benutzer-ID",
            headers={"WWW-Authenticate": "Bearer"},
        )

    customer_id: Optional[UUID] = None
    raw_customer = payload.get(get_settings().keycloak_customer_claim)
    if raw_customer:
        try:
            customer_id = UUID(str(raw_customer))
        except ValueError:
            customer_id = None

    return Actor(
        id=payload.get("sub"),
        name=payload.get("preferred_username"),
        roles=realm_roles(payload),
        customer_id=customer_id,
    )


CurrentActor = Annotated[Actor, Depends(get_current_actor)]


def ensure_actor_matches(actor_id: Optional[str], actor: Actor) -> None:
    """Eine actorId im Body muss zum angemeldeten Benutzer gehören"""
    if actor_id is not None and actor_id != actor.id:
        raise PermissionDenied("actorId passt nicht zum angemeldeten Benutzer")

