"""
Token-Prüfung gegen Keycloak (Realm Public Key, lokal verifiziert)
"""
import logging
from functools import lru_cache
from typing import Any, Dict
from fastapi import HTTPException, status
from keycloak import KeycloakOpenID
from jose import JWTError, jwt

from auftrag_core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_keycloak_client() -> KeycloakOpenID:
    settings = get_settings()
    return KeycloakOpenID(
        server_url=settings.keycloak_url,
        client_id=settings.keycloak_client_id,
        realm_name=settings.keycloak_realm,
        verify=True,
    )


@lru_cache
def get_public_key() -> str:
    """
    Public Key des Realms im PEM-Format.
    Wird gecached, ein Schlüsselwechsel erfordert einen Neustart.
    """
    key = get_keycloak_client().public_key()
    return "-----BEGIN PUBLIC KEY-----\n" + key + "\n-----END PUBLIC KEY-----"


def verify_token(token: str) -> Dict[str, Any]:
    """
    Verifiziert das JWT lokal mit dem Public Key des Realms.

    Returns:
        Die Claims des Tokens

    Raises:
        HTTPException 401 bei ungültigem oder abgelaufenem Token
    """
    settings = get_settings()
    options = {
        "verify_signature": True,
        "verify_aud": True,
        "verify_exp": True,
    }
    try:
        return jwt.decode(
            token,
            get_public_key(),
            algorithms=["RS256"],
            audience=settings.keycloak_client_id,
            options=options,
        )
    except JWTError as e:
        logger.warning(f"Token-Prüfung fehlgeschlagen: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Ungültige Anmeldedaten",
            headers={"WWW-Authenticate": "Bearer"},
        )


def realm_roles(payload: Dict[str, Any]) -> list[str]:
    """Realm-Rollen aus realm_access.roles"""
    return list(payload.get("realm_access", {}).get("roles", []))
