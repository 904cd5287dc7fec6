"""
Tests für die Ableitung des Akteurs aus dem Keycloak-Token
"""
import asyncio
import pytest
from uuid import uuid4
from fastapi import HTTPException

from auftrag_core.api import deps
from auftrag_core.core.exceptions import PermissionDenied
from auftrag_core.core.security import realm_roles
from auftrag_core.models import Role


def _actor_from(monkeypatch, payload):
    monkeypatch.setattr(deps, "verify_token", lambda token: payload)
    return asyncio.run(deps.get_current_actor("token"))


def test_realm_roles():
    assert realm_roles({"realm_access": {"roles": ["admin", "offline_access"]}}) == ["admin", "offline_access"]
    assert realm_roles({}) == []


def test_actor_from_token(monkeypatch):
    customer_id = uuid4()
    actor = _actor_from(monkeypatch, {
        "sub": "0d4c7a",
        "preferred_username": "kunde.huber",
        "realm_access": {"roles": ["kunde", "default-roles-grosshandel"]},
        "customer_id": str(customer_id),
    })
    assert actor.id == "0d4c7a"
    assert actor.name == "kunde.huber"
    assert actor.roles == [Role.KUNDE]
    assert actor.customer_id == customer_id


def test_invalid_customer_claim_is_ignored(monkeypatch):
    actor = _actor_from(monkeypatch, {"sub": "u1", "customer_id": "keine-uuid"})
    assert actor.customer_id is None
    assert actor.roles == []


def test_token_without_subject(monkeypatch):
    with pytest.raises(HTTPException) as exc:
        _actor_from(monkeypatch, {"realm_access": {"roles": ["admin"]}})
    assert exc.value.status_code == 401


def test_actor_id_in_body(actors):
    deps.ensure_actor_matches(None, actors.picker_a)
    deps.ensure_actor_matches("picker-a", actors.picker_a)
    with pytest.raises(PermissionDenied):
        deps.ensure_actor_matches("picker-b", actors.picker_a)
