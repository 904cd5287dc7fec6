"""
Auftrags-API - Erfassung, Kommissionierung, Kontrolle und Admin-Übersteuerung

Jeder schreibende Endpoint committet nach erfolgreicher Service-Operation.
Fachliche Fehler werden vom Exception Handler in main.py übersetzt.
"""
from datetime import date
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Query, status

from auftrag_core.api.deps import DBSession, CurrentActor, ensure_actor_matches
from auftrag_core.core.exceptions import ValidationError
from auftrag_core.models.enums import OrderStatus, KommissionierStatus, KontrollStatus
from auftrag_core.schemas.order import (
    OrderCreate, OrderResponse, OrderListResponse,
    PositionCreate, PositionUpdate, PositionPicking, PositionResponse,
    ActorBody, CompletePickingRequest, ForceCompletePickingRequest,
    CancelRequest, StatusOverride, AuditLogResponse,
)
from auftrag_core.services.workflow_engine import WorkflowEngine

router = APIRouter(prefix="/orders", tags=["Aufträge"])


def _parse_enum(enum_cls, value: Optional[str], name: str):
    """Query-Parameter tolerant parsen ('in_bearbeitung' == 'in Bearbeitung')"""
    if value is None or value == "":
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Ungültiger Wert für {name}: {value!r}")


# ========================================
# LESEN
# ========================================

@router.get("", response_model=OrderListResponse)
def list_orders(
    db: DBSession,
    actor: CurrentActor,
    status_filter: Optional[str] = Query(None, alias="status"),
    kommissioniert_status: Optional[str] = None,
    kontrolliert_status: Optional[str] = None,
    delivery_date: Optional[date] = None,
):
    """
    Aufträge abrufen, gefiltert auf die für den Benutzer sichtbaren.

    Filter:
    - **status**: offen, in_bearbeitung, abgeschlossen, storniert
    - **kommissioniert_status**: offen, gestartet, fertig
    - **kontrolliert_status**: offen, in_kontrolle, geprueft
    - **delivery_date**: Lieferdatum
    """
    orders = WorkflowEngine(db).list_orders(
        actor,
        status=_parse_enum(OrderStatus, status_filter, "status"),
        picking_status=_parse_enum(KommissionierStatus, kommissioniert_status, "kommissioniert_status"),
        control_status=_parse_enum(KontrollStatus, kontrolliert_status, "kontrolliert_status"),
        delivery_date=delivery_date,
    )
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=len(orders),
    )


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: UUID, db: DBSession, actor: CurrentActor):
    return WorkflowEngine(db).get_order(order_id, actor)


@router.get("/{order_id}/audit-log", response_model=list[AuditLogResponse])
def get_audit_log(order_id: UUID, db: DBSession, actor: CurrentActor):
    """Audit-Log der Admin-Eingriffe (nur Admin)"""
    return WorkflowEngine(db).get_audit_log(order_id, actor)


# ========================================
# ERFASSUNG
# ========================================

@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(data: OrderCreate, db: DBSession, actor: CurrentActor):
    """
    Auftrag anlegen (Verkauf/Admin).

    Ohne Preisangabe wird je Position Basispreis plus Kundenaufpreis übernommen.
    """
    order = WorkflowEngine(db).create_order(
        actor,
        customer_id=data.customer_id,
        positions=data.positions,
        delivery_date=data.delivery_date,
        remarks=data.remarks,
    )
    db.commit()
    db.refresh(order)
    return order


@router.post("/{order_id}/in-bearbeitung", response_model=OrderResponse)
def mark_in_progress(order_id: UUID, db: DBSession, actor: CurrentActor):
    order = WorkflowEngine(db).mark_in_progress(order_id, actor)
    db.commit()
    return order


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(order_id: UUID, db: DBSession, actor: CurrentActor, data: Optional[CancelRequest] = None):
    order = WorkflowEngine(db).cancel_order(order_id, actor, reason=data.reason if data else None)
    db.commit()
    return order


@router.post(
    "/{order_id}/positions",
    response_model=PositionResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_position(order_id: UUID, data: PositionCreate, db: DBSession, actor: CurrentActor):
    position = WorkflowEngine(db).add_position(order_id, actor, data)
    db.commit()
    return position


@router.patch("/{order_id}/positions/{position_id}", response_model=PositionResponse)
def update_position(
    order_id: UUID, position_id: UUID, data: PositionUpdate, db: DBSession, actor: CurrentActor
):
    position = WorkflowEngine(db).update_position(order_id, position_id, actor, data)
    db.commit()
    return position


@router.delete("/{order_id}/positions/{position_id}", response_model=OrderResponse)
def remove_position(
    order_id: UUID,
    position_id: UUID,
    db: DBSession,
    actor: CurrentActor,
    reason: Optional[str] = None,
):
    """Position entfernen, kommissionierte Positionen nur durch Admin"""
    order = WorkflowEngine(db).remove_position(order_id, position_id, actor, reason=reason)
    db.commit()
    return order


# ========================================
# KOMMISSIONIERUNG
# ========================================

@router.post("/{order_id}/claim-picking", response_model=OrderResponse)
def claim_picking(
    order_id: UUID, db: DBSession, actor: CurrentActor, data: Optional[ActorBody] = None
):
    """Kommissionierung übernehmen (409, wenn bereits übernommen)"""
    ensure_actor_matches(data.actor_id if data else None, actor)
    order = WorkflowEngine(db).claim_picking(order_id, actor)
    db.commit()
    return order


@router.post("/{order_id}/positions/{position_id}/complete", response_model=PositionResponse)
def complete_position(
    order_id: UUID, position_id: UUID, data: PositionPicking, db: DBSession, actor: CurrentActor
):
    """Position kommissionieren: Menge, Einheit und Bruttogewicht sind Pflicht"""
    ensure_actor_matches(data.actor_id, actor)
    position = WorkflowEngine(db).complete_position(order_id, position_id, actor, data)
    db.commit()
    return position


@router.post("/{order_id}/positions/{position_id}/force-complete", response_model=PositionResponse)
def force_complete_position(
    order_id: UUID, position_id: UUID, data: PositionPicking, db: DBSession, actor: CurrentActor
):
    """Position ohne Pflichtfelder oder Übernahme abschließen (nur Admin, protokolliert)"""
    ensure_actor_matches(data.actor_id, actor)
    position = WorkflowEngine(db).force_complete_position(order_id, position_id, actor, data)
    db.commit()
    return position


@router.post("/{order_id}/complete-picking", response_model=OrderResponse)
def complete_picking(
    order_id: UUID,
    db: DBSession,
    actor: CurrentActor,
    data: Optional[CompletePickingRequest] = None,
):
    ensure_actor_matches(data.actor_id if data else None, actor)
    order = WorkflowEngine(db).complete_picking(
        order_id, actor, total_pallets=data.total_pallets if data else None
    )
    db.commit()
    return order


@router.post("/{order_id}/force-complete-picking", response_model=OrderResponse)
def force_complete_picking(
    order_id: UUID,
    db: DBSession,
    actor: CurrentActor,
    data: Optional[ForceCompletePickingRequest] = None,
):
    """Kommissionierung trotz offener Positionen abschließen (nur Admin, protokolliert)"""
    data = data or ForceCompletePickingRequest()
    order = WorkflowEngine(db).force_complete_picking(
        order_id, actor, total_pallets=data.total_pallets, reason=data.reason
    )
    db.commit()
    return order


# ========================================
# KONTROLLE
# ========================================

@router.post("/{order_id}/claim-control", response_model=OrderResponse)
def claim_control(
    order_id: UUID, db: DBSession, actor: CurrentActor, data: Optional[ActorBody] = None
):
    ensure_actor_matches(data.actor_id if data else None, actor)
    order = WorkflowEngine(db).claim_control(order_id, actor)
    db.commit()
    return order


@router.post("/{order_id}/complete-control", response_model=OrderResponse)
def complete_control(
    order_id: UUID, db: DBSession, actor: CurrentActor, data: Optional[ActorBody] = None
):
    ensure_actor_matches(data.actor_id if data else None, actor)
    order = WorkflowEngine(db).complete_control(order_id, actor)
    db.commit()
    return order


# ========================================
# ADMIN
# ========================================

@router.post("/{order_id}/override", response_model=OrderResponse)
def override_status(order_id: UUID, data: StatusOverride, db: DBSession, actor: CurrentActor):
    """
    Status- und Zuständigkeitsfelder direkt setzen (nur Admin).
    Jede Änderung wird mit Begründung im Audit-Log festgehalten.
    """
    order = WorkflowEngine(db).override_status(order_id, actor, data.changes(), data.reason)
    db.commit()
    return order
