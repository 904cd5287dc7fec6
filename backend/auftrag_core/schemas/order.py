"""
Pydantic Schemas für Aufträge, Positionen und Workflow-Aktionen

Request-Bodies akzeptieren camelCase (Frontend) und snake_case.
"""
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional

from auftrag_core.models.enums import OrderStatus, KommissionierStatus, KontrollStatus


class CamelModel(BaseModel):
    """Basis für Request-Bodies: camelCase-Aliase, Feldnamen ebenfalls erlaubt"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ActorBody(CamelModel):
    """Optionale Akteur-ID im Body, muss zum angemeldeten Benutzer passen"""
    actor_id: Optional[str] = Field(None, description="Benutzer-ID des Ausführenden")


# ==================== POSITION SCHEMAS ====================

class PositionCreate(CamelModel):
    """Schema zum Anlegen einer Artikelposition"""
    article_id: UUID = Field(..., description="Artikel-ID")
    ordered_qty: Decimal = Field(..., gt=0, description="Bestellmenge")
    unit: str = Field(default="kg", min_length=1, description="Einheit (kg, stück, kiste, karton)")
    # Ohne Angabe: Basispreis plus Kundenaufpreis
    unit_price: Optional[Decimal] = Field(None, ge=0, description="Preis pro kg")
    remark: Optional[str] = None
    needs_disassembly: bool = False
    needs_vacuum: bool = False


class PositionUpdate(CamelModel):
    """Schema zum Ändern einer Artikelposition"""
    article_id: Optional[UUID] = None
    ordered_qty: Optional[Decimal] = Field(None, gt=0)
    unit: Optional[str] = Field(None, min_length=1)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    remark: Optional[str] = None
    needs_disassembly: Optional[bool] = None
    needs_vacuum: Optional[bool] = None


class EmptyGoodsItem(CamelModel):
    """Leergut-Eintrag (Art, Anzahl, Gewicht pro Stück)"""
    kind: str = Field(..., min_length=1, description="z.B. e2, h1, big box, karton")
    count: Decimal = Field(..., ge=0)
    weight: Optional[Decimal] = Field(None, ge=0, description="Tara pro Stück in kg")


class PositionPicking(ActorBody):
    """Kommissionier-Daten einer Position"""
    picked_qty: Optional[Decimal] = Field(None, ge=0)
    picked_unit: Optional[str] = None
    gross_weight: Optional[Decimal] = Field(None, ge=0)
    empty_goods: list[EmptyGoodsItem] = Field(default_factory=list)
    batch_numbers: list[str] = Field(default_factory=list)
    remark: Optional[str] = None
    # Nur für Admin-Übersteuerung bei fehlenden Pflichtfeldern
    reason: Optional[str] = None

    @field_validator("batch_numbers")
    @classmethod
    def strip_batch_numbers(cls, v):
        return [b.strip() for b in v if b and b.strip()]


class PositionResponse(BaseModel):
    """Schema für Positions-Antwort"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    position: int
    article_id: UUID

    ordered_qty: Decimal
    unit: str
    unit_price: Decimal
    line_weight: Decimal
    line_price: Decimal
    remark: Optional[str]
    needs_disassembly: bool
    needs_vacuum: bool

    # Kommissionierung
    picked_qty: Optional[Decimal]
    picked_unit: Optional[str]
    picked_at: Optional[datetime]
    gross_weight: Optional[Decimal]
    net_weight: Optional[Decimal]
    empty_goods: list = []
    batch_numbers: list = []
    picking_remark: Optional[str]

    @field_validator("empty_goods", "batch_numbers", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v or []


# ==================== ORDER SCHEMAS ====================

class OrderCreate(CamelModel):
    """Schema zum Erstellen eines Auftrags"""
    customer_id: UUID = Field(..., description="Kunden-ID")
    delivery_date: Optional[date] = Field(None, description="Lieferdatum")
    remarks: Optional[str] = None
    # Positionen können auch später hinzugefügt werden
    positions: list[PositionCreate] = Field(default_factory=list)


class OrderResponse(BaseModel):
    """Schema für Auftrags-Antwort mit Positionen"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    customer_id: UUID
    status: OrderStatus
    delivery_date: Optional[date]

    kommissioniert_status: KommissionierStatus
    kommissioniert_by: Optional[str]
    kommissioniert_start_time: Optional[datetime]
    kommissioniert_end_time: Optional[datetime]

    kontrolliert_status: KontrollStatus
    kontrolliert_by: Optional[str]
    kontrolliert_time: Optional[datetime]

    total_pallets: Optional[int]
    total_boxes: Optional[int]
    total_weight: Decimal
    total_price: Decimal
    remarks: Optional[str]

    version: int
    created_at: datetime
    updated_at: datetime
    created_by: Optional[str]

    positions: list[PositionResponse] = []


class OrderListResponse(BaseModel):
    """Liste von Aufträgen"""
    items: list[OrderResponse]
    total: int


# ==================== WORKFLOW SCHEMAS ====================

class CompletePickingRequest(ActorBody):
    total_pallets: Optional[int] = Field(None, ge=0, description="Anzahl Paletten")


class ForceCompletePickingRequest(CamelModel):
    total_pallets: Optional[int] = Field(None, ge=0)
    reason: Optional[str] = None


class CancelRequest(CamelModel):
    reason: Optional[str] = None


class StatusOverride(CamelModel):
    """
    Direkte Feldänderung durch einen Admin.

    Nur gesetzte Felder werden übernommen, None gibt z.B. eine Übernahme frei.
    """
    status: Optional[OrderStatus] = None
    kommissioniert_status: Optional[KommissionierStatus] = None
    kommissioniert_by: Optional[str] = None
    kontrolliert_status: Optional[KontrollStatus] = None
    kontrolliert_by: Optional[str] = None
    total_pallets: Optional[int] = Field(None, ge=0)
    total_boxes: Optional[int] = Field(None, ge=0)
    reason: str = Field(..., min_length=1, description="Begründung (Pflicht)")

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"reason"})


class AuditLogResponse(BaseModel):
    """Schema für Audit-Log-Einträge"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    position_id: Optional[UUID]
    action: str
    old_values: Optional[dict]
    new_values: Optional[dict]
    user_id: Optional[str]
    reason: Optional[str]
    created_at: datetime
