"""
Pydantic Schemas für Kundenaufpreise
"""
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional

from auftrag_core.schemas.order import CamelModel
from auftrag_core.models.enums import BulkMode


class SurchargeUpsert(CamelModel):
    """Einzelnen Aufpreis setzen (negativ = Rabatt)"""
    article_id: UUID
    customer_id: UUID
    amount: Decimal = Field(..., description="Aufpreis pro kg in EUR")


class MassSurchargeRequest(CamelModel):
    """Aufpreis eines Artikels für alle passenden Kunden"""
    article_id: UUID
    amount: Decimal
    category: Optional[str] = Field(None, description="Kundenkategorie")
    region: Optional[str] = Field(None, description="Region")


class BulkSelection(CamelModel):
    """Artikelauswahl, mindestens ein Kriterium muss gesetzt sein"""
    article_ids: Optional[list[UUID]] = None
    category: Optional[str] = None
    article_number_from: Optional[str] = None
    article_number_to: Optional[str] = None


class BulkAction(CamelModel):
    mode: BulkMode
    value: Decimal


class BulkEditRequest(CamelModel):
    """Massenbearbeitung der Aufpreise eines Kunden"""
    customer_id: UUID
    selection: BulkSelection = Field(default_factory=BulkSelection)
    action: BulkAction


class SurchargeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    article_id: UUID
    customer_id: UUID
    amount: Decimal
    created_at: datetime
    updated_at: datetime


class EffectivePriceResponse(BaseModel):
    article_id: UUID
    customer_id: UUID
    base_price: Decimal
    surcharge: Decimal
    effective_price: Decimal


class BulkEditResult(BaseModel):
    """Anzahl geänderter Aufpreis-Zeilen"""
    affected: int
