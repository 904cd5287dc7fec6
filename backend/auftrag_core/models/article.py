"""
Stammdaten-Models: Article und Customer

Werden vom Core nur gelesen; Pflege erfolgt in der Stammdatenverwaltung.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Numeric, DateTime
from sqlalchemy.types import Uuid
from sqlalchemy.orm import Mapped, mapped_column

from auftrag_core.core.clock import utcnow
from auftrag_core.database import Base


class Article(Base):
    """
    Artikel mit Basispreis und Umrechnungsfaktoren auf kg.
    """
    __tablename__ = "articles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    article_number: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    category: Mapped[Optional[str]] = mapped_column(String(100), index=True)

    # Standardpreis pro kg
    base_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0.00"), nullable=False
    )

    # Umrechnung Einheit -> kg (optional, fehlende Werte zählen als 0)
    weight_per_piece: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 3))
    weight_per_carton: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 3))
    weight_per_crate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 3))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<Article(number='{self.article_number}', name='{self.name}')>"


class Customer(Base):
    """
    Kunde mit Region und Kategorie (Selektoren für Massen-Aufpreise).
    """
    __tablename__ = "customers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_number: Mapped[Optional[str]] = mapped_column(String(50), unique=True)
    region: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<Customer(name='{self.name}')>"
