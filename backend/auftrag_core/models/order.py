"""
Auftrags-Models: Order (Kopf), OrderPosition (Artikelpositionen) und OrderAuditLog

Der Auftrag trägt zwei unabhängige Statusachsen:
- Kommissionierung: offen -> gestartet -> fertig
- Kontrolle: offen -> in Kontrolle -> geprüft (erst nach fertiger Kommissionierung)
"""
import uuid
from datetime import datetime, date
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Integer, Numeric, DateTime, Date, ForeignKey, Text, Boolean, Enum as SQLEnum
from sqlalchemy.types import Uuid, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auftrag_core.core.clock import utcnow
from auftrag_core.database import Base
from auftrag_core.models.enums import OrderStatus, KommissionierStatus, KontrollStatus


class Order(Base):
    """
    Auftrag (Header) eines Großhandelskunden.

    Geschäftsregeln:
    - Übernahmen (Kommissionierung/Kontrolle) erfolgen per bedingtem UPDATE
    - Alle übrigen Schreibzugriffe sind über die Versionsspalte abgesichert
    - Löschen eines Auftrags löscht alle Positionen (Cascade)
    """
    __tablename__ = "orders"

    # ==================== IDENTIFIKATION ====================
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )

    # Human-readable Auftragsnummer (z.B. "AU-20261019-0001")
    order_number: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )

    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id"), nullable=False, index=True
    )

    # ==================== STATUS ====================
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus), default=OrderStatus.OFFEN, nullable=False, index=True
    )
    delivery_date: Mapped[Optional[date]] = mapped_column(Date, index=True)

    # ==================== KOMMISSIONIERUNG ====================
    kommissioniert_status: Mapped[KommissionierStatus] = mapped_column(
        SQLEnum(KommissionierStatus), default=KommissionierStatus.OFFEN, nullable=False
    )
    kommissioniert_by: Mapped[Optional[str]] = mapped_column(String(64))
    kommissioniert_start_time: Mapped[Optional[datetime]] = mapped_column(DateTime)
    kommissioniert_end_time: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # ==================== KONTROLLE ====================
    kontrolliert_status: Mapped[KontrollStatus] = mapped_column(
        SQLEnum(KontrollStatus), default=KontrollStatus.OFFEN, nullable=False
    )
    kontrolliert_by: Mapped[Optional[str]] = mapped_column(String(64))
    kontrolliert_time: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # ==================== SUMMEN ====================
    total_pallets: Mapped[Optional[int]] = mapped_column(Integer)
    total_boxes: Mapped[Optional[int]] = mapped_column(Integer)
    total_weight: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), default=Decimal("0.000"), nullable=False
    )
    total_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )

    remarks: Mapped[Optional[str]] = mapped_column(Text)

    # ==================== AUDIT FIELDS ====================
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(64))

    # ==================== BEZIEHUNGEN ====================
    customer: Mapped["Customer"] = relationship("Customer")
    positions: Mapped[list["OrderPosition"]] = relationship(
        "OrderPosition",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderPosition.position"
    )
    audit_logs: Mapped[list["OrderAuditLog"]] = relationship(
        "OrderAuditLog",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderAuditLog.created_at.desc()"
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def position_ids(self) -> list[uuid.UUID]:
        return [p.id for p in self.positions]

    def all_positions_picked(self) -> bool:
        """True, wenn jede Position ein Kommissionier-Datum hat"""
        return all(p.picked_at is not None for p in self.positions)

    def positions_editable(self) -> bool:
        """Positionen dürfen bis zum Ende der Kommissionierung geändert werden"""
        return (
            self.status in (OrderStatus.OFFEN, OrderStatus.IN_BEARBEITUNG)
            and self.kommissioniert_status != KommissionierStatus.FERTIG
        )

    def __repr__(self) -> str:
        return (
            f"<Order(number='{self.order_number}', status={self.status.value}, "
            f"kommissioniert={self.kommissioniert_status.value}, "
            f"kontrolliert={self.kontrolliert_status.value})>"
        )


class OrderPosition(Base):
    """
    Artikelposition eines Auftrags.

    Gewicht und Preis werden von der PricingEngine abgeleitet:
    line_price = unit_price * line_weight
    """
    __tablename__ = "order_positions"

    # ==================== IDENTIFIKATION ====================
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Positionsnummer innerhalb des Auftrags (1, 2, 3, ...)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    article_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("articles.id"), nullable=False
    )

    # ==================== BESTELLUNG ====================
    ordered_qty: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    # kg, stück, kiste, karton (Altdaten können abweichen)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="kg")

    # Snapshot des effektiven Preises pro kg (Basispreis + Kundenaufpreis)
    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    line_weight: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), default=Decimal("0.000"), nullable=False
    )
    line_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )

    remark: Mapped[Optional[str]] = mapped_column(Text)
    needs_disassembly: Mapped[bool] = mapped_column(Boolean, default=False)
    needs_vacuum: Mapped[bool] = mapped_column(Boolean, default=False)

    # ==================== KOMMISSIONIERUNG ====================
    picked_qty: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3))
    picked_unit: Mapped[Optional[str]] = mapped_column(String(20))
    picked_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    gross_weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3))
    net_weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3))

    # Leergut: [{"kind": "e2", "count": 3, "weight": 2.0}, ...]
    empty_goods: Mapped[list] = mapped_column(JSON, default=list)
    batch_numbers: Mapped[list] = mapped_column(JSON, default=list)
    picking_remark: Mapped[Optional[str]] = mapped_column(Text)

    # ==================== AUDIT ====================
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    # ==================== BEZIEHUNGEN ====================
    order: Mapped["Order"] = relationship("Order", back_populates="positions")
    article: Mapped["Article"] = relationship("Article")

    @property
    def is_picked(self) -> bool:
        return self.picked_at is not None

    def __repr__(self) -> str:
        return f"<OrderPosition(pos={self.position}, qty={self.ordered_qty} {self.unit})>"


class OrderAuditLog(Base):
    """
    Audit-Log für Admin-Eingriffe und Übersteuerungen am Auftrag.
    """
    __tablename__ = "order_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)

    # STATUS_OVERRIDE, PICKING_FORCE_COMPLETE, POSITION_FORCE_COMPLETE, POSITION_FORCE_DELETE, CANCEL
    action: Mapped[str] = mapped_column(String(50), nullable=False)

    old_values: Mapped[Optional[dict]] = mapped_column(JSON)
    new_values: Mapped[Optional[dict]] = mapped_column(JSON)

    user_id: Mapped[Optional[str]] = mapped_column(String(64))
    reason: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    order: Mapped["Order"] = relationship("Order", back_populates="audit_logs")

    def __repr__(self) -> str:
        return f"<OrderAuditLog(order={self.order_id}, action='{self.action}')>"


# Imports für Type Hints (am Ende um zirkuläre Imports zu vermeiden)
from auftrag_core.models.article import Article, Customer
