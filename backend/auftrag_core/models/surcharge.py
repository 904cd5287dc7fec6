"""
Kundenaufpreis: kundenspezifischer Zuschlag auf den Basispreis eines Artikels
"""
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.types import Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from auftrag_core.core.clock import utcnow
from auftrag_core.database import Base


class CustomerSurcharge(Base):
    """
    Aufpreis pro (Artikel, Kunde).

    Massen-Aufpreise nach Kategorie/Region werden beim Anwenden als
    einzelne Zeilen je Kunde gespeichert, daher gibt es genau eine Zeile
    pro Paar.
    """
    __tablename__ = "customer_surcharges"
    __table_args__ = (
        UniqueConstraint("article_id", "customer_id", name="uq_surcharge_article_customer"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    article_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Darf negativ sein (Rabatt)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0.00"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    article: Mapped["Article"] = relationship("Article")
    customer: Mapped["Customer"] = relationship("Customer")

    def __repr__(self) -> str:
        return f"<CustomerSurcharge(article={self.article_id}, customer={self.customer_id}, amount={self.amount})>"


from auftrag_core.models.article import Article, Customer
