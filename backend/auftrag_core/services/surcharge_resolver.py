"""
Kundenaufpreis-Service - effektive Preise und Massenbearbeitung von Aufpreisen
"""
import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import select

from auftrag_core.core.exceptions import ValidationError, NotFoundError
from auftrag_core.database import flush_or_conflict
from auftrag_core.models.article import Article
from auftrag_core.models.enums import BulkMode
from auftrag_core.models.surcharge import CustomerSurcharge
from auftrag_core.schemas.actor import Actor
from auftrag_core.services.catalog import ArticleCatalog, CustomerDirectory
from auftrag_core.services.permission_gate import PermissionGate, Operation

logger = logging.getLogger(__name__)


class SurchargeResolver:
    """Service für Kundenaufpreise"""

    def __init__(self, db: Session, gate: Optional[PermissionGate] = None):
        self.db = db
        self.gate = gate or PermissionGate()
        self.articles = ArticleCatalog(db)
        self.customers = CustomerDirectory(db)

    # ========================================
    # PREISERMITTLUNG
    # ========================================

    def find_surcharge(self, article_id: UUID, customer_id: UUID) -> Optional[CustomerSurcharge]:
        return self.db.execute(
            select(CustomerSurcharge).where(
                CustomerSurcharge.article_id == article_id,
                CustomerSurcharge.customer_id == customer_id,
            )
        ).scalar_one_or_none()

    def resolve_effective_price(self, article: Article, customer_id: UUID) -> Decimal:
        """
        Basispreis plus exakter Kundenaufpreis, ohne Aufpreis der Basispreis.
        """
        surcharge = self.find_surcharge(article.id, customer_id)
        if surcharge is None:
            return article.base_price
        return article.base_price + surcharge.amount

    def effective_price_for(self, actor: Actor, article_id: UUID, customer_id: UUID) -> Decimal:
        """Effektiver Preis mit Berechtigungsprüfung (Kunden nur für sich selbst)"""
        self.gate.authorize(actor, Operation.VIEW_PRICES)
        self.gate.ensure_customer_access(actor, customer_id)
        article = self.articles.get_by_id(article_id)
        self.customers.get_by_id(customer_id)
        return self.resolve_effective_price(article, customer_id)

    # ========================================
    # EINZELPFLEGE
    # ========================================

    def list_for_article(self, actor: Actor, article_id: UUID) -> list[CustomerSurcharge]:
        self.gate.authorize(actor, Operation.MANAGE_SURCHARGES)
        self.articles.get_by_id(article_id)
        return list(self.db.execute(
            select(CustomerSurcharge).where(CustomerSurcharge.article_id == article_id)
        ).scalars().all())

    def list_for_customer(self, actor: Actor, customer_id: UUID) -> list[CustomerSurcharge]:
        self.gate.authorize(actor, Operation.VIEW_PRICES)
        self.gate.ensure_customer_access(actor, customer_id)
        self.customers.get_by_id(customer_id)
        return list(self.db.execute(
            select(CustomerSurcharge).where(CustomerSurcharge.customer_id == customer_id)
        ).scalars().all())

    def upsert_surcharge(
        self, actor: Actor, article_id: UUID, customer_id: UUID, amount: Decimal
    ) -> CustomerSurcharge:
        """Legt einen Aufpreis an oder überschreibt den vorhandenen"""
        self.gate.authorize(actor, Operation.MANAGE_SURCHARGES)
        self.articles.get_by_id(article_id)
        self.customers.get_by_id(customer_id)

        surcharge = self._upsert(article_id, customer_id, amount)
        flush_or_conflict(self.db, "Kundenaufpreis")
        logger.info(f"Aufpreis {amount} für Artikel {article_id} / Kunde {customer_id} gesetzt")
        return surcharge

    def delete_surcharge(self, actor: Actor, surcharge_id: UUID) -> None:
        self.gate.authorize(actor, Operation.MANAGE_SURCHARGES)
        surcharge = self.db.get(CustomerSurcharge, surcharge_id)
        if not surcharge:
            raise NotFoundError("Kundenaufpreis nicht gefunden")
        self.db.delete(surcharge)
        flush_or_conflict(self.db, "Kundenaufpreis")

    # ========================================
    # MASSENBEARBEITUNG
    # ========================================

    def apply_mass_surcharge(
        self,
        actor: Actor,
        article_id: UUID,
        amount: Decimal,
        category: Optional[str] = None,
        region: Optional[str] = None,
    ) -> int:
        """
        Setzt den Aufpreis eines Artikels für alle Kunden, die den Kriterien
        entsprechen (ohne Kriterien: alle Kunden). Alles oder nichts.

        Returns:
            Anzahl geschriebener Aufpreis-Zeilen
        """
        self.gate.authorize(actor, Operation.MANAGE_SURCHARGES)
        self.articles.get_by_id(article_id)
        customers = self.customers.find(category=category, region=region)

        # Eine Unit of Work: scheitert der Flush, wird die ganze Session zurückgerollt
        for customer in customers:
            self._upsert(article_id, customer.id, amount)
        flush_or_conflict(self.db, "Kundenaufpreis")

        logger.info(
            f"Massen-Aufpreis {amount} für Artikel {article_id} auf {len(customers)} Kunden "
            f"(Kategorie={category}, Region={region})"
        )
        return len(customers)

    def bulk_edit_by_customer(
        self,
        actor: Actor,
        customer_id: UUID,
        mode: BulkMode,
        value: Decimal,
        article_ids: Optional[list[UUID]] = None,
        category: Optional[str] = None,
        article_number_from: Optional[str] = None,
        article_number_to: Optional[str] = None,
    ) -> int:
        """
        Setzt, erhöht oder verringert die Aufpreise eines Kunden für alle
        Artikel der Auswahl. Fehlende Zeilen starten bei 0. Alles oder nichts.

        Returns:
            Anzahl geänderter Aufpreis-Zeilen
        """
        self.gate.authorize(actor, Operation.MANAGE_SURCHARGES)
        if not (article_ids or category or article_number_from or article_number_to):
            raise ValidationError(
                "Mindestens ein Kriterium erforderlich: Artikelauswahl, Kategorie oder Artikelnummern-Spanne"
            )
        mode = BulkMode(mode)
        self.customers.get_by_id(customer_id)

        articles = self.articles.find(
            article_ids=article_ids,
            category=category,
            number_from=article_number_from,
            number_to=article_number_to,
        )

        # Änderungen nur in der Session sammeln, geschrieben wird in einem Flush
        for article in articles:
            surcharge = self.find_surcharge(article.id, customer_id)
            current = surcharge.amount if surcharge else Decimal("0.00")
            if mode == BulkMode.SET:
                new_amount = value
            elif mode == BulkMode.ADD:
                new_amount = current + value
            else:
                new_amount = current - value
            self._upsert(article.id, customer_id, new_amount, existing=surcharge)
        flush_or_conflict(self.db, "Kundenaufpreis")

        logger.info(
            f"Massenbearbeitung Kunde {customer_id}: {mode.value} {value} auf {len(articles)} Artikel"
        )
        return len(articles)

    def _upsert(
        self,
        article_id: UUID,
        customer_id: UUID,
        amount: Decimal,
        existing: Optional[CustomerSurcharge] = None,
    ) -> CustomerSurcharge:
        surcharge = existing or self.find_surcharge(article_id, customer_id)
        if surcharge is None:
            surcharge = CustomerSurcharge(
                article_id=article_id,
                customer_id=customer_id,
                amount=amount,
            )
            self.db.add(surcharge)
        else:
            surcharge.amount = amount
        return surcharge
