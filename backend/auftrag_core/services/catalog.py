"""
Stammdaten-Zugriff: ArticleCatalog und CustomerDirectory

Lesende Kollaborateure des Cores, die Stammdatenpflege liegt außerhalb.
"""
from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import select

from auftrag_core.core.exceptions import NotFoundError
from auftrag_core.models.article import Article, Customer


class ArticleCatalog:
    """Lesezugriff auf Artikel"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, article_id: UUID) -> Article:
        article = self.db.get(Article, article_id)
        if not article:
            raise NotFoundError(f"Artikel {article_id} nicht gefunden")
        return article

    def find(
        self,
        article_ids: Optional[list[UUID]] = None,
        category: Optional[str] = None,
        number_from: Optional[str] = None,
        number_to: Optional[str] = None,
    ) -> list[Article]:
        """
        Artikel, die allen angegebenen Kriterien entsprechen.
        Die Nummernspanne wird als Textvergleich ausgewertet (inklusive Grenzen).
        """
        query = select(Article)
        if article_ids:
            query = query.where(Article.id.in_(article_ids))
        if category:
            query = query.where(Article.category == category)
        if number_from:
            query = query.where(Article.article_number >= number_from)
        if number_to:
            query = query.where(Article.article_number <= number_to)
        return list(self.db.execute(query.order_by(Article.article_number)).scalars().all())


class CustomerDirectory:
    """Lesezugriff auf Kunden"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, customer_id: UUID) -> Customer:
        customer = self.db.get(Customer, customer_id)
        if not customer:
            raise NotFoundError(f"Kunde {customer_id} nicht gefunden")
        return customer

    def find(self, category: Optional[str] = None, region: Optional[str] = None) -> list[Customer]:
        """Kunden nach Kategorie und/oder Region, ohne Kriterien alle Kunden"""
        query = select(Customer)
        if category:
            query = query.where(Customer.category == category)
        if region:
            query = query.where(Customer.region == region)
        return list(self.db.execute(query.order_by(Customer.name)).scalars().all())
