#!/usr/bin/env python3
"""
Seed Data Script für Auftrag-Core
Legt Beispiel-Stammdaten (Kunden, Artikel, Aufpreise) und einen offenen
Auftrag an, damit Kommissionierung und Kontrolle lokal durchgespielt
werden können.

Verwendung:
    python scripts/seed_data.py
"""
import sys
import os
from datetime import date, timedelta
from decimal import Decimal

# Pfad für Imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "backend"))

from sqlalchemy.orm import Session
from auftrag_core.database import SessionLocal, engine, Base
from auftrag_core.models import Article, Customer, Order
from auftrag_core.schemas.actor import Actor
from auftrag_core.schemas.order import PositionCreate
from auftrag_core.services.surcharge_resolver import SurchargeResolver
from auftrag_core.services.workflow_engine import WorkflowEngine


# ============== STAMMDATEN ==============

CUSTOMERS_DATA = [
    {"name": "Metzgerei Huber", "customer_number": "K-1001", "region": "Süd", "category": "Metzgerei"},
    {"name": "Gasthof zur Post", "customer_number": "K-1002", "region": "Nord", "category": "Gastronomie"},
    {"name": "Landgasthof Lamm", "customer_number": "K-1003", "region": "Süd", "category": "Gastronomie"},
    {"name": "Kantine Stadtwerke", "customer_number": "K-1004", "region": "Mitte", "category": "Kantine"},
]

ARTICLES_DATA = [
    {"name": "Rinderhüfte", "article_number": "1001", "category": "Rind", "base_price": "18.90"},
    {"name": "Kalbsrücken", "article_number": "1002", "category": "Rind", "base_price": "14.90",
     "weight_per_carton": "10", "weight_per_crate": "25"},
    {"name": "Rinderhackfleisch", "article_number": "1010", "category": "Rind", "base_price": "8.40",
     "weight_per_crate": "20"},
    {"name": "Schweinekotelett", "article_number": "2001", "category": "Schwein", "base_price": "7.80",
     "weight_per_piece": "0.25"},
    {"name": "Schweinebauch", "article_number": "2002", "category": "Schwein", "base_price": "6.20"},
    {"name": "Lammkeule", "article_number": "3001", "category": "Lamm", "base_price": "16.50",
     "weight_per_piece": "2.4"},
]

# Systembenutzer für Seed-Buchungen
SEED_ACTOR = Actor(id="seed-script", roles=["admin"], name="Seed Script")


def create_customers(db: Session) -> list[Customer]:
    """Erstellt Kunden"""
    print("Erstelle Kunden...")
    customers = [Customer(**data) for data in CUSTOMERS_DATA]
    db.add_all(customers)
    return customers


def create_articles(db: Session) -> list[Article]:
    """Erstellt Artikel mit Umrechnungsfaktoren"""
    print("Erstelle Artikel...")
    articles = []
    for data in ARTICLES_DATA:
        values = {
            key: Decimal(value) if key.startswith(("base_", "weight_")) else value
            for key, value in data.items()
        }
        articles.append(Article(**values))
    db.add_all(articles)
    return articles


def create_surcharges(db: Session, articles: list[Article]) -> int:
    """Regionaler Aufpreis auf Rinderhüfte für alle Kunden im Süden"""
    print("Erstelle Kundenaufpreise...")
    huefte = next(a for a in articles if a.article_number == "1001")
    return SurchargeResolver(db).apply_mass_surcharge(
        SEED_ACTOR, huefte.id, Decimal("0.40"), region="Süd"
    )


def create_orders(db: Session, customers: list[Customer], articles: list[Article]) -> list[Order]:
    """Erstellt offene Beispiel-Aufträge"""
    print("Erstelle Aufträge...")
    by_number = {a.article_number: a for a in articles}
    engine_ = WorkflowEngine(db)

    orders = [
        engine_.create_order(
            SEED_ACTOR,
            customer_id=customers[0].id,
            delivery_date=date.today() + timedelta(days=1),
            remarks="Anlieferung bis 6 Uhr",
            positions=[
                PositionCreate(article_id=by_number["1001"].id, ordered_qty=Decimal("12.5")),
                PositionCreate(article_id=by_number["2001"].id, ordered_qty=Decimal("40"), unit="stück"),
                PositionCreate(article_id=by_number["1010"].id, ordered_qty=Decimal("2"), unit="kiste"),
            ],
        ),
        engine_.create_order(
            SEED_ACTOR,
            customer_id=customers[1].id,
            delivery_date=date.today() + timedelta(days=2),
            positions=[
                PositionCreate(article_id=by_number["1002"].id, ordered_qty=Decimal("3"), unit="karton",
                               needs_vacuum=True),
                PositionCreate(article_id=by_number["3001"].id, ordered_qty=Decimal("6"), unit="stück",
                               needs_disassembly=True, remark="ohne Knochen"),
            ],
        ),
    ]
    return orders


def seed(db: Session) -> dict:
    """Legt alle Beispieldaten in der übergebenen Session an (ohne Commit)"""
    customers = create_customers(db)
    articles = create_articles(db)
    db.flush()

    surcharges = create_surcharges(db, articles)
    db.flush()

    orders = create_orders(db, customers, articles)
    return {
        "customers": len(customers),
        "articles": len(articles),
        "surcharges": surcharges,
        "orders": len(orders),
    }


def main():
    """Hauptfunktion - erstellt alle Seed-Daten"""
    print("=" * 50)
    print("Auftrag-Core - Seed Data")
    print("=" * 50)

    # Tabellen erstellen falls nicht vorhanden
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        existing = db.query(Article).count()
        if existing > 0:
            print(f"\nWarnung: Datenbank enthält bereits {existing} Artikel.")
            response = input("Fortfahren und Daten hinzufügen? (j/n): ")
            if response.lower() != "j":
                print("Abgebrochen.")
                return

        counts = seed(db)
        db.commit()

        print("\n" + "=" * 50)
        print("Seed-Daten erfolgreich erstellt!")
        for name, count in counts.items():
            print(f"  {name}: {count}")
        print("=" * 50)
    except Exception as e:
        db.rollback()
        print(f"\nFehler: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
