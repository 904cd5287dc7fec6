"""
Pytest Konfiguration und gemeinsame Fixtures
"""
import os

# Vor dem Import der App: keine PostgreSQL-Verbindung in Tests
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auftrag_core.main import app
from auftrag_core.database import Base, get_db
from auftrag_core.api.deps import get_current_actor
from auftrag_core.models import Article, Customer
from auftrag_core.schemas.actor import Actor
from auftrag_core.schemas.order import PositionCreate
from auftrag_core.services.pricing_engine import PricingEngine
from auftrag_core.services.workflow_engine import WorkflowEngine


# Test-Datenbank (SQLite in-memory)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Test-DB Session"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Dependency Override
app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
def db():
    """Datenbankverbindung für Tests"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def actors():
    """Akteure aller Rollen (Kunde wird im Test an einen Kunden gebunden)"""
    return SimpleNamespace(
        admin=Actor(id="admin-1", name="Admin", roles=["admin"]),
        verkauf=Actor(id="verkauf-1", name="Vera Verkauf", roles=["verkauf"]),
        picker_a=Actor(id="picker-a", name="Paul", roles=["kommissionierung"]),
        picker_b=Actor(id="picker-b", name="Petra", roles=["kommissionierung"]),
        kontrolle_a=Actor(id="kontrolle-a", name="Karl", roles=["kontrolle"]),
        kontrolle_b=Actor(id="kontrolle-b", name="Klara", roles=["kontrolle"]),
        zerleger=Actor(id="zerleger-1", name="Zoran", roles=["zerleger"]),
    )


@pytest.fixture
def client(db, actors):
    """Test Client, angemeldet als Admin; login() wechselt den Akteur"""
    state = {"actor": actors.admin}

    async def override_actor():
        return state["actor"]

    app.dependency_overrides[get_current_actor] = override_actor
    test_client = TestClient(app)

    def login(actor: Actor):
        state["actor"] = actor

    test_client.login = login
    yield test_client

    app.dependency_overrides.pop(get_current_actor, None)


@pytest.fixture
def customers(db):
    """Kunden in zwei Regionen und zwei Kategorien"""
    huber = Customer(name="Metzgerei Huber", customer_number="K-1001", region="Süd", category="Metzgerei")
    post = Customer(name="Gasthaus Post", customer_number="K-1002", region="Nord", category="Gastro")
    lamm = Customer(name="Gasthof Lamm", customer_number="K-1003", region="Süd", category="Gastro")
    db.add_all([huber, post, lamm])
    db.commit()
    return SimpleNamespace(huber=huber, post=post, lamm=lamm)


@pytest.fixture
def articles(db):
    """Artikel mit und ohne Umrechnungsfaktoren"""
    huefte = Article(
        name="Rinderhüfte", article_number="1001", category="Rind",
        base_price=Decimal("2.00"),
    )
    kalb = Article(
        name="Kalbsbraten", article_number="1002", category="Rind",
        base_price=Decimal("14.90"), weight_per_carton=Decimal("10.000"),
        weight_per_crate=Decimal("25.000"),
    )
    kotelett = Article(
        name="Schweinekotelett", article_number="2001", category="Schwein",
        base_price=Decimal("3.00"), weight_per_piece=Decimal("1.200"),
    )
    db.add_all([huefte, kalb, kotelett])
    db.commit()
    return SimpleNamespace(huefte=huefte, kalb=kalb, kotelett=kotelett)


@pytest.fixture
def workflow(db):
    """WorkflowEngine auf der Test-Session"""
    return WorkflowEngine(db, pricing=PricingEngine(unknown_unit_policy="zero"))


@pytest.fixture
def sample_order(db, workflow, actors, customers, articles):
    """
    Auftrag mit zwei Positionen:
    5 kg Rinderhüfte zu 2,00 und 4 Stück Kotelett (1,2 kg/Stück) zu 3,00
    """
    order = workflow.create_order(
        actors.verkauf,
        customer_id=customers.huber.id,
        positions=[
            PositionCreate(article_id=articles.huefte.id, ordered_qty=Decimal("5"), unit="kg"),
            PositionCreate(article_id=articles.kotelett.id, ordered_qty=Decimal("4"), unit="stück"),
        ],
    )
    db.commit()
    return order


@pytest.fixture
def unknown_id():
    return uuid4()
