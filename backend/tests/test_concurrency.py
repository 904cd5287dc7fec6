"""
Tests für gleichzeitige Übernahmen und veraltete Schreibzugriffe
"""
import threading
import pytest
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from auftrag_core.core.exceptions import ConflictError
from auftrag_core.database import Base
from auftrag_core.models import Article, Customer, CustomerSurcharge, Order
from auftrag_core.schemas.actor import Actor
from auftrag_core.schemas.order import PositionCreate, PositionUpdate
from auftrag_core.services.pricing_engine import PricingEngine
from auftrag_core.services.surcharge_resolver import SurchargeResolver
from auftrag_core.services.workflow_engine import WorkflowEngine

ADMIN = Actor(id="admin-1", roles=["admin"])


@pytest.fixture
def file_sessions(tmp_path):
    """Session-Factory auf einer SQLite-Datei, damit mehrere Verbindungen möglich sind"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'auftrag.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def order_id(file_sessions):
    db = file_sessions()
    customer = Customer(name="Metzgerei Huber", customer_number="K-1001")
    article = Article(name="Rinderhüfte", article_number="1001", base_price=Decimal("2.00"))
    db.add_all([customer, article])
    db.commit()

    order = _engine(db).create_order(
        Actor(id="verkauf-1", roles=["verkauf"]),
        customer_id=customer.id,
        positions=[PositionCreate(article_id=article.id, ordered_qty=Decimal("5"))],
    )
    db.commit()
    order_id = order.id
    db.close()
    return order_id


def _engine(db):
    return WorkflowEngine(db, pricing=PricingEngine(unknown_unit_policy="zero"))


def test_claim_with_stale_session(file_sessions, order_id):
    """Test: zweite Session hat den Auftrag noch als offen geladen"""
    first = file_sessions()
    second = file_sessions()
    try:
        stale = second.get(Order, order_id)
        assert stale.kommissioniert_by is None

        _engine(first).claim_picking(order_id, Actor(id="picker-a", roles=["kommissionierung"]))
        first.commit()

        with pytest.raises(ConflictError):
            _engine(second).claim_picking(order_id, Actor(id="picker-b", roles=["kommissionierung"]))
        assert second.get(Order, order_id).kommissioniert_by == "picker-a"
    finally:
        first.close()
        second.close()


def test_stale_position_edit_conflicts(file_sessions, order_id):
    """Test: Positionsänderung auf veralteter Version wird abgelehnt"""
    first = file_sessions()
    second = file_sessions()
    try:
        order = second.get(Order, order_id)
        position_id = order.positions[0].id
        # second hält Version 1, first schreibt Version 2
        _engine(first).update_position(
            order_id, position_id, Actor(id="verkauf-1", roles=["verkauf"]),
            PositionUpdate(ordered_qty=Decimal("7")),
        )
        first.commit()

        with pytest.raises(ConflictError):
            _engine(second).update_position(
                order_id, position_id, Actor(id="verkauf-2", roles=["verkauf"]),
                PositionUpdate(ordered_qty=Decimal("9")),
            )
    finally:
        first.close()
        second.close()


def test_simultaneous_claims_one_wins(file_sessions, order_id):
    """Test: von zwei gleichzeitigen Übernahmen gewinnt genau eine"""
    barrier = threading.Barrier(2)
    results = {}

    def claim(actor_id):
        db = file_sessions()
        try:
            barrier.wait()
            _engine(db).claim_picking(order_id, Actor(id=actor_id, roles=["kommissionierung"]))
            db.commit()
            results[actor_id] = "ok"
        except ConflictError:
            db.rollback()
            results[actor_id] = "conflict"
        finally:
            db.close()

    threads = [threading.Thread(target=claim, args=(name,)) for name in ("picker-a", "picker-b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(results.values()) == ["conflict", "ok"]

    db = file_sessions()
    try:
        winner = [name for name, result in results.items() if result == "ok"][0]
        assert db.get(Order, order_id).kommissioniert_by == winner
    finally:
        db.close()


def _surcharge_targets(db):
    article = db.query(Article).filter_by(article_number="1001").one()
    customer = db.query(Customer).filter_by(customer_number="K-1001").one()
    return article.id, customer.id


def _resolver_without_fresh_read(db):
    """Resolver, der den Aufpreis noch vor dem Commit des anderen Schreibers gelesen hat"""
    resolver = SurchargeResolver(db)
    resolver.find_surcharge = lambda article_id, customer_id: None
    return resolver


def test_parallel_surcharge_insert_conflicts(file_sessions, order_id):
    """Test: zwei Sessions legen denselben Aufpreis gleichzeitig an"""
    first = file_sessions()
    second = file_sessions()
    try:
        article_id, customer_id = _surcharge_targets(first)
        SurchargeResolver(first).upsert_surcharge(ADMIN, article_id, customer_id, Decimal("0.30"))
        first.commit()

        with pytest.raises(ConflictError):
            _resolver_without_fresh_read(second).upsert_surcharge(
                ADMIN, article_id, customer_id, Decimal("0.50")
            )
        second.rollback()

        assert first.query(CustomerSurcharge).one().amount == Decimal("0.30")
    finally:
        first.close()
        second.close()


def test_parallel_mass_surcharge_conflicts(file_sessions, order_id):
    """Test: Massen-Aufpreis kollidiert mit parallel angelegtem Einzel-Aufpreis"""
    first = file_sessions()
    second = file_sessions()
    try:
        article_id, customer_id = _surcharge_targets(first)
        SurchargeResolver(first).upsert_surcharge(ADMIN, article_id, customer_id, Decimal("0.30"))
        first.commit()

        with pytest.raises(ConflictError):
            _resolver_without_fresh_read(second).apply_mass_surcharge(ADMIN, article_id, Decimal("0.10"))
        second.rollback()

        assert second.query(CustomerSurcharge).count() == 1
    finally:
        first.close()
        second.close()
