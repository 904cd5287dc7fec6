"""
Tests für Kundenaufpreise: effektiver Preis, Massen-Aufpreis, Massenbearbeitung
"""
import pytest
from decimal import Decimal
from uuid import uuid4
from sqlalchemy import select, func

from auftrag_core.core.exceptions import ValidationError, PermissionDenied, NotFoundError
from auftrag_core.models import CustomerSurcharge, BulkMode
from auftrag_core.schemas.actor import Actor
from auftrag_core.services.surcharge_resolver import SurchargeResolver


@pytest.fixture
def resolver(db):
    return SurchargeResolver(db)


def _amount(db, article, customer):
    return db.execute(
        select(CustomerSurcharge.amount).where(
            CustomerSurcharge.article_id == article.id,
            CustomerSurcharge.customer_id == customer.id,
        )
    ).scalar_one_or_none()


def _count(db):
    return db.execute(select(func.count(CustomerSurcharge.id))).scalar()


class TestEffectivePrice:
    def test_base_price_without_surcharge(self, resolver, articles, customers):
        assert resolver.resolve_effective_price(articles.huefte, customers.huber.id) == Decimal("2.00")

    def test_base_plus_surcharge(self, db, resolver, actors, articles, customers):
        resolver.upsert_surcharge(actors.verkauf, articles.huefte.id, customers.huber.id, Decimal("0.35"))
        db.commit()
        assert resolver.resolve_effective_price(articles.huefte, customers.huber.id) == Decimal("2.35")
        # Anderer Kunde bleibt beim Basispreis
        assert resolver.resolve_effective_price(articles.huefte, customers.post.id) == Decimal("2.00")

    def test_negative_surcharge(self, db, resolver, actors, articles, customers):
        resolver.upsert_surcharge(actors.admin, articles.huefte.id, customers.huber.id, Decimal("-0.20"))
        db.commit()
        assert resolver.resolve_effective_price(articles.huefte, customers.huber.id) == Decimal("1.80")

    def test_kunde_only_own_prices(self, resolver, articles, customers):
        kunde = Actor(id="k1", roles=["kunde"], customer_id=customers.huber.id)
        price = resolver.effective_price_for(kunde, articles.huefte.id, customers.huber.id)
        assert price == Decimal("2.00")
        with pytest.raises(PermissionDenied):
            resolver.effective_price_for(kunde, articles.huefte.id, customers.post.id)

    def test_unknown_article(self, resolver, actors, customers):
        with pytest.raises(NotFoundError):
            resolver.effective_price_for(actors.verkauf, uuid4(), customers.huber.id)


class TestSingleMaintenance:
    def test_upsert_overwrites(self, db, resolver, actors, articles, customers):
        resolver.upsert_surcharge(actors.verkauf, articles.huefte.id, customers.huber.id, Decimal("0.10"))
        resolver.upsert_surcharge(actors.verkauf, articles.huefte.id, customers.huber.id, Decimal("0.50"))
        db.commit()
        assert _count(db) == 1
        assert _amount(db, articles.huefte, customers.huber) == Decimal("0.50")

    def test_picker_may_not_maintain(self, resolver, actors, articles, customers):
        with pytest.raises(PermissionDenied):
            resolver.upsert_surcharge(actors.picker_a, articles.huefte.id, customers.huber.id, Decimal("1"))

    def test_delete(self, db, resolver, actors, articles, customers):
        surcharge = resolver.upsert_surcharge(
            actors.verkauf, articles.huefte.id, customers.huber.id, Decimal("0.10")
        )
        db.commit()
        resolver.delete_surcharge(actors.verkauf, surcharge.id)
        db.commit()
        assert _count(db) == 0

    def test_delete_unknown(self, resolver, actors):
        with pytest.raises(NotFoundError):
            resolver.delete_surcharge(actors.verkauf, uuid4())

    def test_lists(self, db, resolver, actors, articles, customers):
        resolver.upsert_surcharge(actors.verkauf, articles.huefte.id, customers.huber.id, Decimal("0.10"))
        resolver.upsert_surcharge(actors.verkauf, articles.kalb.id, customers.huber.id, Decimal("0.20"))
        resolver.upsert_surcharge(actors.verkauf, articles.huefte.id, customers.post.id, Decimal("0.30"))
        db.commit()
        assert len(resolver.list_for_article(actors.verkauf, articles.huefte.id)) == 2
        assert len(resolver.list_for_customer(actors.verkauf, customers.huber.id)) == 2


class TestMassSurcharge:
    def test_by_region(self, db, resolver, actors, articles, customers):
        """Test: nur Kunden der Region Süd"""
        affected = resolver.apply_mass_surcharge(
            actors.verkauf, articles.huefte.id, Decimal("0.25"), region="Süd"
        )
        db.commit()
        assert affected == 2
        assert _amount(db, articles.huefte, customers.huber) == Decimal("0.25")
        assert _amount(db, articles.huefte, customers.lamm) == Decimal("0.25")
        assert _amount(db, articles.huefte, customers.post) is None

    def test_criteria_are_combined(self, db, resolver, actors, articles, customers):
        affected = resolver.apply_mass_surcharge(
            actors.verkauf, articles.huefte.id, Decimal("0.25"), category="Gastro", region="Süd"
        )
        db.commit()
        assert affected == 1
        assert _amount(db, articles.huefte, customers.lamm) == Decimal("0.25")

    def test_without_criteria_all_customers(self, db, resolver, actors, articles, customers):
        assert resolver.apply_mass_surcharge(actors.verkauf, articles.huefte.id, Decimal("0.05")) == 3

    def test_overwrites_existing_rows(self, db, resolver, actors, articles, customers):
        resolver.upsert_surcharge(actors.verkauf, articles.huefte.id, customers.huber.id, Decimal("1.00"))
        resolver.apply_mass_surcharge(actors.verkauf, articles.huefte.id, Decimal("0.40"), region="Süd")
        db.commit()
        assert _count(db) == 2
        assert _amount(db, articles.huefte, customers.huber) == Decimal("0.40")

    def test_unknown_article_writes_nothing(self, db, resolver, actors, customers):
        with pytest.raises(NotFoundError):
            resolver.apply_mass_surcharge(actors.verkauf, uuid4(), Decimal("0.40"))
        assert _count(db) == 0


class TestBulkEditByCustomer:
    def test_sub_lowers_every_matched_row(self, db, resolver, actors, articles, customers):
        """Test: sub 0,10 verringert jede Zeile der Auswahl um genau 0,10"""
        resolver.upsert_surcharge(actors.verkauf, articles.huefte.id, customers.huber.id, Decimal("0.50"))
        resolver.upsert_surcharge(actors.verkauf, articles.kalb.id, customers.huber.id, Decimal("1.00"))
        resolver.upsert_surcharge(actors.verkauf, articles.kotelett.id, customers.huber.id, Decimal("0.30"))
        db.commit()

        affected = resolver.bulk_edit_by_customer(
            actors.verkauf, customers.huber.id, BulkMode.SUB, Decimal("0.10"), category="Rind"
        )
        db.commit()

        assert affected == 2
        assert _amount(db, articles.huefte, customers.huber) == Decimal("0.40")
        assert _amount(db, articles.kalb, customers.huber) == Decimal("0.90")
        # Schwein nicht in der Auswahl
        assert _amount(db, articles.kotelett, customers.huber) == Decimal("0.30")

    def test_no_criteria_changes_nothing(self, db, resolver, actors, articles, customers):
        resolver.upsert_surcharge(actors.verkauf, articles.huefte.id, customers.huber.id, Decimal("0.50"))
        db.commit()

        with pytest.raises(ValidationError):
            resolver.bulk_edit_by_customer(actors.verkauf, customers.huber.id, BulkMode.SUB, Decimal("0.10"))
        db.rollback()

        assert _count(db) == 1
        assert _amount(db, articles.huefte, customers.huber) == Decimal("0.50")

    def test_missing_rows_start_at_zero(self, db, resolver, actors, articles, customers):
        resolver.bulk_edit_by_customer(
            actors.verkauf, customers.post.id, BulkMode.ADD, Decimal("0.15"),
            article_ids=[articles.kotelett.id],
        )
        db.commit()
        assert _amount(db, articles.kotelett, customers.post) == Decimal("0.15")

    def test_set_by_number_range(self, db, resolver, actors, articles, customers):
        affected = resolver.bulk_edit_by_customer(
            actors.verkauf, customers.post.id, BulkMode.SET, Decimal("0.75"),
            article_number_from="1001", article_number_to="1999",
        )
        db.commit()
        assert affected == 2
        assert _amount(db, articles.huefte, customers.post) == Decimal("0.75")
        assert _amount(db, articles.kalb, customers.post) == Decimal("0.75")
        assert _amount(db, articles.kotelett, customers.post) is None

    def test_mode_as_string(self, db, resolver, actors, articles, customers):
        resolver.bulk_edit_by_customer(
            actors.verkauf, customers.post.id, "set", Decimal("0.05"), category="Schwein",
        )
        db.commit()
        assert _amount(db, articles.kotelett, customers.post) == Decimal("0.05")

    def test_kunde_may_not_bulk_edit(self, resolver, articles, customers):
        kunde = Actor(id="k1", roles=["kunde"], customer_id=customers.huber.id)
        with pytest.raises(PermissionDenied):
            resolver.bulk_edit_by_customer(kunde, customers.huber.id, BulkMode.SET, Decimal("0"), category="Rind")
