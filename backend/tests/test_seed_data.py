"""
Test für das Seed-Data Script
"""
import importlib.util
from pathlib import Path

from auftrag_core.models import Order, CustomerSurcharge
from auftrag_core.models.enums import OrderStatus

SEED_SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "seed_data.py"


def _load_seed_module():
    spec = importlib.util.spec_from_file_location("seed_data", SEED_SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_seed_creates_open_orders(db):
    counts = _load_seed_module().seed(db)
    db.commit()

    assert counts == {"customers": 4, "articles": 6, "surcharges": 2, "orders": 2}
    orders = db.query(Order).all()
    assert {o.status for o in orders} == {OrderStatus.OFFEN}
    assert all(o.total_weight > 0 for o in orders)
    assert db.query(CustomerSurcharge).count() == 2
