"""
SQLAlchemy Models für den Auftrag-Core
"""
from auftrag_core.models.enums import (
    OrderStatus,
    KommissionierStatus,
    KontrollStatus,
    Unit,
    Role,
    BulkMode,
)

# Stammdaten (nur lesend)
from auftrag_core.models.article import Article, Customer

# Aufträge
from auftrag_core.models.order import Order, OrderPosition, OrderAuditLog

# Kundenaufpreise
from auftrag_core.models.surcharge import CustomerSurcharge

__all__ = [
    # Enums
    "OrderStatus",
    "KommissionierStatus",
    "KontrollStatus",
    "Unit",
    "Role",
    "BulkMode",
    # Stammdaten
    "Article",
    "Customer",
    # Aufträge
    "Order",
    "OrderPosition",
    "OrderAuditLog",
    # Aufpreise
    "CustomerSurcharge",
]
