"""
Business Logic Services des Auftrag-Cores
"""
from auftrag_core.services.catalog import ArticleCatalog, CustomerDirectory
from auftrag_core.services.permission_gate import PermissionGate, Operation, PERMISSION_MATRIX
from auftrag_core.services.pricing_engine import PricingEngine, LineAmounts
from auftrag_core.services.surcharge_resolver import SurchargeResolver
from auftrag_core.services.workflow_engine import WorkflowEngine

__all__ = [
    "ArticleCatalog",
    "CustomerDirectory",
    "PermissionGate",
    "Operation",
    "PERMISSION_MATRIX",
    "PricingEngine",
    "LineAmounts",
    "SurchargeResolver",
    "WorkflowEngine",
]
