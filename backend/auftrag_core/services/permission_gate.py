"""
Berechtigungsprüfung: statische Rollen-Matrix plus Zuständigkeit und Sichtbarkeit
"""
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from auftrag_core.core.exceptions import PermissionDenied
from auftrag_core.models.enums import Role, KommissionierStatus, KontrollStatus
from auftrag_core.models.order import Order
from auftrag_core.schemas.actor import Actor


class Operation(str, Enum):
    """Operationen des Cores, die einer Rolle erlaubt sein können"""
    VIEW_ORDERS = "view_orders"
    CREATE_ORDER = "create_order"
    EDIT_POSITIONS = "edit_positions"
    CANCEL_ORDER = "cancel_order"
    CLAIM_PICKING = "claim_picking"
    COMPLETE_POSITION = "complete_position"
    COMPLETE_PICKING = "complete_picking"
    CLAIM_CONTROL = "claim_control"
    COMPLETE_CONTROL = "complete_control"
    OVERRIDE = "override"
    VIEW_PRICES = "view_prices"
    MANAGE_SURCHARGES = "manage_surcharges"


PICKING_OPERATIONS = {
    Operation.VIEW_ORDERS,
    Operation.CLAIM_PICKING,
    Operation.COMPLETE_POSITION,
    Operation.COMPLETE_PICKING,
}

CONTROL_OPERATIONS = {
    Operation.VIEW_ORDERS,
    Operation.CLAIM_CONTROL,
    Operation.COMPLETE_CONTROL,
}

PERMISSION_MATRIX: dict[Role, frozenset[Operation]] = {
    Role.ADMIN: frozenset(Operation),
    Role.VERKAUF: frozenset({
        Operation.VIEW_ORDERS,
        Operation.CREATE_ORDER,
        Operation.EDIT_POSITIONS,
        Operation.CANCEL_ORDER,
        Operation.VIEW_PRICES,
        Operation.MANAGE_SURCHARGES,
    }),
    Role.KOMMISSIONIERUNG: frozenset(PICKING_OPERATIONS),
    Role.KONTROLLE: frozenset(CONTROL_OPERATIONS),
    # Zerlegung läuft über einen eigenen Workflow
    Role.ZERLEGER: frozenset(),
    Role.KUNDE: frozenset({Operation.VIEW_ORDERS, Operation.VIEW_PRICES}),
}


class PermissionGate:
    """Prüft Rolle, Zuständigkeit und Sichtbarkeit eines Akteurs"""

    def __init__(self, matrix: Optional[dict[Role, frozenset[Operation]]] = None):
        self.matrix = matrix or PERMISSION_MATRIX

    def allowed(self, actor: Actor, operation: Operation) -> bool:
        return any(operation in self.matrix.get(role, frozenset()) for role in actor.roles)

    def authorize(self, actor: Actor, operation: Operation) -> None:
        if not self.allowed(actor, operation):
            raise PermissionDenied(f"Keine Berechtigung für '{operation.value}'")

    def require_admin(self, actor: Actor) -> None:
        if not actor.is_admin:
            raise PermissionDenied("Nur Administratoren dürfen diese Aktion ausführen")

    def ensure_owner(self, actor: Actor, claimant: Optional[str], what: str) -> None:
        """Nur der Übernehmende (oder ein Admin) darf weitermachen"""
        if actor.is_admin:
            return
        if claimant is None or claimant != actor.id:
            raise PermissionDenied(f"{what} wurde nicht von Ihnen übernommen")

    def customer_scope(self, actor: Actor) -> Optional[UUID]:
        """Kundenbindung für Kunden-Logins, None für Mitarbeiter"""
        if actor.has_role(Role.KUNDE) and not self._is_staff(actor):
            return actor.customer_id
        return None

    def ensure_customer_access(self, actor: Actor, customer_id: UUID) -> None:
        """Kunden dürfen nur ihre eigenen Daten lesen"""
        if self._is_staff(actor):
            return
        if not actor.has_role(Role.KUNDE) or actor.customer_id != customer_id:
            raise PermissionDenied("Zugriff nur auf eigene Kundendaten erlaubt")

    def can_view(self, actor: Actor, order: Order) -> bool:
        """
        Sichtbarkeit beim Lesen:
        - fertig kommissionierte Aufträge nur für Admin und Kontrolle
        - Aufträge in Kontrolle nur für den Kontrolleur und Admin
        - Kunden nur eigene Aufträge, dafür in jedem Status
        """
        if not self.allowed(actor, Operation.VIEW_ORDERS):
            return False
        if actor.is_admin:
            return True

        if not self._is_staff(actor):
            return actor.customer_id is not None and order.customer_id == actor.customer_id

        if order.kontrolliert_status == KontrollStatus.IN_KONTROLLE:
            return actor.has_role(Role.KONTROLLE) and order.kontrolliert_by == actor.id
        if order.kommissioniert_status == KommissionierStatus.FERTIG:
            return actor.has_role(Role.KONTROLLE)
        return True

    def ensure_visible(self, actor: Actor, order: Order) -> None:
        if not self.can_view(actor, order):
            raise PermissionDenied("Auftrag ist für Sie nicht sichtbar")

    def filter_visible(self, actor: Actor, orders: Iterable[Order]) -> list[Order]:
        return [o for o in orders if self.can_view(actor, o)]

    @staticmethod
    def _is_staff(actor: Actor) -> bool:
        return actor.has_role(Role.ADMIN, Role.VERKAUF, Role.KOMMISSIONIERUNG, Role.KONTROLLE)
