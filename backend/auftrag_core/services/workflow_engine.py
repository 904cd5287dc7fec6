"""
Workflow-Service für Aufträge: Erfassung, Kommissionierung und Kontrolle

Statusachsen je Auftrag:
- Kommissionierung: offen -> gestartet -> fertig
- Kontrolle: offen -> in Kontrolle -> geprüft (erst nach fertiger Kommissionierung)

Übernahmen laufen als bedingtes UPDATE direkt in der Datenbank, damit von
zwei gleichzeitigen Übernahmen genau eine gewinnt. Alle übrigen
Schreibzugriffe sind über die Versionsspalte des Auftrags abgesichert.
Die Services flushen nur, committet wird im API-Layer.
"""
import logging
from datetime import date
from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import select, update

from auftrag_core.core.clock import utcnow
from auftrag_core.core.exceptions import ValidationError, ConflictError, NotFoundError
from auftrag_core.database import flush_or_conflict
from auftrag_core.models.enums import OrderStatus, KommissionierStatus, KontrollStatus
from auftrag_core.models.order import Order, OrderPosition, OrderAuditLog
from auftrag_core.schemas.actor import Actor
from auftrag_core.schemas.order import PositionCreate, PositionUpdate, PositionPicking
from auftrag_core.services.permission_gate import PermissionGate, Operation
from auftrag_core.services.pricing_engine import PricingEngine
from auftrag_core.services.surcharge_resolver import SurchargeResolver

logger = logging.getLogger(__name__)

# Felder, die ein Admin direkt übersteuern darf
OVERRIDABLE_FIELDS = {
    "status": OrderStatus,
    "kommissioniert_status": KommissionierStatus,
    "kontrolliert_status": KontrollStatus,
    "kommissioniert_by": None,
    "kontrolliert_by": None,
    "total_pallets": None,
    "total_boxes": None,
}

REQUIRED_PICKING_FIELDS = ("picked_qty", "picked_unit", "gross_weight")


def _audit_value(value):
    """Enum/Decimal/None für das JSON-Audit-Log"""
    if value is None:
        return None
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, (int, str)):
        return value
    return str(value)


class WorkflowEngine:
    """Service für den Auftrags-Workflow"""

    def __init__(
        self,
        db: Session,
        pricing: Optional[PricingEngine] = None,
        gate: Optional[PermissionGate] = None,
        resolver: Optional[SurchargeResolver] = None,
    ):
        self.db = db
        self.pricing = pricing or PricingEngine()
        self.gate = gate or PermissionGate()
        self.resolver = resolver or SurchargeResolver(db, self.gate)

    # ========================================
    # LESEN
    # ========================================

    def get_order(self, order_id: UUID, actor: Actor) -> Order:
        self.gate.authorize(actor, Operation.VIEW_ORDERS)
        order = self._get_order(order_id)
        self.gate.ensure_visible(actor, order)
        return order

    def list_orders(
        self,
        actor: Actor,
        status: Optional[OrderStatus] = None,
        picking_status: Optional[KommissionierStatus] = None,
        control_status: Optional[KontrollStatus] = None,
        delivery_date: Optional[date] = None,
    ) -> list[Order]:
        """
        Aufträge nach Filtern, reduziert auf die für den Akteur sichtbaren.

        Reine Abfrage, das Aktualisierungsintervall bestimmt der Aufrufer.
        """
        self.gate.authorize(actor, Operation.VIEW_ORDERS)

        query = select(Order)
        if status:
            query = query.where(Order.status == status)
        if picking_status:
            query = query.where(Order.kommissioniert_status == picking_status)
        if control_status:
            query = query.where(Order.kontrolliert_status == control_status)
        if delivery_date:
            query = query.where(Order.delivery_date == delivery_date)

        scope = self.gate.customer_scope(actor)
        if scope is not None:
            query = query.where(Order.customer_id == scope)

        query = query.order_by(Order.delivery_date, Order.order_number)
        orders = self.db.execute(query).scalars().all()
        return self.gate.filter_visible(actor, orders)

    def get_audit_log(self, order_id: UUID, actor: Actor) -> list[OrderAuditLog]:
        self.gate.require_admin(actor)
        order = self._get_order(order_id)
        return list(order.audit_logs)

    # ========================================
    # ERFASSUNG (VERKAUF)
    # ========================================

    def create_order(
        self,
        actor: Actor,
        customer_id: UUID,
        positions: Optional[list[PositionCreate]] = None,
        delivery_date: Optional[date] = None,
        remarks: Optional[str] = None,
    ) -> Order:
        """
        Legt einen Auftrag im Status 'offen' an und bepreist alle Positionen.
        """
        self.gate.authorize(actor, Operation.CREATE_ORDER)
        self.resolver.customers.get_by_id(customer_id)

        order = Order(
            order_number=self._generate_order_number(),
            customer_id=customer_id,
            delivery_date=delivery_date,
            remarks=remarks,
            status=OrderStatus.OFFEN,
            kommissioniert_status=KommissionierStatus.OFFEN,
            kontrolliert_status=KontrollStatus.OFFEN,
            created_by=actor.id,
        )
        for idx, data in enumerate(positions or [], start=1):
            order.positions.append(self._build_position(order, idx, data))

        self.pricing.recompute_order_totals(order)
        self.db.add(order)
        self._flush()

        logger.info(
            f"Auftrag {order.order_number} angelegt von {actor.id} "
            f"({len(order.positions)} Positionen, {order.total_weight} kg, {order.total_price} EUR)"
        )
        return order

    def add_position(self, order_id: UUID, actor: Actor, data: PositionCreate) -> OrderPosition:
        self.gate.authorize(actor, Operation.EDIT_POSITIONS)
        order = self._get_order(order_id)
        self._ensure_positions_editable(order)

        next_index = max((p.position for p in order.positions), default=0) + 1
        position = self._build_position(order, next_index, data)
        order.positions.append(position)

        self._touch(order)
        self.pricing.recompute_order_totals(order)
        self._flush()
        logger.info(f"Position {next_index} zu Auftrag {order.order_number} hinzugefügt")
        return position

    def update_position(
        self, order_id: UUID, position_id: UUID, actor: Actor, data: PositionUpdate
    ) -> OrderPosition:
        """
        Ändert Menge, Einheit, Artikel oder Preis einer Position.
        Gewicht, Preis und Auftragssummen werden in derselben Transaktion neu berechnet.
        """
        self.gate.authorize(actor, Operation.EDIT_POSITIONS)
        order = self._get_order(order_id)
        self._ensure_positions_editable(order)
        position = self._get_position(order, position_id)

        changes = data.model_dump(exclude_unset=True)
        article_changed = changes.get("article_id") not in (None, position.article_id)
        article = self.resolver.articles.get_by_id(
            changes["article_id"] if article_changed else position.article_id
        )

        unit_price = changes.get("unit_price")
        if unit_price is None and article_changed:
            unit_price = self.resolver.resolve_effective_price(article, order.customer_id)
        ordered_qty = changes.get("ordered_qty") or position.ordered_qty
        unit = changes.get("unit") or position.unit

        # Einheit prüfen, bevor etwas an der Position geändert wird
        self.pricing.line_weight(ordered_qty, unit, article)

        position.article_id = article.id
        position.article = article
        position.ordered_qty = ordered_qty
        position.unit = unit
        if unit_price is not None:
            position.unit_price = unit_price
        for field in ("remark", "needs_disassembly", "needs_vacuum"):
            if field in changes and changes[field] is not None:
                setattr(position, field, changes[field])

        self.pricing.apply_line(position, article)
        self._touch(order)
        self.pricing.recompute_order_totals(order)
        self._flush()
        return position

    def remove_position(
        self, order_id: UUID, position_id: UUID, actor: Actor, reason: Optional[str] = None
    ) -> Order:
        """
        Entfernt eine Position. Bereits kommissionierte Positionen darf nur
        ein Admin entfernen, das wird im Audit-Log festgehalten.
        """
        self.gate.authorize(actor, Operation.EDIT_POSITIONS)
        order = self._get_order(order_id)
        self._ensure_positions_editable(order)
        position = self._get_position(order, position_id)

        if position.is_picked:
            self.gate.require_admin(actor)
            self._audit(
                order, actor, "POSITION_FORCE_DELETE",
                position_id=position.id,
                old_values={
                    "position": position.position,
                    "article_id": str(position.article_id),
                    "ordered_qty": _audit_value(position.ordered_qty),
                    "picked_qty": _audit_value(position.picked_qty),
                },
                reason=reason,
            )

        order.positions.remove(position)
        # Positionsnummern lückenlos halten
        for idx, remaining in enumerate(order.positions, start=1):
            remaining.position = idx

        self._touch(order)
        self.pricing.recompute_order_totals(order)
        self._flush()
        logger.info(f"Position entfernt aus Auftrag {order.order_number} durch {actor.id}")
        return order

    def mark_in_progress(self, order_id: UUID, actor: Actor) -> Order:
        """offen -> in Bearbeitung"""
        self.gate.authorize(actor, Operation.EDIT_POSITIONS)
        order = self._get_order(order_id)
        if order.status != OrderStatus.OFFEN:
            raise ConflictError(
                f"Auftrag hat Status '{order.status.value}', kann nicht in Bearbeitung gehen"
            )
        order.status = OrderStatus.IN_BEARBEITUNG
        self._flush()
        logger.info(f"Auftrag {order.order_number} in Bearbeitung")
        return order

    def cancel_order(self, order_id: UUID, actor: Actor, reason: Optional[str] = None) -> Order:
        """Storniert einen Auftrag, solange die Kommissionierung nicht begonnen hat"""
        self.gate.authorize(actor, Operation.CANCEL_ORDER)
        order = self._get_order(order_id)
        if order.status in (OrderStatus.ABGESCHLOSSEN, OrderStatus.STORNIERT):
            raise ConflictError(f"Auftrag ist bereits {order.status.value}")
        if order.kommissioniert_status != KommissionierStatus.OFFEN:
            raise ConflictError("Kommissionierung hat bereits begonnen, Stornierung nicht möglich")

        old_status = order.status
        order.status = OrderStatus.STORNIERT
        self._audit(
            order, actor, "CANCEL",
            old_values={"status": old_status.value},
            new_values={"status": order.status.value},
            reason=reason,
        )
        self._flush()
        logger.info(f"Auftrag {order.order_number} storniert von {actor.id}")
        return order

    # ========================================
    # KOMMISSIONIERUNG
    # ========================================

    def claim_picking(self, order_id: UUID, actor: Actor) -> Order:
        """
        Übernimmt die Kommissionierung per bedingtem UPDATE.

        Raises:
            ConflictError: bereits übernommen oder nicht mehr offen
        """
        self.gate.authorize(actor, Operation.CLAIM_PICKING)
        now = utcnow()

        result = self.db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.kommissioniert_by.is_(None),
                Order.kommissioniert_status == KommissionierStatus.OFFEN,
                Order.status.in_([OrderStatus.OFFEN, OrderStatus.IN_BEARBEITUNG]),
            )
            .values(
                kommissioniert_status=KommissionierStatus.GESTARTET,
                kommissioniert_by=actor.id,
                kommissioniert_start_time=now,
                updated_at=now,
                version=Order.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            order = self._reload(order_id)
            logger.warning(
                f"Übernahme Kommissionierung {order.order_number} durch {actor.id} abgelehnt "
                f"(Status={order.kommissioniert_status.value}, übernommen von={order.kommissioniert_by})"
            )
            if order.kommissioniert_by:
                raise ConflictError(
                    f"Kommissionierung wurde bereits von {order.kommissioniert_by} übernommen"
                )
            raise ConflictError(
                f"Kommissionierung kann nicht übernommen werden "
                f"(Status '{order.kommissioniert_status.value}', Auftrag '{order.status.value}')"
            )

        order = self._reload(order_id)
        if order.status == OrderStatus.OFFEN:
            order.status = OrderStatus.IN_BEARBEITUNG
            self._flush()

        logger.info(f"Kommissionierung {order.order_number} übernommen von {actor.id}")
        return order

    def complete_position(
        self, order_id: UUID, position_id: UUID, actor: Actor, fields: PositionPicking
    ) -> OrderPosition:
        """
        Erfasst die Kommissionier-Daten einer Position.

        Menge, Einheit und Bruttogewicht sind Pflicht. Schließt ein Admin
        ohne diese Angaben oder außerhalb der laufenden Kommissionierung ab,
        wird an force_complete_position delegiert.
        """
        self.gate.authorize(actor, Operation.COMPLETE_POSITION)
        order = self._get_order(order_id)
        position = self._get_position(order, position_id)

        if order.status == OrderStatus.STORNIERT:
            raise ConflictError("Auftrag ist storniert")

        running = order.kommissioniert_status == KommissionierStatus.GESTARTET
        missing = self._missing_picking_fields(fields)
        if actor.is_admin and (missing or not running):
            return self.force_complete_position(order_id, position_id, actor, fields)

        if not running:
            raise ConflictError(
                f"Kommissionierung ist '{order.kommissioniert_status.value}', nicht 'gestartet'"
            )
        self.gate.ensure_owner(actor, order.kommissioniert_by, "Die Kommissionierung")
        if missing:
            raise ValidationError(f"Pflichtfelder fehlen: {', '.join(missing)}")

        self._record_picking(position, fields)
        self._touch(order)
        self._flush()
        return position

    def force_complete_position(
        self,
        order_id: UUID,
        position_id: UUID,
        actor: Actor,
        fields: PositionPicking,
        reason: Optional[str] = None,
    ) -> OrderPosition:
        """Admin-Übersteuerung: Position ohne Pflichtfelder oder Übernahme abschließen"""
        self.gate.require_admin(actor)
        order = self._get_order(order_id)
        position = self._get_position(order, position_id)

        if order.status == OrderStatus.STORNIERT:
            raise ConflictError("Auftrag ist storniert")

        missing = self._missing_picking_fields(fields)
        self._record_picking(position, fields)
        self._audit(
            order, actor, "POSITION_FORCE_COMPLETE",
            position_id=position.id,
            old_values={"kommissioniert_status": order.kommissioniert_status.value},
            new_values={"missing_fields": missing, "picked_at": position.picked_at.isoformat()},
            reason=reason or fields.reason,
        )
        self._touch(order)
        self._flush()
        logger.info(
            f"Position {position.position} von {order.order_number} durch Admin {actor.id} "
            f"abgeschlossen (fehlend: {missing or '-'})"
        )
        return position

    def complete_picking(
        self, order_id: UUID, actor: Actor, total_pallets: Optional[int] = None
    ) -> Order:
        """
        Schließt die Kommissionierung ab. Alle Positionen müssen erfasst sein.

        Für einen Admin mit offenen Positionen wird an force_complete_picking
        delegiert.
        """
        self.gate.authorize(actor, Operation.COMPLETE_PICKING)
        order = self._get_order(order_id)

        if order.status == OrderStatus.STORNIERT:
            raise ConflictError("Auftrag ist storniert")
        if order.kommissioniert_status != KommissionierStatus.GESTARTET:
            raise ConflictError(
                f"Kommissionierung ist '{order.kommissioniert_status.value}', nicht 'gestartet'"
            )
        self.gate.ensure_owner(actor, order.kommissioniert_by, "Die Kommissionierung")

        if not order.all_positions_picked():
            if actor.is_admin:
                return self.force_complete_picking(
                    order_id, actor, total_pallets,
                    reason="Abschluss mit offenen Positionen",
                )
            open_positions = [p.position for p in order.positions if not p.is_picked]
            raise ValidationError(
                f"Nicht alle Positionen kommissioniert (offen: {', '.join(map(str, open_positions))})"
            )

        self._finish_picking(order, total_pallets)
        self._flush()
        logger.info(f"Kommissionierung {order.order_number} abgeschlossen von {actor.id}")
        return order

    def force_complete_picking(
        self,
        order_id: UUID,
        actor: Actor,
        total_pallets: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Order:
        """Admin-Übersteuerung: Abschluss ohne Prüfung der Positionen"""
        self.gate.require_admin(actor)
        order = self._get_order(order_id)

        if order.kommissioniert_status == KommissionierStatus.FERTIG:
            raise ConflictError("Kommissionierung ist bereits abgeschlossen")
        if order.status == OrderStatus.STORNIERT:
            raise ConflictError("Auftrag ist storniert")

        old_values = {
            "kommissioniert_status": order.kommissioniert_status.value,
            "kommissioniert_by": order.kommissioniert_by,
            "open_positions": [p.position for p in order.positions if not p.is_picked],
        }
        if order.kommissioniert_by is None:
            order.kommissioniert_by = actor.id
        if order.kommissioniert_start_time is None:
            order.kommissioniert_start_time = utcnow()
        if order.status == OrderStatus.OFFEN:
            order.status = OrderStatus.IN_BEARBEITUNG

        self._finish_picking(order, total_pallets)
        self._audit(
            order, actor, "PICKING_FORCE_COMPLETE",
            old_values=old_values,
            new_values={
                "kommissioniert_status": order.kommissioniert_status.value,
                "total_pallets": order.total_pallets,
            },
            reason=reason,
        )
        self._flush()
        logger.info(f"Kommissionierung {order.order_number} durch Admin {actor.id} erzwungen")
        return order

    # ========================================
    # KONTROLLE
    # ========================================

    def claim_control(self, order_id: UUID, actor: Actor) -> Order:
        """Übernimmt die Kontrolle eines fertig kommissionierten Auftrags"""
        self.gate.authorize(actor, Operation.CLAIM_CONTROL)
        now = utcnow()

        result = self.db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.kommissioniert_status == KommissionierStatus.FERTIG,
                Order.kontrolliert_by.is_(None),
                Order.kontrolliert_status == KontrollStatus.OFFEN,
                Order.status != OrderStatus.STORNIERT,
            )
            .values(
                kontrolliert_status=KontrollStatus.IN_KONTROLLE,
                kontrolliert_by=actor.id,
                updated_at=now,
                version=Order.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            order = self._reload(order_id)
            logger.warning(
                f"Übernahme Kontrolle {order.order_number} durch {actor.id} abgelehnt "
                f"(Kommissionierung={order.kommissioniert_status.value}, "
                f"Kontrolle={order.kontrolliert_status.value}, übernommen von={order.kontrolliert_by})"
            )
            if order.kommissioniert_status != KommissionierStatus.FERTIG:
                raise ConflictError("Kommissionierung ist noch nicht abgeschlossen")
            if order.kontrolliert_by:
                raise ConflictError(f"Kontrolle wurde bereits von {order.kontrolliert_by} übernommen")
            raise ConflictError(
                f"Kontrolle kann nicht übernommen werden (Status '{order.kontrolliert_status.value}')"
            )

        order = self._reload(order_id)
        logger.info(f"Kontrolle {order.order_number} übernommen von {actor.id}")
        return order

    def complete_control(self, order_id: UUID, actor: Actor) -> Order:
        """Schließt die Kontrolle ab, der Auftrag gilt danach als abgeschlossen"""
        self.gate.authorize(actor, Operation.COMPLETE_CONTROL)
        order = self._get_order(order_id)

        if order.status == OrderStatus.STORNIERT:
            raise ConflictError("Auftrag ist storniert")
        if order.kommissioniert_status != KommissionierStatus.FERTIG:
            raise ConflictError("Kommissionierung ist noch nicht abgeschlossen")
        if order.kontrolliert_status != KontrollStatus.IN_KONTROLLE:
            raise ConflictError(
                f"Kontrolle ist '{order.kontrolliert_status.value}', nicht 'in Kontrolle'"
            )
        self.gate.ensure_owner(actor, order.kontrolliert_by, "Die Kontrolle")

        order.kontrolliert_status = KontrollStatus.GEPRUEFT
        order.kontrolliert_time = utcnow()
        order.status = OrderStatus.ABGESCHLOSSEN
        self._flush()
        logger.info(f"Kontrolle {order.order_number} abgeschlossen von {actor.id}")
        return order

    # ========================================
    # ADMIN-ÜBERSTEUERUNG
    # ========================================

    def override_status(self, order_id: UUID, actor: Actor, changes: dict, reason: str) -> Order:
        """
        Direkte Änderung von Status- und Zuständigkeitsfeldern durch einen Admin.

        Darf Status auch zurücksetzen. Jede Änderung wird mit alten und neuen
        Werten protokolliert.
        """
        self.gate.require_admin(actor)
        if not reason or not reason.strip():
            raise ValidationError("Für eine Übersteuerung ist eine Begründung erforderlich")
        if not changes:
            raise ValidationError("Keine Änderungen angegeben")

        unknown = set(changes) - set(OVERRIDABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Felder nicht übersteuerbar: {', '.join(sorted(unknown))}")

        parsed = {}
        for field, value in changes.items():
            enum_cls = OVERRIDABLE_FIELDS[field]
            if enum_cls is not None:
                if value is None:
                    raise ValidationError(f"{field} darf nicht leer sein")
                try:
                    value = enum_cls(value)
                except ValueError:
                    raise ValidationError(f"Ungültiger Wert für {field}: {value!r}")
            parsed[field] = value

        order = self._get_order(order_id)
        old_values = {}
        new_values = {}
        for field, value in parsed.items():
            old_value = getattr(order, field)
            if old_value != value:
                old_values[field] = _audit_value(old_value)
                new_values[field] = _audit_value(value)
                setattr(order, field, value)

        if not new_values:
            return order

        self._audit(
            order, actor, "STATUS_OVERRIDE",
            old_values=old_values,
            new_values=new_values,
            reason=reason,
        )
        self._flush()
        logger.info(f"Admin {actor.id} übersteuert {order.order_number}: {new_values} ({reason})")
        return order

    # ========================================
    # HILFSFUNKTIONEN
    # ========================================

    def _get_order(self, order_id: UUID) -> Order:
        order = self.db.get(Order, order_id)
        if not order:
            raise NotFoundError("Auftrag nicht gefunden")
        return order

    def _reload(self, order_id: UUID) -> Order:
        """Lädt den Auftrag nach einem bedingten UPDATE neu aus der Datenbank"""
        order = self.db.get(Order, order_id, populate_existing=True)
        if not order:
            raise NotFoundError("Auftrag nicht gefunden")
        return order

    @staticmethod
    def _get_position(order: Order, position_id: UUID) -> OrderPosition:
        for position in order.positions:
            if position.id == position_id:
                return position
        raise NotFoundError("Position nicht gefunden")

    @staticmethod
    def _ensure_positions_editable(order: Order) -> None:
        if not order.positions_editable():
            raise ConflictError(
                f"Positionen können nicht mehr geändert werden "
                f"(Auftrag '{order.status.value}', Kommissionierung '{order.kommissioniert_status.value}')"
            )

    def _build_position(self, order: Order, index: int, data: PositionCreate) -> OrderPosition:
        article = self.resolver.articles.get_by_id(data.article_id)
        unit_price = data.unit_price
        if unit_price is None:
            unit_price = self.resolver.resolve_effective_price(article, order.customer_id)

        position = OrderPosition(
            position=index,
            article_id=article.id,
            ordered_qty=data.ordered_qty,
            unit=data.unit,
            unit_price=unit_price,
            remark=data.remark,
            needs_disassembly=data.needs_disassembly,
            needs_vacuum=data.needs_vacuum,
            empty_goods=[],
            batch_numbers=[],
        )
        position.article = article
        self.pricing.apply_line(position, article)
        return position

    @staticmethod
    def _missing_picking_fields(fields: PositionPicking) -> list[str]:
        return [name for name in REQUIRED_PICKING_FIELDS if getattr(fields, name) in (None, "")]

    def _record_picking(self, position: OrderPosition, fields: PositionPicking) -> None:
        # Leergut vor jeder Änderung auflösen, damit ein Fehler nichts halb schreibt
        empty_goods = self.pricing.resolve_empty_goods(
            [item.model_dump() for item in fields.empty_goods]
        )
        position.picked_qty = fields.picked_qty
        position.picked_unit = fields.picked_unit
        position.gross_weight = fields.gross_weight
        position.empty_goods = empty_goods
        position.batch_numbers = list(fields.batch_numbers)
        position.picking_remark = fields.remark
        position.net_weight = self.pricing.net_weight(fields.gross_weight, empty_goods)
        position.picked_at = utcnow()

    def _finish_picking(self, order: Order, total_pallets: Optional[int]) -> None:
        pallets, boxes = self.pricing.pallet_and_box_totals(order.positions)
        order.kommissioniert_status = KommissionierStatus.FERTIG
        order.kommissioniert_end_time = utcnow()
        order.total_pallets = total_pallets if total_pallets is not None else pallets
        order.total_boxes = boxes
        # Nach (erneutem) Abschluss beginnt die Kontrolle von vorn
        order.kontrolliert_status = KontrollStatus.OFFEN
        order.kontrolliert_by = None
        order.kontrolliert_time = None

    def _generate_order_number(self) -> str:
        """Generiert sequenzielle Auftragsnummer im Format AU-YYYYMMDD-NNNN."""
        prefix = f"AU-{date.today().strftime('%Y%m%d')}"

        last_number = self.db.execute(
            select(Order.order_number)
            .where(Order.order_number.like(f"{prefix}-%"))
            .order_by(Order.order_number.desc())
            .limit(1)
        ).scalar_one_or_none()

        next_num = int(last_number.split("-")[-1]) + 1 if last_number else 1
        return f"{prefix}-{next_num:04d}"

    def _audit(
        self,
        order: Order,
        actor: Actor,
        action: str,
        position_id: Optional[UUID] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        reason: Optional[str] = None,
    ) -> OrderAuditLog:
        """Erstellt Audit-Log-Eintrag für den Auftrag."""
        entry = OrderAuditLog(
            position_id=position_id,
            user_id=actor.id,
            action=action,
            old_values=old_values,
            new_values=new_values,
            reason=reason,
        )
        order.audit_logs.append(entry)
        return entry

    @staticmethod
    def _touch(order: Order) -> None:
        # Positionsänderungen schreiben immer auch den Kopf, damit die Version greift
        order.updated_at = utcnow()

    def _flush(self) -> None:
        flush_or_conflict(self.db, "Auftrag")
