"""
Preis- und Gewichtsberechnung für Auftragspositionen

Gewicht je Position aus Menge und Einheit, Preis gewichtsbasiert:
    line_price = unit_price * line_weight
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from auftrag_core.config import get_settings
from auftrag_core.core.exceptions import ValidationError
from auftrag_core.models.article import Article
from auftrag_core.models.enums import Unit
from auftrag_core.models.order import Order, OrderPosition

logger = logging.getLogger(__name__)

WEIGHT_QUANT = Decimal("0.001")
PRICE_QUANT = Decimal("0.01")
ZERO = Decimal("0")

# Tara-Gewichte (kg) für Leergut mit festem Gewicht
DEFAULT_TARE_WEIGHTS: dict[str, Decimal] = {
    "korb": Decimal("1.5"),
    "e1": Decimal("1.5"),
    "e2": Decimal("2.0"),
    "e6": Decimal("1.5"),
    "h1": Decimal("18.0"),
    "big box": Decimal("34.5"),
    "haken": Decimal("1.3"),
    "tüten": Decimal("0"),
}

# Leergut ohne festes Gewicht, muss bei der Erfassung gewogen werden
MANUAL_TARE_KINDS = {"karton", "euro palette", "einwegpalette"}

PALLET_KINDS = {"h1", "einwegpalette", "euro palette", "europalette"}
BOX_KINDS = {"big box"}


@dataclass(frozen=True)
class LineAmounts:
    """Ergebnis der Positionsberechnung"""
    weight: Decimal
    price: Decimal


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize_empty_goods_kind(kind: Optional[str]) -> str:
    return (kind or "").strip().lower()


class PricingEngine:
    """Berechnet Positionsgewicht, Positionspreis und Auftragssummen"""

    def __init__(self, unknown_unit_policy: Optional[str] = None):
        self.unknown_unit_policy = unknown_unit_policy or get_settings().unknown_unit_policy

    def line_weight(self, ordered_qty, unit, article: Article) -> Decimal:
        """
        Gewicht in kg aus Menge und Einheit.
        Fehlende Umrechnungsfaktoren am Artikel zählen als 0.
        """
        qty = _dec(ordered_qty)
        parsed = Unit.parse(unit)

        if parsed is Unit.KG:
            weight = qty
        elif parsed is Unit.STUECK:
            weight = qty * _dec(article.weight_per_piece)
        elif parsed is Unit.KISTE:
            weight = qty * _dec(article.weight_per_crate)
        elif parsed is Unit.KARTON:
            weight = qty * _dec(article.weight_per_carton)
        else:
            if self.unknown_unit_policy == "error":
                raise ValidationError(f"Unbekannte Einheit: {unit!r}")
            logger.warning(f"Unbekannte Einheit {unit!r} für Artikel {article.id}, Gewicht = 0")
            weight = ZERO

        return weight.quantize(WEIGHT_QUANT, rounding=ROUND_HALF_UP)

    def compute_line(self, position: OrderPosition, article: Article) -> LineAmounts:
        """Berechnet Gewicht und Preis einer Position ohne sie zu verändern"""
        weight = self.line_weight(position.ordered_qty, position.unit, article)
        price = (_dec(position.unit_price) * weight).quantize(PRICE_QUANT, rounding=ROUND_HALF_UP)
        return LineAmounts(weight=weight, price=price)

    def apply_line(self, position: OrderPosition, article: Article) -> LineAmounts:
        """Berechnet und schreibt line_weight/line_price in die Position"""
        amounts = self.compute_line(position, article)
        position.line_weight = amounts.weight
        position.line_price = amounts.price
        return amounts

    def recompute_order_totals(self, order: Order) -> None:
        """
        Gesamtgewicht und Gesamtpreis aus den Positionen.
        Muss nach jeder Änderung an Menge, Einheit oder Artikel aufgerufen werden.
        """
        total_weight = sum((_dec(p.line_weight) for p in order.positions), ZERO)
        total_price = sum((_dec(p.line_price) for p in order.positions), ZERO)
        order.total_weight = total_weight.quantize(WEIGHT_QUANT)
        order.total_price = total_price.quantize(PRICE_QUANT)

    # ==================== KOMMISSIONIERUNG ====================

    @staticmethod
    def resolve_empty_goods(items: Iterable[dict]) -> list[dict]:
        """
        Vervollständigt Leergut-Einträge um Standard-Taragewichte.
        Karton und Paletten ohne festes Gewicht brauchen eine Gewichtsangabe.
        """
        resolved = []
        for item in items or []:
            kind = normalize_empty_goods_kind(item.get("kind"))
            if not kind:
                continue
            count = _dec(item.get("count"))
            weight = item.get("weight")
            if weight is None:
                if kind in DEFAULT_TARE_WEIGHTS:
                    weight = DEFAULT_TARE_WEIGHTS[kind]
                elif kind in MANUAL_TARE_KINDS:
                    raise ValidationError(f"Für Leergut '{kind}' muss ein Gewicht angegeben werden")
                else:
                    weight = ZERO
            resolved.append({"kind": kind, "count": float(count), "weight": float(_dec(weight))})
        return resolved

    @staticmethod
    def net_weight(gross_weight, empty_goods: Iterable[dict]) -> Optional[Decimal]:
        """Nettogewicht = Brutto minus Leergut (nie negativ)"""
        if gross_weight is None:
            return None
        tare = sum(
            (_dec(item.get("count")) * _dec(item.get("weight")) for item in empty_goods or []),
            ZERO,
        )
        net = _dec(gross_weight) - tare
        return max(net, ZERO).quantize(WEIGHT_QUANT, rounding=ROUND_HALF_UP)

    @staticmethod
    def pallet_and_box_totals(positions: Iterable[OrderPosition]) -> tuple[int, int]:
        """Summiert Paletten und Big Boxen aus dem Leergut aller Positionen"""
        pallets = ZERO
        boxes = ZERO
        for position in positions:
            for item in position.empty_goods or []:
                kind = normalize_empty_goods_kind(item.get("kind"))
                count = _dec(item.get("count"))
                if kind in PALLET_KINDS:
                    pallets += count
                if kind in BOX_KINDS:
                    boxes += count
        return int(pallets), int(boxes)
