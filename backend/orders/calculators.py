"""
Order financial calculator.

Totals are always derived from the items, never patched incrementally:

    item.total   = unit_price * quantity + sum(modifier.price * modifier.quantity)
    subtotal     = sum(item.total for items that are not CANCELLED)
    tax          = subtotal * TAX_RATE
    total        = subtotal + tax

Every amount is quantized to the currency's minor unit with ROUND_HALF_EVEN
(banker's rounding) so repeated recalculation never drifts.
"""

from decimal import Decimal, ROUND_HALF_EVEN
from typing import Dict, Iterable, Optional

from core_backend.config import get_coordinator_settings


def quantize(amount) -> Decimal:
    quantum = get_coordinator_settings().money_quantum
    return Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_EVEN)


class OrderCalculator:
    """
    Calculator for an order's subtotal, tax and total.

    Works on any iterable of objects with ``status`` and ``total``
    attributes, so it can price an order that has not been saved yet.
    """

    CANCELLED = "CANCELLED"

    def __init__(self, items: Iterable, tax_rate: Optional[Decimal] = None):
        self.items = list(items)
        self.tax_rate = tax_rate if tax_rate is not None else get_coordinator_settings().tax_rate

    @staticmethod
    def calculate_item_total(unit_price, quantity, modifiers=()) -> Decimal:
        """
        Args:
            modifiers: iterable of ``(price, quantity)`` pairs
        """
        base = Decimal(str(unit_price)) * quantity
        extras = sum((Decimal(str(price)) * qty for price, qty in modifiers), Decimal("0"))
        return quantize(base + extras)

    def calculate_subtotal(self) -> Decimal:
        return quantize(
            sum(
                (item.total for item in self.items if str(item.status) != self.CANCELLED),
                Decimal("0.00"),
            )
        )

    def calculate_tax(self, subtotal: Optional[Decimal] = None) -> Decimal:
        if subtotal is None:
            subtotal = self.calculate_subtotal()
        return quantize(subtotal * self.tax_rate)

    def calculate_totals(self) -> Dict[str, Decimal]:
        subtotal = self.calculate_subtotal()
        tax = self.calculate_tax(subtotal)
        return {
            "subtotal": subtotal,
            "tax": tax,
            "total": quantize(subtotal + tax),
        }
