"""
Orders services package.

- OrderService: order lifecycle (create, item changes, status machine, complete, cancel, void)
- OrderItemService: item creation, moves between orders and kitchen state changes
- OrderCalculationService: subtotal, tax and total derivation
"""

from .calculation_service import OrderCalculationService
from .item_service import OrderItemService
from .order_service import OrderService

__all__ = [
    "OrderService",
    "OrderItemService",
    "OrderCalculationService",
]
