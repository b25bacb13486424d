import logging

from orders.calculators import OrderCalculator
from orders.models import Order

logger = logging.getLogger(__name__)


class OrderCalculationService:
    """Service for deriving and persisting order totals."""

    @staticmethod
    def recalculate_order_totals(order: Order) -> Order:
        """
        Recomputes subtotal, tax and total from the order's current items and
        stores them. The caller is expected to hold the order's row lock.
        """
        totals = OrderCalculator(order.items.all()).calculate_totals()
        Order.objects.filter(id=order.id).update(**totals)
        for field, value in totals.items():
            setattr(order, field, value)
        logger.debug(
            f"Order #{order.order_number} totals: subtotal={order.subtotal} tax={order.tax} total={order.total}"
        )
        return order

    @staticmethod
    def get_order_total(order: Order):
        """
        Returns the recomputed totals next to the stored ones. ``matches`` is
        False when the stored figures have drifted from the items.
        """
        computed = OrderCalculator(order.items.all()).calculate_totals()
        stored = {"subtotal": order.subtotal, "tax": order.tax, "total": order.total}
        matches = all(computed[key] == stored[key] for key in computed)
        if not matches:
            logger.warning(f"Order #{order.order_number} stored totals {stored} differ from computed {computed}")
        return {**computed, "stored": stored, "matches": matches}
