from typing import Optional
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import F, Max, Q
from django.utils import timezone

from core_backend.base import validate_input
from core_backend.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    translate_database_errors,
)
from floor.models import Table, TableCombination
from orders.models import Order, OrderItem
from orders.serializers import AddItemsSerializer, OrderCreateSerializer
from orders.services.calculation_service import OrderCalculationService
from orders.services.item_service import OrderItemService
from orders.transitions import COMPLETABLE_ITEM_STATES, ORDER_TRANSITIONS, READY_ITEM_STATES
from realtime.events import OrderCreated, OrderUpdated

logger = logging.getLogger(__name__)


class OrderService:
    """
    Order lifecycle: creation, item changes and the order status machine.

    Seating and releasing tables goes through the table service inside the
    same transaction, so an order and the tables it occupies always change
    together or not at all.
    """

    def __init__(self, broadcaster, table_service, item_service=None):
        self.broadcaster = broadcaster
        self.table_service = table_service
        self.item_service = item_service or OrderItemService(broadcaster)
        self.calculator = OrderCalculationService

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id) -> Order:
        try:
            return (
                Order.objects.select_related("table")
                .prefetch_related("items__modifiers")
                .get(id=order_id)
            )
        except (Order.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError("Order", order_id)

    def list_orders_for_table(self, table_id, active_only=False):
        orders = Order.objects.filter(Q(table_id=table_id) | Q(seated_tables__id=table_id)).distinct()
        if active_only:
            orders = orders.filter(status__in=Order.ACTIVE_STATUSES)
        return list(orders.order_by("-created_at"))

    def list_active_orders(self):
        return list(
            Order.objects.filter(status__in=Order.ACTIVE_STATUSES)
            .select_related("table")
            .order_by("created_at", "order_number")
        )

    def get_order_total(self, order_id):
        return self.calculator.get_order_total(self.get_order(order_id))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @translate_database_errors
    def create_order(self, table_id=None, order_type=Order.OrderType.DINE_IN, items=None, notes=""):
        """
        Opens an order, creates its items and, for dine-in, seats the table.

        Raises:
            ValidationError: bad input, an unavailable menu item, or a table
                that cannot be seated from its current status
            NotFoundError: the table or a menu item does not exist
            ConflictError: the table is already occupied by another order
        """
        data = validate_input(
            OrderCreateSerializer,
            {"table_id": table_id, "order_type": order_type, "items": items or [], "notes": notes or ""},
        )

        with transaction.atomic():
            table = None
            if data.get("table_id"):
                table = self.table_service.get_table(data["table_id"])

            order = Order.objects.create(
                order_number=self._next_order_number(),
                table=table,
                order_type=data["order_type"],
                notes=data["notes"],
            )
            self.item_service.create_items(
                order,
                data["items"],
                allowed_origins={table.id} if table else (),
                default_origin=table,
            )
            self.calculator.recalculate_order_totals(order)

            order = self.get_order(order.id)
            self.broadcaster.publish(OrderCreated.for_order(order))

            if table is not None:
                self.table_service.transition(table.id, Table.TableStatus.OCCUPIED, current_order=order.id)

        logger.info(
            f"Created order #{order.order_number} ({order.order_type})"
            f"{f' at table {table.number}' if table else ''} with {len(data['items'])} item(s)"
        )
        return order

    @translate_database_errors
    def add_items_to_order(self, order_id, items) -> Order:
        """
        Appends items to a non-terminal order. A READY order goes back to
        IN_PROGRESS because the kitchen has new work.
        """
        data = validate_input(AddItemsSerializer, {"items": items})

        with transaction.atomic():
            order = self.lock_order(order_id)
            self._ensure_mutable(order)

            self.item_service.create_items(
                order,
                data["items"],
                allowed_origins=self._seated_table_ids(order),
                default_origin=order.table_id,
            )
            self.calculator.recalculate_order_totals(order)

            changes = {}
            if order.status == Order.OrderStatus.READY:
                changes["status"] = Order.OrderStatus.IN_PROGRESS
            order = self._write_order(order, reason="items_added", **changes)

        return order

    @translate_database_errors
    def update_order_item_status(self, item_id, new_status, expected_status: Optional[str] = None) -> OrderItem:
        """
        Moves one item through the kitchen states and advances the order when
        the item change implies it.
        """
        with transaction.atomic():
            item = self.item_service.get_item(item_id)
            order = self.lock_order(item.order_id)
            self._ensure_mutable(order)

            # Re-read under the order lock
            item = self.item_service.get_item(item_id)
            item = self.item_service.transition_item(item, new_status, expected_status)

            if item.status == OrderItem.ItemStatus.CANCELLED:
                self.calculator.recalculate_order_totals(order)
                order = self._write_order(order, reason="item_cancelled")
            self._advance_status(order)

        return item

    @translate_database_errors
    def send_order_to_kitchen(self, order_id) -> Order:
        """Sends every PENDING item to the kitchen."""
        with transaction.atomic():
            order = self.lock_order(order_id)
            self._ensure_mutable(order)

            pending = list(order.items.filter(status=OrderItem.ItemStatus.PENDING).order_by("position"))
            for item in pending:
                self.item_service.transition_item(item, OrderItem.ItemStatus.SENT_TO_KITCHEN)
            self._advance_status(order)

        logger.info(f"Sent {len(pending)} item(s) of order #{order.order_number} to the kitchen")
        return self.get_order(order.id)

    @translate_database_errors
    def update_order_status(self, order_id, new_status, expected_status: Optional[str] = None) -> Order:
        """
        Manual order status change.

        Raises:
            ConflictError: the order is not in ``expected_status`` or changed
                concurrently
            ValidationError: illegal transition, or items not ready for a
                READY / COMPLETED order
        """
        with transaction.atomic():
            order = self._lock_for_close(order_id)
            if expected_status is not None and order.status != expected_status:
                raise ConflictError(
                    f"Order #{order.order_number} is {order.status}, expected {expected_status}",
                    details={"current": order.status, "expected": str(expected_status)},
                )

            if new_status == Order.OrderStatus.COMPLETED:
                return self._complete(order)
            if new_status in (Order.OrderStatus.CANCELLED, Order.OrderStatus.VOID):
                return self._terminate(order, new_status)

            ORDER_TRANSITIONS.check(order.status, new_status)
            if new_status == Order.OrderStatus.READY:
                self._check_items(order, READY_ITEM_STATES, "ready")
            return self._write_order(order, reason="status_changed", status=new_status)

    @translate_database_errors
    def complete_order(self, order_id) -> Order:
        """
        Closes a READY order whose items have all been served or cancelled,
        moves its tables to DIRTY and dissolves any combination around it.
        """
        with transaction.atomic():
            return self._complete(self._lock_for_close(order_id))

    @translate_database_errors
    def cancel_order(self, order_id, reason="") -> Order:
        with transaction.atomic():
            return self._terminate(self._lock_for_close(order_id), Order.OrderStatus.CANCELLED, reason)

    @translate_database_errors
    def void_order(self, order_id, reason="") -> Order:
        with transaction.atomic():
            return self._terminate(self._lock_for_close(order_id), Order.OrderStatus.VOID, reason)

    # ------------------------------------------------------------------
    # Regrouping, used by table combine and split
    # ------------------------------------------------------------------

    def lock_order(self, order_id) -> Order:
        try:
            return Order.objects.select_for_update().get(id=getattr(order_id, "id", order_id))
        except (Order.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError("Order", order_id)

    def lock_orders(self, orders):
        """Locks orders in id order and returns fresh copies in the given order."""
        ids = [order.id for order in orders]
        locked = {order.id: order for order in Order.objects.select_for_update().filter(id__in=ids).order_by("id")}
        return [locked[order_id] for order_id in ids]

    def _lock_for_close(self, order_id) -> Order:
        """Locks the tables seated on the order, then the order itself."""
        self.table_service.lock_tables_for_order(order_id)
        return self.lock_order(order_id)

    def open_order_for_table(self, table) -> Order:
        order = Order.objects.create(
            order_number=self._next_order_number(),
            table=table,
            order_type=Order.OrderType.DINE_IN,
        )
        self.broadcaster.publish(OrderCreated.for_order(self.get_order(order.id)))
        logger.info(f"Opened order #{order.order_number} at table {table.number}")
        return order

    def absorb_order(self, survivor: Order, merged: Order):
        """
        Moves every item of ``merged`` onto ``survivor`` and voids ``merged``.
        Items keep the table they were ordered at so a later split can return
        them.
        """
        items = list(merged.items.order_by("position", "created_at"))
        OrderItem.objects.filter(id__in=[item.id for item in items], origin_table__isnull=True).update(
            origin_table_id=merged.table_id
        )
        self.item_service.move_items(items, survivor)

        self.calculator.recalculate_order_totals(merged)
        self._write_order(
            merged,
            reason="merged",
            status=Order.OrderStatus.VOID,
            merged_into=survivor,
            cancellation_reason=f"Merged into order #{survivor.order_number}",
            cancelled_at=timezone.now(),
        )
        logger.info(f"Merged order #{merged.order_number} into order #{survivor.order_number}")

    def split_off_order(self, survivor: Order, items, table) -> Order:
        """
        Moves ``items`` from ``survivor`` onto a new dine-in order at ``table``.
        The new order starts from the survivor's progress and advances further
        if its own items allow it.
        """
        order = Order.objects.create(
            order_number=self._next_order_number(),
            table=table,
            order_type=Order.OrderType.DINE_IN,
        )
        self.item_service.move_items(items, order)
        self.calculator.recalculate_order_totals(order)
        if survivor.status == Order.OrderStatus.IN_PROGRESS or any(
            item.status != OrderItem.ItemStatus.PENDING for item in items
        ):
            Order.objects.filter(id=order.id).update(status=Order.OrderStatus.IN_PROGRESS)
            order.status = Order.OrderStatus.IN_PROGRESS

        self.broadcaster.publish(OrderCreated.for_order(self.get_order(order.id)))
        self._advance_status(order)
        logger.info(
            f"Split {len(items)} item(s) from order #{survivor.order_number} "
            f"onto order #{order.order_number} at table {table.number}"
        )
        return order

    def finish_regrouping(self, order: Order, reason):
        """Recomputes totals after items moved, announces the order and advances it."""
        self.calculator.recalculate_order_totals(order)

        changes = {}
        if order.status == Order.OrderStatus.READY and order.items.exclude(status__in=READY_ITEM_STATES).exists():
            changes["status"] = Order.OrderStatus.IN_PROGRESS
        order = self._write_order(order, reason=reason, **changes)
        return self._advance_status(order)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _complete(self, order: Order) -> Order:
        ORDER_TRANSITIONS.check(order.status, Order.OrderStatus.COMPLETED)
        self._check_items(order, COMPLETABLE_ITEM_STATES, "served or cancelled")

        order = self._write_order(
            order, reason="completed", status=Order.OrderStatus.COMPLETED, completed_at=timezone.now()
        )
        self.table_service.release_tables_for_order(order)
        logger.info(f"Completed order #{order.order_number}, total {order.total}")
        return order

    def _terminate(self, order: Order, status, reason="") -> Order:
        ORDER_TRANSITIONS.check(order.status, status)

        open_items = order.items.exclude(status__in=OrderItem.TERMINAL_STATUSES).order_by("position")
        for item in open_items:
            self.item_service.transition_item(item, OrderItem.ItemStatus.CANCELLED)
        self.calculator.recalculate_order_totals(order)

        order = self._write_order(
            order,
            reason=str(status).lower(),
            status=status,
            cancellation_reason=reason or "",
            cancelled_at=timezone.now(),
        )
        self.table_service.release_tables_for_order(order)
        logger.info(f"Order #{order.order_number} {status}{f': {reason}' if reason else ''}")
        return order

    def _advance_status(self, order: Order) -> Order:
        """
        Moves an order forward as its items progress: OPEN becomes IN_PROGRESS
        once any live item leaves PENDING, and IN_PROGRESS becomes READY once
        every item is ready, served or cancelled.
        """
        statuses = list(order.items.values_list("status", flat=True))
        live = [status for status in statuses if status != OrderItem.ItemStatus.CANCELLED]

        if order.status == Order.OrderStatus.OPEN and any(
            status != OrderItem.ItemStatus.PENDING for status in live
        ):
            order = self._write_order(order, reason="status_changed", status=Order.OrderStatus.IN_PROGRESS)

        if (
            order.status == Order.OrderStatus.IN_PROGRESS
            and live
            and all(status in READY_ITEM_STATES for status in statuses)
        ):
            order = self._write_order(order, reason="status_changed", status=Order.OrderStatus.READY)
        return order

    def _write_order(self, order: Order, reason, **changes) -> Order:
        """
        Compare-and-swap on the observed status. Every accepted write bumps
        the order's sequence and announces the new state.
        """
        updated = Order.objects.filter(id=order.id, status=order.status).update(
            sequence=F("sequence") + 1,
            updated_at=timezone.now(),
            **changes,
        )
        if not updated:
            logger.warning(f"Concurrent modification of order #{order.order_number} rejected")
            raise ConflictError(
                f"Order #{order.order_number} was modified concurrently",
                details={"order": str(order.id)},
            )

        previous_status = order.status
        order = self.get_order(order.id)
        if order.status != previous_status:
            logger.info(f"Order #{order.order_number}: {previous_status} -> {order.status}")
        self.broadcaster.publish(OrderUpdated.for_order(order, reason))
        return order

    def _ensure_mutable(self, order: Order):
        if order.is_terminal:
            raise ValidationError(
                f"Order #{order.order_number} is {order.status} and can no longer change",
                details={"order": str(order.id), "status": order.status},
            )

    def _check_items(self, order: Order, allowed, label):
        blocking = [
            str(item_id)
            for item_id, status in order.items.values_list("id", "status")
            if status not in allowed
        ]
        if blocking:
            raise ValidationError(
                f"Order #{order.order_number} still has items that are not {label}",
                details={"items": blocking},
            )

    def _seated_table_ids(self, order: Order):
        ids = set(Table.objects.filter(current_order=order).values_list("id", flat=True))
        ids.update(
            TableCombination.objects.filter(order=order, is_active=True).values_list("members__table_id", flat=True)
        )
        if order.table_id:
            ids.add(order.table_id)
        return ids

    def _next_order_number(self) -> int:
        return (Order.objects.aggregate(last=Max("order_number"))["last"] or 0) + 1
