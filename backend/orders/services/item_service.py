from typing import Optional
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import F, Max
from django.utils import timezone

from core_backend.exceptions import ConflictError, NotFoundError, ValidationError
from menu.models import MenuItem, Modifier
from orders.calculators import OrderCalculator
from orders.models import Order, OrderItem, OrderItemModifier
from orders.transitions import ITEM_TRANSITIONS
from realtime.events import ItemStatusChanged

logger = logging.getLogger(__name__)


class OrderItemService:
    """
    Item-level mechanics: building line items from menu selections, moving
    them between orders and walking them through the kitchen states.

    Methods here never change an order's status; the order service decides
    what an item change means for the order around it.
    """

    def __init__(self, broadcaster):
        self.broadcaster = broadcaster

    def get_item(self, item_id) -> OrderItem:
        try:
            return OrderItem.objects.select_related("order").get(id=item_id)
        except (OrderItem.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError("OrderItem", item_id)

    def create_items(self, order: Order, items_data, allowed_origins=None, default_origin=None):
        """
        Creates line items on ``order`` from validated item input.

        Menu prices and names are copied onto the item so later menu edits do
        not change what was sold.

        Args:
            allowed_origins: table ids an item may name as its origin table
            default_origin: origin table for items that name none

        Raises:
            NotFoundError: a menu item or modifier does not exist
            ValidationError: a menu item or modifier is unavailable, or an
                item names a table outside ``allowed_origins``
        """
        if not items_data:
            return []

        menu_items = MenuItem.objects.in_bulk({data["menu_item_id"] for data in items_data})
        modifier_ids = {mod["modifier_id"] for data in items_data for mod in data.get("modifiers", [])}
        modifiers = Modifier.objects.in_bulk(modifier_ids) if modifier_ids else {}
        allowed_origins = set(allowed_origins or ())

        position = (order.items.aggregate(last=Max("position"))["last"] or 0) + 1
        created = []

        for data in items_data:
            menu_item = menu_items.get(data["menu_item_id"])
            if menu_item is None:
                raise NotFoundError("MenuItem", data["menu_item_id"])
            if not menu_item.can_be_ordered:
                raise ValidationError(
                    f"'{menu_item.name}' is not available",
                    details={"menu_item": str(menu_item.id)},
                )

            selected = []
            for mod in data.get("modifiers", []):
                modifier = modifiers.get(mod["modifier_id"])
                if modifier is None:
                    raise NotFoundError("Modifier", mod["modifier_id"])
                if not modifier.is_available:
                    raise ValidationError(
                        f"Modifier '{modifier.name}' is not available",
                        details={"modifier": str(modifier.id)},
                    )
                selected.append((modifier, mod.get("quantity", 1)))

            origin_id = data.get("table_id")
            if origin_id is not None and origin_id not in allowed_origins:
                raise ValidationError(
                    "Items can only be ordered at a table seated on this order",
                    details={"table_id": str(origin_id)},
                )

            quantity = data.get("quantity", 1)
            item = OrderItem.objects.create(
                order=order,
                menu_item=menu_item,
                name=menu_item.name,
                quantity=quantity,
                unit_price=menu_item.price,
                total=OrderCalculator.calculate_item_total(
                    menu_item.price, quantity, [(modifier.price, qty) for modifier, qty in selected]
                ),
                course=data.get("course") or menu_item.course,
                special_instructions=data.get("special_instructions"),
                seat_number=data.get("seat_number"),
                origin_table_id=origin_id if origin_id is not None else getattr(default_origin, "id", default_origin),
                position=position,
            )
            OrderItemModifier.objects.bulk_create([
                OrderItemModifier(
                    order_item=item,
                    modifier=modifier,
                    name=modifier.name,
                    price=modifier.price,
                    quantity=qty,
                )
                for modifier, qty in selected
            ])
            position += 1
            created.append(item)

        logger.info(f"Added {len(created)} item(s) to order #{order.order_number}")
        return created

    def move_items(self, items, target: Order):
        """Re-homes items onto ``target``, appended after its existing items in their current order."""
        position = (target.items.aggregate(last=Max("position"))["last"] or 0) + 1
        now = timezone.now()
        for item in items:
            OrderItem.objects.filter(id=item.id).update(
                order=target,
                position=position,
                sequence=F("sequence") + 1,
                updated_at=now,
            )
            position += 1
        if items:
            logger.info(f"Moved {len(items)} item(s) to order #{target.order_number}")

    def transition_item(self, item: OrderItem, new_status, expected_status: Optional[str] = None) -> OrderItem:
        """
        Compare-and-swap status change for one item. Must run inside the
        transaction that holds the parent order's lock.

        Raises:
            ConflictError: the item is not in ``expected_status``, or was
                changed between read and write
            ValidationError: the transition is not allowed
        """
        previous_status = item.status
        if expected_status is not None and previous_status != expected_status:
            raise ConflictError(
                f"Item '{item.name}' is {previous_status}, expected {expected_status}",
                details={"current": previous_status, "expected": str(expected_status)},
            )
        ITEM_TRANSITIONS.check(previous_status, new_status)

        now = timezone.now()
        changes = {}
        if new_status in (OrderItem.ItemStatus.SENT_TO_KITCHEN, OrderItem.ItemStatus.PREPARING):
            if item.sent_to_kitchen_at is None:
                changes["sent_to_kitchen_at"] = now
        elif new_status == OrderItem.ItemStatus.READY:
            changes["completed_at"] = now

        updated = OrderItem.objects.filter(id=item.id, status=previous_status).update(
            status=new_status,
            sequence=F("sequence") + 1,
            updated_at=now,
            **changes,
        )
        if not updated:
            raise ConflictError(
                f"Item '{item.name}' was modified concurrently",
                details={"item": str(item.id)},
            )

        item.refresh_from_db()
        logger.info(f"Item '{item.name}' ({item.id}): {previous_status} -> {item.status}")
        self.broadcaster.publish(ItemStatusChanged.for_item(item, previous_status))
        return item
