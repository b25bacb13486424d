import logging

from django.utils import timezone

from core_backend.exceptions import NotFoundError
from floor.models import FloorPlan
from floor.serializers import FloorPlanSerializer, TableSerializer
from orders.models import Order
from orders.serializers import OrderSerializer
from realtime.events import convert_complex_types_to_str
from realtime.topics import parse_channel

logger = logging.getLogger(__name__)


class SnapshotService:
    """
    Current state of a channel's active entities, sent to a client on join or
    reconnect instead of replaying history.
    """

    def validate_channel(self, channel):
        kind, floor_plan_id = parse_channel(channel)
        if kind == "floor" and not FloorPlan.objects.filter(id=floor_plan_id).exists():
            raise NotFoundError("FloorPlan", floor_plan_id)
        return kind, floor_plan_id

    def snapshot(self, channel):
        kind, floor_plan_id = self.validate_channel(channel)

        orders = (
            Order.objects.filter(status__in=Order.ACTIVE_STATUSES)
            .select_related("table")
            .prefetch_related("items__modifiers")
            .order_by("created_at", "order_number")
        )
        data = {
            "channel": channel,
            "generated_at": timezone.now().isoformat(),
            "floor_plan": None,
            "tables": [],
        }

        if kind == "floor":
            floor_plan = FloorPlan.objects.get(id=floor_plan_id)
            tables = floor_plan.tables.order_by("number")
            orders = orders.filter(seated_tables__floor_plan=floor_plan).distinct()
            data["floor_plan"] = FloorPlanSerializer(floor_plan).data
            data["tables"] = TableSerializer(tables, many=True).data

        data["orders"] = OrderSerializer(orders, many=True).data
        logger.debug(f"Built snapshot for {channel}: {len(data['tables'])} tables, {len(data['orders'])} orders")
        return convert_complex_types_to_str(data)
