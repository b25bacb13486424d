"""
Closed set of real-time events, one variant per published event name.

Every event names the entity it describes, carries that entity's sequence
number and the full current state, and knows which logical channels it is
routed to. Subscribers deduplicate on ``(entity_id, sequence)``.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, ClassVar, Dict, Optional, Tuple
from uuid import UUID

from floor.serializers import TableSerializer
from orders.serializers import OrderItemSerializer, OrderSerializer
from realtime.topics import channels_for_order, channels_for_table

MESSAGE_TYPE = "realtime.event"


def convert_complex_types_to_str(data):
    """
    Recursively converts UUID and Decimal objects in a data structure to strings.
    """
    if isinstance(data, dict):
        return {k: convert_complex_types_to_str(v) for k, v in data.items()}
    elif isinstance(data, (list, tuple)):
        return [convert_complex_types_to_str(elem) for elem in data]
    elif isinstance(data, (UUID, Decimal)):
        return str(data)
    return data


@dataclass(frozen=True)
class RealtimeEvent:
    name: ClassVar[str]
    entity_type: ClassVar[str]

    entity_id: str
    sequence: int
    channels: Tuple[str, ...]

    def payload(self) -> Dict[str, Any]:
        raise NotImplementedError

    def to_message(self) -> Dict[str, Any]:
        """Channel layer message; ``type`` dispatches to ``RealtimeConsumer.realtime_event``."""
        return convert_complex_types_to_str({
            "type": MESSAGE_TYPE,
            "event": self.name,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "sequence": self.sequence,
            "payload": self.payload(),
        })


@dataclass(frozen=True)
class OrderCreated(RealtimeEvent):
    name: ClassVar[str] = "order:new"
    entity_type: ClassVar[str] = "order"

    order: Dict[str, Any]

    def payload(self):
        return {"order": self.order}

    @classmethod
    def for_order(cls, order):
        return cls(
            entity_id=str(order.id),
            sequence=order.sequence,
            channels=channels_for_order(order),
            order=OrderSerializer(order).data,
        )


@dataclass(frozen=True)
class OrderUpdated(RealtimeEvent):
    name: ClassVar[str] = "order:updated"
    entity_type: ClassVar[str] = "order"

    reason: str
    order: Dict[str, Any]

    def payload(self):
        return {"reason": self.reason, "order": self.order}

    @classmethod
    def for_order(cls, order, reason):
        return cls(
            entity_id=str(order.id),
            sequence=order.sequence,
            channels=channels_for_order(order),
            reason=reason,
            order=OrderSerializer(order).data,
        )


@dataclass(frozen=True)
class ItemStatusChanged(RealtimeEvent):
    name: ClassVar[str] = "item:status-changed"
    entity_type: ClassVar[str] = "order_item"

    order_id: str
    previous_status: str
    status: str
    item: Dict[str, Any]

    def payload(self):
        return {
            "order_id": self.order_id,
            "previous_status": self.previous_status,
            "status": self.status,
            "item": self.item,
        }

    @classmethod
    def for_item(cls, item, previous_status):
        return cls(
            entity_id=str(item.id),
            sequence=item.sequence,
            channels=channels_for_order(item.order),
            order_id=str(item.order_id),
            previous_status=str(previous_status),
            status=str(item.status),
            item=OrderItemSerializer(item).data,
        )


@dataclass(frozen=True)
class TableStatusChanged(RealtimeEvent):
    name: ClassVar[str] = "table:status-changed"
    entity_type: ClassVar[str] = "table"

    previous_status: Optional[str]
    status: str
    table: Dict[str, Any]

    def payload(self):
        return {"previous_status": self.previous_status, "status": self.status, "table": self.table}

    @classmethod
    def for_table(cls, table, previous_status):
        return cls(
            entity_id=str(table.id),
            sequence=table.sequence,
            channels=channels_for_table(table),
            previous_status=str(previous_status) if previous_status is not None else None,
            status=str(table.status),
            table=TableSerializer(table).data,
        )


@dataclass(frozen=True)
class TablePositionChanged(RealtimeEvent):
    name: ClassVar[str] = "table:position-changed"
    entity_type: ClassVar[str] = "table"

    x: float
    y: float
    table: Dict[str, Any]

    def payload(self):
        return {"x": self.x, "y": self.y, "table": self.table}

    @classmethod
    def for_table(cls, table):
        return cls(
            entity_id=str(table.id),
            sequence=table.sequence,
            channels=channels_for_table(table),
            x=table.x,
            y=table.y,
            table=TableSerializer(table).data,
        )


EVENT_TYPES = {
    event_class.name: event_class
    for event_class in (OrderCreated, OrderUpdated, ItemStatusChanged, TableStatusChanged, TablePositionChanged)
}
