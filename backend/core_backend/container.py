"""
Wiring for the coordinator services.

Services receive their collaborators explicitly; ``build_services`` assembles
one consistent set around a single broadcaster.
"""
from dataclasses import dataclass

from floor.services import LayoutService, TableCompositionService, TableService
from orders.services import OrderService
from realtime.broadcaster import EventBroadcaster
from realtime.snapshot import SnapshotService


@dataclass
class Services:
    broadcaster: EventBroadcaster
    tables: TableService
    orders: OrderService
    composition: TableCompositionService
    layout: LayoutService
    snapshots: SnapshotService


def build_services(channel_layer=None) -> Services:
    """
    Args:
        channel_layer: layer to publish on; defaults to the configured
            CHANNEL_LAYERS["default"] resolved on first publish
    """
    broadcaster = EventBroadcaster(channel_layer)
    tables = TableService(broadcaster)
    orders = OrderService(broadcaster, tables)
    return Services(
        broadcaster=broadcaster,
        tables=tables,
        orders=orders,
        composition=TableCompositionService(tables, orders),
        layout=LayoutService(broadcaster),
        snapshots=SnapshotService(),
    )
