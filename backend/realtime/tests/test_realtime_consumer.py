"""
Real-time WebSocket Tests

Display clients join a channel, receive a snapshot, then receive events for
committed mutations.
"""
import pytest
from channels.db import database_sync_to_async
from channels.testing import WebsocketCommunicator

from core_backend.asgi import application
from core_backend.container import build_services
from core_backend.exceptions import ValidationError
from floor.models import Table
from realtime.topics import floor_channel


@pytest.mark.django_db(transaction=True)
@pytest.mark.asyncio
class TestRealtimeConsumer:

    async def test_kitchen_snapshot_on_connect(self, seated_order):
        """
        Scenario:
        - An open order exists
        - Kitchen display connects
        - Expected: connection accepted and a snapshot listing the order
        """
        communicator = WebsocketCommunicator(application, "/ws/realtime/kitchen/")
        connected, _ = await communicator.connect()
        assert connected

        snapshot = await communicator.receive_json_from()
        assert snapshot["type"] == "snapshot"
        assert snapshot["channel"] == "kitchen"
        assert [order["id"] for order in snapshot["orders"]] == [str(seated_order.id)]

        await communicator.disconnect()

    async def test_floor_snapshot_lists_tables(self, floor_plan, table, second_table):
        communicator = WebsocketCommunicator(application, f"/ws/realtime/{floor_channel(floor_plan.id)}/")
        connected, _ = await communicator.connect()
        assert connected

        snapshot = await communicator.receive_json_from()
        assert snapshot["floor_plan"]["id"] == str(floor_plan.id)
        assert [t["number"] for t in snapshot["tables"]] == ["T1", "T2"]

        await communicator.disconnect()

    async def test_unknown_floor_plan_rejected(self, db):
        communicator = WebsocketCommunicator(
            application, "/ws/realtime/floor_7f0c5b8e-0000-4000-8000-000000000000/"
        )
        connected, code = await communicator.connect()

        assert not connected
        assert code == 4004

    async def test_unknown_channel_rejected(self, db):
        communicator = WebsocketCommunicator(application, "/ws/realtime/bar/")
        connected, code = await communicator.connect()

        assert not connected
        assert code == 4004

    async def test_committed_change_reaches_floor_display(self, floor_plan, table):
        """
        Scenario:
        - Floor display connected and past its snapshot
        - Host reserves T1
        - Expected: one table:status-changed event with the new sequence
        """
        services = build_services()
        communicator = WebsocketCommunicator(application, f"/ws/realtime/{floor_channel(floor_plan.id)}/")
        connected, _ = await communicator.connect()
        assert connected
        await communicator.receive_json_from()

        await database_sync_to_async(services.tables.set_table_status)(table.id, Table.TableStatus.RESERVED)

        event = await communicator.receive_json_from(timeout=2)
        assert event["type"] == "event"
        assert event["event"] == "table:status-changed"
        assert event["entity_id"] == str(table.id)
        assert event["sequence"] == table.sequence + 1
        assert event["payload"]["status"] == "RESERVED"

        await communicator.disconnect()

    async def test_rejected_change_sends_nothing(self, floor_plan, table, seated_order):
        services = build_services()
        communicator = WebsocketCommunicator(application, f"/ws/realtime/{floor_channel(floor_plan.id)}/")
        await communicator.connect()
        await communicator.receive_json_from()

        with pytest.raises(ValidationError):
            await database_sync_to_async(services.tables.set_table_status)(table.id, Table.TableStatus.AVAILABLE)

        assert await communicator.receive_nothing(timeout=0.2)
        await communicator.disconnect()

    async def test_ping_and_resnapshot(self, db):
        communicator = WebsocketCommunicator(application, "/ws/realtime/kitchen/")
        await communicator.connect()
        await communicator.receive_json_from()

        await communicator.send_json_to({"action": "ping"})
        assert await communicator.receive_json_from() == {"type": "pong"}

        await communicator.send_json_to({"action": "snapshot"})
        assert (await communicator.receive_json_from())["type"] == "snapshot"

        await communicator.send_json_to({"action": "dance"})
        assert (await communicator.receive_json_from())["type"] == "error"

        await communicator.disconnect()
