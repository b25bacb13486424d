import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from core_backend.exceptions import NotFoundError, ValidationError
from realtime.snapshot import SnapshotService
from realtime.topics import group_name

logger = logging.getLogger(__name__)

CLOSE_UNKNOWN_CHANNEL = 4004


class RealtimeConsumer(AsyncJsonWebsocketConsumer):
    """WebSocket endpoint for kitchen and floor display clients."""

    snapshots = SnapshotService()

    async def connect(self):
        self.channel = self.scope["url_route"]["kwargs"]["channel"]

        try:
            await database_sync_to_async(self.snapshots.validate_channel)(self.channel)
        except (ValidationError, NotFoundError) as e:
            logger.warning(f"Rejecting real-time connection to {self.channel}: {e}")
            await self.close(code=CLOSE_UNKNOWN_CHANNEL)
            return

        self.group_name = group_name(self.channel)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        await self.send_snapshot()
        logger.info(f"Real-time client joined {self.channel}")

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            logger.info(f"Real-time client left {self.channel} (code={close_code})")

    async def receive_json(self, content, **kwargs):
        action = content.get("action")

        if action == "snapshot":
            await self.send_snapshot()
        elif action == "ping":
            await self.send_json({"type": "pong"})
        else:
            await self.send_json({"type": "error", "message": f"Unknown action: {action}"})

    async def send_snapshot(self):
        snapshot = await database_sync_to_async(self.snapshots.snapshot)(self.channel)
        await self.send_json({"type": "snapshot", **snapshot})

    async def realtime_event(self, message):
        """Handler for ``realtime.event`` messages sent by EventBroadcaster."""
        await self.send_json({
            "type": "event",
            "event": message["event"],
            "entity_type": message["entity_type"],
            "entity_id": message["entity_id"],
            "sequence": message["sequence"],
            "payload": message["payload"],
        })
