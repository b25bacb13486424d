from typing import Iterable
import logging
import time

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

from core_backend.config import get_coordinator_settings
from realtime.events import RealtimeEvent
from realtime.topics import group_name

logger = logging.getLogger(__name__)


class EventBroadcaster:
    """
    Fans accepted state changes out to subscribed display clients.

    Publishing is deferred to ``transaction.on_commit`` so an event is only
    emitted after the mutation that produced it is durable, and never for a
    rolled-back one. Delivery is at-least-once: a failed send is retried with
    exponential backoff, so a subscriber may see the same (entity, sequence)
    twice and must drop the duplicate. Once the attempts are exhausted the
    failure is logged and the committed mutation is left untouched.
    """

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def publish(self, event: RealtimeEvent):
        logger.debug(f"Queueing {event.name} for {event.entity_type} {event.entity_id} seq={event.sequence}")
        transaction.on_commit(lambda: self._deliver(event))

    def publish_all(self, events: Iterable[RealtimeEvent]):
        for event in events:
            self.publish(event)

    def _deliver(self, event: RealtimeEvent):
        layer = self.channel_layer
        if layer is None:
            logger.warning("No channel layer available for real-time events")
            return

        message = event.to_message()
        for channel in event.channels:
            self._send_with_retry(layer, channel, event, message)

    def _send_with_retry(self, layer, channel, event, message) -> bool:
        config = get_coordinator_settings()
        attempts = config.delivery_attempts

        for attempt in range(attempts):
            try:
                async_to_sync(layer.group_send)(group_name(channel), message)
                return True
            except Exception as e:
                if attempt < attempts - 1:
                    wait_time = config.delivery_retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Delivering {event.name} for {event.entity_type} {event.entity_id} to {channel} "
                        f"failed, retrying in {wait_time:.2f}s (attempt {attempt + 1}/{attempts}): {e}"
                    )
                    if wait_time:
                        time.sleep(wait_time)
                else:
                    logger.error(
                        f"Error delivering {event.name} for {event.entity_type} {event.entity_id} "
                        f"to {channel} after {attempts} attempts: {e}"
                    )
        return False
