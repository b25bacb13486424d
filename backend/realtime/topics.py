"""
Logical channels display clients subscribe to.

``kitchen`` carries every order and item change; ``floor_<floor_plan_id>``
carries table changes and the orders seated on that floor plan.
"""
import uuid

from core_backend.config import get_coordinator_settings
from core_backend.exceptions import ValidationError

FLOOR_CHANNEL_PREFIX = "floor_"
GROUP_PREFIX = "realtime_"


def kitchen_channel() -> str:
    return get_coordinator_settings().kitchen_channel


def floor_channel(floor_plan_id) -> str:
    return f"{FLOOR_CHANNEL_PREFIX}{floor_plan_id}"


def group_name(channel: str) -> str:
    """Channel layer group for a logical channel (ASCII alphanumerics, hyphens, underscores, periods)."""
    sanitized = ''.join(c if c.isalnum() or c in '-_.' else '_' for c in channel)
    return f"{GROUP_PREFIX}{sanitized}"


def parse_channel(channel: str):
    """
    Split a channel identifier into its kind and floor plan id.

    Returns ``("kitchen", None)`` or ``("floor", UUID)``.
    """
    if channel == kitchen_channel():
        return "kitchen", None
    if channel.startswith(FLOOR_CHANNEL_PREFIX):
        try:
            return "floor", uuid.UUID(channel[len(FLOOR_CHANNEL_PREFIX):])
        except ValueError:
            pass
    raise ValidationError(f"Unknown channel '{channel}'", details={"channel": channel})


def channels_for_table(table):
    return (floor_channel(table.floor_plan_id),)


def channels_for_order(order):
    channels = [kitchen_channel()]
    if order.table_id is not None:
        channels.append(floor_channel(order.table.floor_plan_id))
    return tuple(channels)
