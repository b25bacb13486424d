"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
from decimal import Decimal

import pytest

from core_backend.container import build_services
from floor.models import FloorPlan, Table
from menu.models import MenuItem, Modifier


class RecordingChannelLayer:
    """
    Channel layer stand-in that records every group_send.

    Only the part of the layer API the broadcaster uses is implemented.
    """

    def __init__(self, fail_on=None, fail_times=0):
        self.sent = []
        self.attempts = 0
        self.fail_on = fail_on
        # Number of upcoming sends to reject before the layer recovers
        self.fail_times = fail_times

    async def group_send(self, group, message):
        self.attempts += 1
        if self.fail_on and self.fail_on in group:
            raise ConnectionError(f"layer unavailable for {group}")
        if self.fail_times > 0:
            self.fail_times -= 1
            raise ConnectionError(f"layer unavailable for {group}")
        self.sent.append((group, message))

    def events(self, name=None, group=None):
        """Delivered messages, optionally filtered by event name and group."""
        return [
            message
            for sent_group, message in self.sent
            if (name is None or message["event"] == name) and (group is None or sent_group == group)
        ]

    def clear(self):
        self.sent.clear()


# ============================================================================
# INFRASTRUCTURE FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def coordinator_settings(settings):
    """Pin the coordinator configuration so totals are deterministic."""
    settings.FLOOR_COORDINATOR = {
        "TAX_RATE": "0.08",
        "CURRENCY_PLACES": 2,
        "KITCHEN_CHANNEL": "kitchen",
        "DEFAULT_FLOOR_WIDTH": 1200,
        "DEFAULT_FLOOR_HEIGHT": 800,
        "DELIVERY_ATTEMPTS": 3,
        "DELIVERY_RETRY_DELAY": 0,
    }
    settings.CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}
    return settings.FLOOR_COORDINATOR


@pytest.fixture
def channel_layer():
    """Recording channel layer shared by the services under test."""
    return RecordingChannelLayer()


@pytest.fixture
def services(channel_layer):
    """Fully wired coordinator services publishing to the recording layer."""
    return build_services(channel_layer=channel_layer)


@pytest.fixture
def committed(django_capture_on_commit_callbacks):
    """
    Run a block and execute its on-commit callbacks, so published events
    reach the channel layer inside a test transaction.

    Usage:
        with committed():
            services.orders.create_order(...)
    """
    def _committed():
        return django_capture_on_commit_callbacks(execute=True)

    return _committed


# ============================================================================
# FLOOR FIXTURES
# ============================================================================

@pytest.fixture
def floor_plan(db):
    """Main dining room, 1200x800."""
    return FloorPlan.objects.create(name="Main Dining", width=1200, height=800)


@pytest.fixture
def patio(db):
    """Second floor plan for cross-plan checks."""
    return FloorPlan.objects.create(name="Patio", width=600, height=400)


@pytest.fixture
def make_table(floor_plan):
    """
    Factory for tables on the main floor plan.

    Usage:
        table = make_table("T1", capacity=4)
    """
    def _make_table(number, capacity=4, **kwargs):
        kwargs.setdefault("floor_plan", floor_plan)
        kwargs.setdefault("x", 10)
        kwargs.setdefault("y", 10)
        return Table.objects.create(number=number, capacity=capacity, **kwargs)

    return _make_table


@pytest.fixture
def table(make_table):
    return make_table("T1")


@pytest.fixture
def second_table(make_table):
    return make_table("T2", x=200)


# ============================================================================
# MENU FIXTURES
# ============================================================================

@pytest.fixture
def burger(db):
    return MenuItem.objects.create(name="Burger", price=Decimal("12.50"), course="ENTREE")


@pytest.fixture
def fries(db):
    return MenuItem.objects.create(name="Fries", price=Decimal("4.00"), course="SIDE")


@pytest.fixture
def soup(db):
    return MenuItem.objects.create(name="Soup", price=Decimal("6.00"), course="SOUP")


@pytest.fixture
def cheese(db):
    return Modifier.objects.create(name="Extra Cheese", price=Decimal("1.00"))


@pytest.fixture
def seated_order(services, table, burger, fries):
    """
    A dine-in order at ``table`` with a burger and fries.

    Subtotal 16.50, tax 1.32, total 17.82.
    """
    return services.orders.create_order(
        table_id=table.id,
        items=[
            {"menu_item_id": burger.id, "quantity": 1},
            {"menu_item_id": fries.id, "quantity": 1},
        ],
    )
