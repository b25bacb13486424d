"""
Table Service Tests

Covers table CRUD, the table status machine and the seating rules that tie a
table to its current order.

Test Categories:
1. Create / Update / Delete
2. Status Transitions
3. Seating Rules
4. Concurrency
5. Queries
"""
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from core_backend.exceptions import ConflictError, NotFoundError, ValidationError
from floor.models import Table
from floor.services import TableService
from orders.models import Order
from realtime.topics import floor_channel, group_name


# ============================================================================
# CREATE / UPDATE / DELETE TESTS
# ============================================================================

@pytest.mark.django_db
class TestTableCrud:
    """Creating, editing and removing tables."""

    def test_create_table_starts_available(self, services, floor_plan):
        table = services.tables.create_table(floor_plan.id, {"number": "12", "capacity": 4, "x": 50, "y": 50})

        assert table.status == Table.TableStatus.AVAILABLE
        assert table.current_order is None
        assert table.sequence == 1

    def test_create_table_rejects_duplicate_number(self, services, floor_plan, table):
        """
        Scenario:
        - Table T1 exists on the floor plan
        - Create another table numbered T1
        - Expected: ConflictError, only one T1 remains
        """
        with pytest.raises(ConflictError):
            services.tables.create_table(floor_plan.id, {"number": "T1", "capacity": 2})

        assert Table.objects.filter(floor_plan=floor_plan, number="T1").count() == 1

    def test_same_number_allowed_on_another_floor_plan(self, services, patio, table):
        other = services.tables.create_table(patio.id, {"number": "T1", "capacity": 2})
        assert other.floor_plan_id == patio.id

    def test_create_table_validates_capacity(self, services, floor_plan):
        with pytest.raises(ValidationError) as exc_info:
            services.tables.create_table(floor_plan.id, {"number": "9", "capacity": 2, "min_capacity": 4})

        assert "min_capacity" in exc_info.value.details

    def test_create_table_outside_floor_plan_rejected(self, services, floor_plan):
        with pytest.raises(ValidationError):
            services.tables.create_table(floor_plan.id, {"number": "9", "capacity": 2, "x": 1150, "y": 10})

    def test_create_table_unknown_floor_plan(self, services, db):
        with pytest.raises(NotFoundError):
            services.tables.create_table("7f0c5b8e-0000-4000-8000-000000000000", {"number": "1", "capacity": 2})

    def test_update_table_changes_geometry_and_bumps_sequence(self, services, table):
        updated = services.tables.update_table(table.id, {"x": 300, "y": 120, "capacity": 6})

        assert (updated.x, updated.y, updated.capacity) == (300, 120, 6)
        assert updated.sequence == table.sequence + 1

    def test_update_table_cannot_touch_status(self, services, table):
        with pytest.raises(ValidationError):
            services.tables.update_table(table.id, {"status": "OCCUPIED"})

        table.refresh_from_db()
        assert table.status == Table.TableStatus.AVAILABLE

    def test_update_table_rejects_taken_number(self, services, table, second_table):
        with pytest.raises(ConflictError):
            services.tables.update_table(second_table.id, {"number": "T1"})

    def test_assign_table_to_section(self, services, table):
        updated = services.tables.assign_table_to_section(table.id, "Window")
        assert updated.section == "Window"

    def test_delete_free_table(self, services, table):
        services.tables.delete_table(table.id)
        assert not Table.objects.filter(id=table.id).exists()

    def test_delete_table_with_active_order_rejected(self, services, table, seated_order):
        """
        Scenario:
        - Table has an OPEN order
        - Delete the table
        - Expected: ConflictError, table still present
        """
        with pytest.raises(ConflictError):
            services.tables.delete_table(table.id)

        assert Table.objects.filter(id=table.id).exists()

    def test_delete_unknown_table(self, services, db):
        with pytest.raises(NotFoundError):
            services.tables.delete_table("7f0c5b8e-0000-4000-8000-000000000000")

    def test_delete_checks_orders_under_row_lock(self, services, table):
        with patch.object(services.tables, "lock_table", wraps=services.tables.lock_table) as lock:
            services.tables.delete_table(table.id)

        lock.assert_called_once_with(table.id)
        assert not Table.objects.filter(id=table.id).exists()

    def test_create_floor_plan_uses_configured_size(self, services, settings):
        settings.FLOOR_COORDINATOR = {**settings.FLOOR_COORDINATOR, "DEFAULT_FLOOR_WIDTH": 900}

        plan = services.tables.create_floor_plan("Terrace")

        assert (plan.width, plan.height) == (900, 800)


# ============================================================================
# STATUS TRANSITION TESTS
# ============================================================================

@pytest.mark.django_db
class TestTableTransitions:
    """The table status machine."""

    def test_available_to_reserved(self, services, table):
        table = services.tables.set_table_status(table.id, Table.TableStatus.RESERVED)
        assert table.status == Table.TableStatus.RESERVED

    def test_cleaning_cycle(self, services, table):
        services.tables.set_table_status(table.id, Table.TableStatus.DIRTY)
        services.tables.set_table_status(table.id, Table.TableStatus.CLEANING)
        table = services.tables.set_table_status(table.id, Table.TableStatus.AVAILABLE)

        assert table.status == Table.TableStatus.AVAILABLE

    def test_unknown_status_rejected(self, services, table):
        with pytest.raises(ValidationError):
            services.tables.set_table_status(table.id, "ON_FIRE")

    def test_same_status_is_a_no_op(self, services, table, channel_layer, committed):
        with committed():
            result = services.tables.set_table_status(table.id, Table.TableStatus.AVAILABLE)

        assert result.sequence == table.sequence
        assert channel_layer.sent == []

    def test_expected_status_mismatch_is_conflict(self, services, table):
        with pytest.raises(ConflictError):
            services.tables.set_table_status(
                table.id, Table.TableStatus.DIRTY, expected_status=Table.TableStatus.RESERVED
            )

        table.refresh_from_db()
        assert table.status == Table.TableStatus.AVAILABLE

    def test_transition_publishes_on_floor_channel(self, services, table, channel_layer, committed):
        with committed():
            services.tables.set_table_status(table.id, Table.TableStatus.RESERVED)

        events = channel_layer.events("table:status-changed", group=group_name(floor_channel(table.floor_plan_id)))
        assert len(events) == 1
        assert events[0]["payload"]["previous_status"] == "AVAILABLE"
        assert events[0]["payload"]["status"] == "RESERVED"
        assert events[0]["sequence"] == table.sequence + 1

    def test_rejected_transition_publishes_nothing(self, services, table, seated_order, channel_layer, committed):
        channel_layer.clear()
        with committed():
            with pytest.raises(ValidationError):
                services.tables.set_table_status(table.id, Table.TableStatus.AVAILABLE)

        assert channel_layer.sent == []


# ============================================================================
# SEATING RULES TESTS
# ============================================================================

@pytest.mark.django_db
class TestSeatingRules:
    """OCCUPIED if and only if the table holds an active order."""

    def test_occupied_requires_order(self, services, table):
        with pytest.raises(ValidationError):
            services.tables.set_table_status(table.id, Table.TableStatus.OCCUPIED)

    def test_occupied_with_unknown_order(self, services, table):
        with pytest.raises(NotFoundError):
            services.tables.set_table_status(
                table.id, Table.TableStatus.OCCUPIED, current_order="7f0c5b8e-0000-4000-8000-000000000000"
            )

    def test_seat_takeout_order_rejected_when_terminal(self, services, table, burger):
        order = services.orders.create_order(order_type="TAKEOUT", items=[{"menu_item_id": burger.id}])
        services.orders.cancel_order(order.id, reason="customer left")

        with pytest.raises(ValidationError):
            services.tables.set_table_status(table.id, Table.TableStatus.OCCUPIED, current_order=order.id)

    def test_occupied_table_with_active_order_cannot_be_freed(self, services, table, seated_order):
        """
        Scenario:
        - Table OCCUPIED with an OPEN order
        - Set the table AVAILABLE
        - Expected: ValidationError, table still OCCUPIED on that order
        """
        with pytest.raises(ValidationError):
            services.tables.set_table_status(table.id, Table.TableStatus.AVAILABLE)

        table.refresh_from_db()
        assert table.status == Table.TableStatus.OCCUPIED
        assert table.current_order_id == seated_order.id

    def test_second_order_cannot_take_occupied_table(self, services, table, seated_order, burger):
        with pytest.raises(ConflictError):
            services.orders.create_order(table_id=table.id, items=[{"menu_item_id": burger.id}])

        table.refresh_from_db()
        assert table.current_order_id == seated_order.id
        assert Order.objects.count() == 1

    def test_dirty_table_cannot_be_seated(self, services, table, burger):
        services.tables.set_table_status(table.id, Table.TableStatus.DIRTY)

        with pytest.raises(ValidationError):
            services.orders.create_order(table_id=table.id, items=[{"menu_item_id": burger.id}])

        assert Order.objects.count() == 0

    def test_reserved_table_can_be_seated(self, services, table, burger):
        services.tables.set_table_status(table.id, Table.TableStatus.RESERVED)

        order = services.orders.create_order(table_id=table.id, items=[{"menu_item_id": burger.id}])

        table.refresh_from_db()
        assert table.status == Table.TableStatus.OCCUPIED
        assert table.current_order_id == order.id


# ============================================================================
# CONCURRENCY TESTS
# ============================================================================

@pytest.mark.django_db
class TestTableCompareAndSwap:
    """Writes based on a stale read are rejected."""

    def test_stale_status_write_rejected(self, services, table):
        """
        Scenario:
        - Two actors read the table while AVAILABLE
        - The first moves it to RESERVED
        - The second writes DIRTY from its stale copy
        - Expected: the second write raises ConflictError
        """
        stale = Table.objects.get(id=table.id)
        services.tables.set_table_status(table.id, Table.TableStatus.RESERVED)

        with pytest.raises(ConflictError):
            services.tables.vacate(stale, Table.TableStatus.DIRTY)

        table.refresh_from_db()
        assert table.status == Table.TableStatus.RESERVED

    def test_sequence_increases_with_each_transition(self, services, table):
        first = services.tables.set_table_status(table.id, Table.TableStatus.RESERVED).sequence
        second = services.tables.set_table_status(table.id, Table.TableStatus.AVAILABLE).sequence

        assert table.sequence < first < second


# ============================================================================
# QUERY TESTS
# ============================================================================

@pytest.mark.django_db
class TestTableQueries:
    def test_list_tables_ordered_by_number(self, services, floor_plan, make_table):
        make_table("B", x=300)
        make_table("A", x=500)

        assert [t.number for t in services.tables.list_tables(floor_plan.id)] == ["A", "B"]

    def test_find_tables_for_party(self, services, floor_plan, make_table):
        make_table("big", capacity=8, min_capacity=5, x=100)
        make_table("four", capacity=4, x=300)
        make_table("two", capacity=2, x=500)
        taken = make_table("four-b", capacity=4, x=700)
        services.tables.set_table_status(taken.id, Table.TableStatus.RESERVED)

        matches = services.tables.find_tables_for_party(floor_plan.id, 3)

        assert [t.number for t in matches] == ["four"]

    def test_occupancy_stats(self, services, floor_plan, table, second_table, seated_order):
        stats = services.tables.get_occupancy_stats(floor_plan.id)

        assert stats["total"] == 2
        assert stats["occupied"] == 1
        assert stats["available"] == 1
        assert stats["occupancy_rate"] == 50

    def test_average_turn_time(self, services, floor_plan, table):
        now = timezone.now()
        Order.objects.create(
            order_number=1,
            table=table,
            status=Order.OrderStatus.COMPLETED,
            created_at=now - timedelta(minutes=50),
            completed_at=now - timedelta(minutes=10),
        )

        assert services.tables.get_average_turn_time(floor_plan.id) == pytest.approx(40, abs=0.1)

    def test_average_turn_time_without_orders(self, services, floor_plan):
        assert services.tables.get_average_turn_time(floor_plan.id) is None

    def test_table_service_is_usable_standalone(self, channel_layer, table):
        from realtime.broadcaster import EventBroadcaster

        service = TableService(EventBroadcaster(channel_layer))
        assert service.get_table(table.id).number == "T1"

    def test_get_table_includes_active_orders(self, services, table, second_table, seated_order):
        services.composition.combine_tables([table.id, second_table.id])

        assert [o.id for o in services.tables.get_table(table.id).active_orders] == [seated_order.id]
        assert [o.id for o in services.tables.get_table(second_table.id).active_orders] == [seated_order.id]

    def test_get_table_skips_closed_orders(self, services, table, seated_order):
        services.orders.cancel_order(seated_order.id)

        assert services.tables.get_table(table.id).active_orders == []
