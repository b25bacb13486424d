from datetime import timedelta
import dataclasses
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Count, F, Q
from django.utils import timezone

from core_backend.base import validate_input
from core_backend.config import get_coordinator_settings
from core_backend.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    translate_database_errors,
)
from floor.models import FloorPlan, Table, TableCombination, TableCombinationMember
from floor.serializers import TableCreateSerializer, TableUpdateSerializer
from floor.transitions import TABLE_TRANSITIONS
from orders.models import Order
from realtime.events import TablePositionChanged, TableStatusChanged

logger = logging.getLogger(__name__)

GEOMETRY_FIELDS = ("x", "y", "width", "height")
# Pseudo-status announced to subscribers when a table is removed from the plan
DELETED_STATUS = "DELETED"


class TableService:
    """Owns table status transitions and the table CRUD invariants."""

    def __init__(self, broadcaster):
        self.broadcaster = broadcaster

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_table(self, table_id) -> Table:
        """
        Returns the table with ``active_orders`` attached: the non-terminal
        orders opened at it plus the order it is seated on, oldest first.
        """
        try:
            table = Table.objects.select_related("floor_plan", "current_order").get(id=table_id)
        except (Table.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError("Table", table_id)

        table.active_orders = list(
            Order.objects.filter(
                Q(table=table) | Q(id=table.current_order_id),
                status__in=Order.ACTIVE_STATUSES,
            ).order_by("created_at")
        )
        return table

    def lock_table(self, table_id) -> Table:
        """Row-locks a table until the surrounding transaction ends."""
        try:
            return Table.objects.select_for_update().get(id=table_id)
        except (Table.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError("Table", table_id)

    def lock_tables_for_order(self, order_id):
        """
        Row-locks every table seated on an order, in id order. Callers take
        these locks before the order row: tables first, then orders.
        """
        try:
            return list(
                Table.objects.select_for_update()
                .filter(current_order_id=getattr(order_id, "id", order_id))
                .order_by("id")
            )
        except (ValueError, DjangoValidationError):
            raise NotFoundError("Order", order_id)

    def get_floor_plan(self, floor_plan_id) -> FloorPlan:
        try:
            return FloorPlan.objects.get(id=floor_plan_id)
        except (FloorPlan.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError("FloorPlan", floor_plan_id)

    def list_tables(self, floor_plan_id):
        return list(Table.objects.filter(floor_plan_id=floor_plan_id).order_by("number"))

    def list_tables_by_status(self, floor_plan_id, status):
        return list(
            Table.objects.filter(floor_plan_id=floor_plan_id, status=status).order_by("number")
        )

    def find_tables_for_party(self, floor_plan_id, party_size):
        """Available tables that seat the party, smallest fitting table first."""
        if party_size < 1:
            raise ValidationError("Party size must be at least 1", details={"party_size": party_size})
        return list(
            Table.objects.filter(
                floor_plan_id=floor_plan_id,
                status=Table.TableStatus.AVAILABLE,
                capacity__gte=party_size,
                min_capacity__lte=party_size,
            ).order_by("capacity", "number")
        )

    def get_occupancy_stats(self, floor_plan_id):
        counts = Table.objects.filter(floor_plan_id=floor_plan_id).aggregate(
            total=Count("id"),
            occupied=Count("id", filter=Q(status=Table.TableStatus.OCCUPIED)),
            dirty=Count("id", filter=Q(status=Table.TableStatus.DIRTY)),
            available=Count("id", filter=Q(status=Table.TableStatus.AVAILABLE)),
        )
        total = counts["total"]
        counts["occupancy_rate"] = (counts["occupied"] / total) * 100 if total > 0 else 0
        return counts

    def get_average_turn_time(self, floor_plan_id, hours=24):
        """Mean minutes from order creation to completion on this floor plan, or None."""
        since = timezone.now() - timedelta(hours=hours)
        orders = Order.objects.filter(
            table__floor_plan_id=floor_plan_id,
            status=Order.OrderStatus.COMPLETED,
            completed_at__gte=since,
        ).values_list("created_at", "completed_at")

        durations = [
            (completed_at - created_at).total_seconds() / 60
            for created_at, completed_at in orders
            if completed_at is not None
        ]
        if not durations:
            return None
        return sum(durations) / len(durations)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @translate_database_errors
    def create_floor_plan(self, name, width=None, height=None) -> FloorPlan:
        config = get_coordinator_settings()
        floor_plan = FloorPlan.objects.create(
            name=name,
            width=width or config.default_floor_width,
            height=height or config.default_floor_height,
        )
        logger.info(f"Created floor plan {floor_plan.name} ({floor_plan.width}x{floor_plan.height})")
        return floor_plan

    @translate_database_errors
    def create_table(self, floor_plan_id, data) -> Table:
        """
        Creates an AVAILABLE table.

        Raises:
            ConflictError: the number is already used in this floor plan
            ValidationError: bad input or geometry outside the floor plan
        """
        attrs = validate_input(TableCreateSerializer, data)

        with transaction.atomic():
            floor_plan = self.get_floor_plan(floor_plan_id)

            if Table.objects.filter(floor_plan=floor_plan, number=attrs["number"]).exists():
                raise ConflictError(
                    f"Table {attrs['number']} already exists in this floor plan",
                    details={"number": attrs["number"]},
                )

            table = Table(floor_plan=floor_plan, status=Table.TableStatus.AVAILABLE, **attrs)
            self._check_bounds(floor_plan, table.x, table.y, table.width, table.height)
            table.save()

            logger.info(f"Created table {table.number} on floor plan {floor_plan.name}")
            self.broadcaster.publish(TableStatusChanged.for_table(table, previous_status=None))
        return table

    @translate_database_errors
    def update_table(self, table_id, data) -> Table:
        """
        Updates geometry, capacity, number or section. Never touches status or
        current_order. Geometry is last-write-wins: no status check is made and
        interleaved writes simply overwrite each other.
        """
        attrs = validate_input(TableUpdateSerializer, data)

        with transaction.atomic():
            table = self.get_table(table_id)

            capacity = attrs.get("capacity", table.capacity)
            min_capacity = attrs.get("min_capacity", table.min_capacity)
            if min_capacity > capacity:
                raise ValidationError(
                    "Minimum capacity cannot exceed capacity.",
                    details={"capacity": capacity, "min_capacity": min_capacity},
                )

            number = attrs.get("number")
            if number and number != table.number:
                clash = Table.objects.filter(floor_plan_id=table.floor_plan_id, number=number).exclude(id=table.id)
                if clash.exists():
                    raise ConflictError(
                        f"Table {number} already exists in this floor plan", details={"number": number}
                    )

            geometry_changed = any(field in attrs for field in GEOMETRY_FIELDS)
            if geometry_changed:
                self._check_bounds(
                    table.floor_plan,
                    attrs.get("x", table.x),
                    attrs.get("y", table.y),
                    attrs.get("width", table.width),
                    attrs.get("height", table.height),
                )

            if not attrs:
                return table

            Table.objects.filter(id=table.id).update(
                **attrs, sequence=F("sequence") + 1, updated_at=timezone.now()
            )
            table.refresh_from_db()

            if geometry_changed:
                self.broadcaster.publish(TablePositionChanged.for_table(table))
            else:
                self.broadcaster.publish(TableStatusChanged.for_table(table, previous_status=table.status))
        return table

    def assign_table_to_section(self, table_id, section) -> Table:
        return self.update_table(table_id, {"section": section})

    @translate_database_errors
    def delete_table(self, table_id):
        """
        Deletes a table.

        Raises:
            ConflictError: a non-terminal order references the table, or the
                table belongs to an active combination
        """
        with transaction.atomic():
            table = self.lock_table(table_id)

            if self._has_active_order(table):
                raise ConflictError(
                    f"Cannot delete table {table.number} with active orders",
                    details={"table": str(table.id)},
                )
            if TableCombinationMember.objects.filter(table=table, combination__is_active=True).exists():
                raise ConflictError(
                    f"Cannot delete table {table.number} while it is combined",
                    details={"table": str(table.id)},
                )

            # The deletion event carries the next sequence so subscribers order it last
            table.sequence += 1
            event = dataclasses.replace(
                TableStatusChanged.for_table(table, previous_status=table.status),
                status=DELETED_STATUS,
            )
            table.delete()

            logger.info(f"Deleted table {event.table['number']}")
            self.broadcaster.publish(event)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    @translate_database_errors
    def set_table_status(self, table_id, new_status, current_order=None, expected_status=None) -> Table:
        """
        Validated status transition.

        Args:
            current_order: order id to seat; required when new_status is OCCUPIED
            expected_status: the status the caller believes is current; a
                mismatch raises ConflictError without writing

        Raises:
            ValidationError: rule violation or illegal transition
            NotFoundError: the table or the order does not exist
            ConflictError: another actor changed the table concurrently
        """
        with transaction.atomic():
            return self.transition(table_id, new_status, current_order, expected_status)

    def transition(self, table_id, new_status, current_order=None, expected_status=None) -> Table:
        """Status transition inside the caller's transaction."""
        table = self.get_table(table_id)

        if expected_status is not None and table.status != expected_status:
            raise ConflictError(
                f"Table {table.number} is {table.status}, expected {expected_status}",
                details={"current": table.status, "expected": str(expected_status)},
            )

        if new_status == Table.TableStatus.OCCUPIED:
            if current_order is None:
                raise ValidationError("Cannot set table to OCCUPIED without an order")
            order = self._get_order(current_order)
            if order.is_terminal:
                raise ValidationError(
                    f"Cannot seat order #{order.order_number}: it is {order.status}"
                )
            if order.table_id not in (None, table.id):
                raise ValidationError(
                    f"Order #{order.order_number} belongs to another table"
                )
            if table.status == Table.TableStatus.OCCUPIED:
                if table.current_order_id == order.id:
                    return table
                raise ConflictError(
                    f"Table {table.number} is already occupied by another order",
                    details={"current_order": str(table.current_order_id)},
                )
        else:
            order = None
            if current_order is not None:
                raise ValidationError("Only an OCCUPIED table can carry an order")
            if self._has_active_order(table):
                raise ValidationError(
                    f"Cannot set table {table.number} to {new_status} while it has an active order"
                )
            if table.status == new_status:
                return table

        TABLE_TRANSITIONS.check(table.status, new_status)
        return self._write_status(table, new_status, order)

    def seat(self, table, order) -> Table:
        """
        Points a free or already-seated table at ``order``. Used by composite
        operations that re-home a table onto another order in their own
        transaction.
        """
        if table.status == Table.TableStatus.OCCUPIED:
            if table.current_order_id == order.id:
                return table
            return self._write_status(table, Table.TableStatus.OCCUPIED, order)

        TABLE_TRANSITIONS.check(table.status, Table.TableStatus.OCCUPIED)
        return self._write_status(table, Table.TableStatus.OCCUPIED, order)

    def vacate(self, table, new_status=Table.TableStatus.AVAILABLE) -> Table:
        """Detaches a table from its order without consulting the order's state."""
        TABLE_TRANSITIONS.check(table.status, new_status)
        return self._write_status(table, new_status, None)

    def release_tables_for_order(self, order):
        """
        Moves every table seated on a finished order to DIRTY and dissolves any
        combination built around it.
        """
        tables = list(
            Table.objects.select_for_update().filter(current_order=order).order_by("id")
        )
        for table in tables:
            self.vacate(table, Table.TableStatus.DIRTY)

        dissolved = TableCombination.objects.filter(order=order, is_active=True).update(
            is_active=False, dissolved_at=timezone.now()
        )
        if tables or dissolved:
            logger.info(
                f"Released {len(tables)} table(s) for order #{order.order_number}"
                f"{' and dissolved its combination' if dissolved else ''}"
            )
        return tables

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _write_status(self, table, new_status, order) -> Table:
        """Compare-and-swap on the status and seated order observed by the caller."""
        updated = Table.objects.filter(
            id=table.id,
            status=table.status,
            current_order_id=table.current_order_id,
        ).update(
            status=new_status,
            current_order=order,
            sequence=F("sequence") + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.warning(f"Concurrent modification of table {table.number} rejected")
            raise ConflictError(
                f"Table {table.number} was modified concurrently",
                details={"table": str(table.id)},
            )

        previous_status = table.status
        table.refresh_from_db()
        logger.info(f"Table {table.number}: {previous_status} -> {table.status}")
        self.broadcaster.publish(TableStatusChanged.for_table(table, previous_status))
        return table

    def _has_active_order(self, table) -> bool:
        return Order.objects.filter(
            Q(id=table.current_order_id) | Q(table=table),
            status__in=Order.ACTIVE_STATUSES,
        ).exists()

    def _get_order(self, order_id) -> Order:
        try:
            return Order.objects.get(id=getattr(order_id, "id", order_id))
        except (Order.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError("Order", order_id)

    def _check_bounds(self, floor_plan, x, y, width, height):
        if not floor_plan.contains(x, y, width, height):
            raise ValidationError(
                f"Table geometry ({x}, {y}, {width}x{height}) lies outside floor plan "
                f"{floor_plan.name} ({floor_plan.width}x{floor_plan.height})",
                details={"x": x, "y": y, "width": width, "height": height},
            )
