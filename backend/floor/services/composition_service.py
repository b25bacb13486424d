import logging
import uuid

from django.db import transaction
from django.utils import timezone

from core_backend.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    translate_database_errors,
)
from floor.models import Table, TableCombination, TableCombinationMember

logger = logging.getLogger(__name__)


class TableCompositionService:
    """
    Combines adjacent tables under one order and splits them apart again.

    Both operations are all-or-nothing: every row they touch is locked in id
    order, and any failure rolls back every table and order change together.
    """

    COMBINABLE_STATUSES = (Table.TableStatus.AVAILABLE, Table.TableStatus.OCCUPIED)

    def __init__(self, table_service, order_service):
        self.table_service = table_service
        self.order_service = order_service

    @translate_database_errors
    def combine_tables(self, table_ids) -> TableCombination:
        """
        Seats every listed table on a single surviving order.

        The first listed table that already has an order becomes the primary
        and its order survives; the other orders are merged into it and voided.
        When none of the tables is seated a new dine-in order is opened on the
        first table.

        Raises:
            ValidationError: fewer than two distinct tables, or tables from
                different floor plans or sections
            NotFoundError: a table does not exist
            ConflictError: a table is reserved, dirty, being cleaned or already
                part of an active combination
        """
        try:
            table_ids = [str(uuid.UUID(str(table_id))) for table_id in table_ids]
        except ValueError:
            raise ValidationError("Invalid table id", details={"tables": [str(t) for t in table_ids]})
        if len(set(table_ids)) != len(table_ids):
            raise ValidationError("A table cannot be combined with itself", details={"tables": table_ids})
        if len(table_ids) < 2:
            raise ValidationError("At least two tables are required to combine", details={"tables": table_ids})

        with transaction.atomic():
            locked = {
                str(table.id): table
                for table in Table.objects.select_for_update().filter(id__in=table_ids).order_by("id")
            }
            missing = [table_id for table_id in table_ids if table_id not in locked]
            if missing:
                raise NotFoundError("Table", missing[0])
            tables = [locked[table_id] for table_id in table_ids]

            if len({table.floor_plan_id for table in tables}) > 1:
                raise ValidationError("Tables must be on the same floor plan to combine")
            if len({table.section or "" for table in tables}) > 1:
                raise ValidationError("Tables must be in the same section to combine")

            self._check_combinable(tables)

            orders = []
            for table in tables:
                if table.current_order_id and table.current_order_id not in [o.id for o in orders]:
                    orders.append(table.current_order)
            orders = self.order_service.lock_orders(orders)

            if orders:
                survivor = orders[0]
                primary = next(table for table in tables if table.current_order_id == survivor.id)
            else:
                primary = tables[0]
                survivor = self.order_service.open_order_for_table(primary)

            for merged in orders[1:]:
                self.order_service.absorb_order(survivor, merged)

            combination = TableCombination.objects.create(
                floor_plan_id=primary.floor_plan_id,
                order=survivor,
                primary_table=primary,
            )
            TableCombinationMember.objects.bulk_create([
                TableCombinationMember(combination=combination, table=table)
                for table in tables
            ])

            for table in tables:
                self.table_service.seat(table, survivor)

            self.order_service.finish_regrouping(survivor, reason="tables_combined")

            logger.info(
                f"Combined tables {', '.join(table.number for table in tables)} "
                f"under order #{survivor.order_number}"
            )
        return combination

    @translate_database_errors
    def split_table(self, table_id):
        """
        Dissolves the active combination ``table_id`` belongs to.

        Items go back to the table they were ordered at. The primary table
        keeps the surviving order; every other table that ordered something
        gets a new order holding its items, and tables that ordered nothing
        become AVAILABLE. Returns the member tables in their new state.

        Raises:
            NotFoundError: the table does not exist
            ConflictError: the table is not combined, or an item cannot be
                attributed to a member table
        """
        with transaction.atomic():
            table = self.table_service.get_table(table_id)

            membership = (
                TableCombinationMember.objects
                .filter(table=table, combination__is_active=True)
                .select_related("combination")
                .first()
            )
            if membership is None:
                raise ConflictError(
                    f"Table {table.number} is not part of a combination",
                    details={"table": str(table.id)},
                )

            combination = TableCombination.objects.select_for_update().get(id=membership.combination_id)
            if not combination.is_active:
                raise ConflictError("The combination was dissolved concurrently")

            member_ids = list(combination.members.values_list("table_id", flat=True))
            tables = list(Table.objects.select_for_update().filter(id__in=member_ids).order_by("id"))
            survivor = self.order_service.lock_orders([combination.order])[0]

            if survivor.is_terminal:
                raise ConflictError(
                    f"Order #{survivor.order_number} is already {survivor.status}",
                    details={"order": str(survivor.id)},
                )

            items_by_table = {table.id: [] for table in tables}
            unattributed = []
            for item in survivor.items.order_by("position", "created_at"):
                if item.origin_table_id in items_by_table:
                    items_by_table[item.origin_table_id].append(item)
                else:
                    unattributed.append(str(item.id))
            if unattributed:
                raise ConflictError(
                    "Some items cannot be attributed to a combined table",
                    details={"items": unattributed},
                )

            for member in tables:
                if member.id == combination.primary_table_id:
                    continue
                items = items_by_table[member.id]
                if items:
                    new_order = self.order_service.split_off_order(survivor, items, member)
                    self.table_service.seat(member, new_order)
                else:
                    self.table_service.vacate(member, Table.TableStatus.AVAILABLE)

            self.order_service.finish_regrouping(survivor, reason="table_split")

            combination.is_active = False
            combination.dissolved_at = timezone.now()
            combination.save(update_fields=["is_active", "dissolved_at"])

            logger.info(
                f"Split {len(tables)} tables combined under order #{survivor.order_number}"
            )
            tables = list(Table.objects.filter(id__in=member_ids).order_by("number"))
        return tables

    def _check_combinable(self, tables):
        for table in tables:
            if table.status not in self.COMBINABLE_STATUSES:
                raise ConflictError(
                    f"Table {table.number} is {table.status} and cannot be combined",
                    details={"table": str(table.id), "status": table.status},
                )
            if table.status == Table.TableStatus.OCCUPIED and (
                table.current_order is None or table.current_order.is_terminal
            ):
                raise ConflictError(
                    f"Table {table.number} is occupied without an active order",
                    details={"table": str(table.id)},
                )

        combined = (
            TableCombinationMember.objects
            .filter(table__in=tables, combination__is_active=True)
            .select_related("table")
            .first()
        )
        if combined is not None:
            raise ConflictError(
                f"Table {combined.table.number} is already part of a combination",
                details={"table": str(combined.table_id)},
            )
