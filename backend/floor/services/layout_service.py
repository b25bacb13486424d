import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from core_backend.base import validate_input
from core_backend.exceptions import (
    NotFoundError,
    ValidationError,
    translate_database_errors,
)
from floor.models import Table
from floor.serializers import PositionUpdateSerializer
from realtime.events import TablePositionChanged

logger = logging.getLogger(__name__)


class LayoutService:
    """Batch repositioning of tables on the floor plan editor."""

    def __init__(self, broadcaster):
        self.broadcaster = broadcaster

    @translate_database_errors
    def update_table_positions(self, updates):
        """
        Moves several tables at once.

        The batch is atomic: if any table is unknown or any new position falls
        outside its floor plan, no table moves. Positions are last-write-wins,
        so no status check is made. Returns the moved tables in request order.

        Raises:
            ValidationError: malformed input, a repeated table, or a position
                outside the floor plan bounds
            NotFoundError: a table does not exist
        """
        positions = validate_input(PositionUpdateSerializer, updates, many=True)
        if not positions:
            return []

        ids = [position["id"] for position in positions]
        if len(set(ids)) != len(ids):
            raise ValidationError("Each table may appear only once per batch", details={"tables": [str(i) for i in ids]})

        with transaction.atomic():
            tables = Table.objects.select_related("floor_plan").in_bulk(ids)
            for table_id in ids:
                if table_id not in tables:
                    raise NotFoundError("Table", table_id)

            errors = {}
            for index, position in enumerate(positions):
                table = tables[position["id"]]
                if not table.floor_plan.contains(position["x"], position["y"], table.width, table.height):
                    errors[index] = (
                        f"Table {table.number} at ({position['x']}, {position['y']}) lies outside "
                        f"floor plan {table.floor_plan.name}"
                    )
            if errors:
                raise ValidationError("Position update rejected", details={"positions": errors})

            now = timezone.now()
            for position in positions:
                Table.objects.filter(id=position["id"]).update(
                    x=position["x"],
                    y=position["y"],
                    sequence=F("sequence") + 1,
                    updated_at=now,
                )

            moved = Table.objects.in_bulk(ids)
            result = [moved[table_id] for table_id in ids]
            self.broadcaster.publish_all(TablePositionChanged.for_table(table) for table in result)

        logger.info(f"Moved {len(result)} table(s)")
        return result

    def move_table(self, table_id, x, y):
        return self.update_table_positions([{"id": table_id, "x": x, "y": y}])[0]
