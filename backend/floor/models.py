import uuid

from django.db import models
from django.utils.translation import gettext_lazy as _


class FloorPlan(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    width = models.PositiveIntegerField(default=1200)
    height = models.PositiveIntegerField(default=800)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name

    def contains(self, x, y, width, height):
        """True when the rectangle lies entirely inside the plan."""
        return x >= 0 and y >= 0 and x + width <= self.width and y + height <= self.height


class Table(models.Model):
    class TableStatus(models.TextChoices):
        AVAILABLE = "AVAILABLE", _("Available")
        OCCUPIED = "OCCUPIED", _("Occupied")
        RESERVED = "RESERVED", _("Reserved")
        DIRTY = "DIRTY", _("Dirty")
        CLEANING = "CLEANING", _("Cleaning")

    class TableShape(models.TextChoices):
        SQUARE = "SQUARE", _("Square")
        RECTANGLE = "RECTANGLE", _("Rectangle")
        CIRCLE = "CIRCLE", _("Circle")
        BOOTH = "BOOTH", _("Booth")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    floor_plan = models.ForeignKey(
        FloorPlan, on_delete=models.CASCADE, related_name="tables"
    )
    number = models.CharField(max_length=20)
    capacity = models.PositiveIntegerField()
    min_capacity = models.PositiveIntegerField(default=1)

    # --- Geometry ---
    x = models.FloatField(default=0)
    y = models.FloatField(default=0)
    width = models.FloatField(default=100)
    height = models.FloatField(default=100)
    shape = models.CharField(
        max_length=20, choices=TableShape.choices, default=TableShape.SQUARE
    )
    section = models.CharField(max_length=50, blank=True, null=True)

    status = models.CharField(
        max_length=20, choices=TableStatus.choices, default=TableStatus.AVAILABLE
    )
    # Weak reference: the table never owns the order's lifecycle
    current_order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="seated_tables",
    )
    sequence = models.PositiveBigIntegerField(
        default=1, help_text=_("Per-table event sequence, bumped on every accepted mutation")
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["number"]
        constraints = [
            models.UniqueConstraint(
                fields=["floor_plan", "number"], name="unique_table_number_per_floor_plan"
            ),
        ]
        indexes = [
            models.Index(fields=["floor_plan", "status"], name="table_plan_status_idx"),
        ]

    def __str__(self):
        return f"Table {self.number} ({self.status})"


class TableCombination(models.Model):
    """
    A group of tables sharing one surviving order. Items keep the table they
    were ordered at, so a split rebuilds per-table orders from the items.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    floor_plan = models.ForeignKey(
        FloorPlan, on_delete=models.CASCADE, related_name="combinations"
    )
    order = models.ForeignKey(
        "orders.Order", on_delete=models.PROTECT, related_name="table_combinations"
    )
    primary_table = models.ForeignKey(
        Table, on_delete=models.CASCADE, related_name="primary_combinations"
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    dissolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        state = "active" if self.is_active else "dissolved"
        return f"Combination {self.id} ({state})"


class TableCombinationMember(models.Model):
    combination = models.ForeignKey(
        TableCombination, on_delete=models.CASCADE, related_name="members"
    )
    table = models.ForeignKey(
        Table, on_delete=models.CASCADE, related_name="combination_memberships"
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["combination", "table"], name="unique_table_per_combination"
            ),
        ]

    def __str__(self):
        return f"Table {self.table.number} in {self.combination_id}"
