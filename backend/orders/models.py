import uuid

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from menu.models import Course


class Order(models.Model):
    class OrderStatus(models.TextChoices):
        OPEN = "OPEN", _("Open")
        IN_PROGRESS = "IN_PROGRESS", _("In Progress")
        READY = "READY", _("Ready")
        COMPLETED = "COMPLETED", _("Completed")
        CANCELLED = "CANCELLED", _("Cancelled")
        VOID = "VOID", _("Void")  # Nullified by a manager or merged away by a table combine

    class OrderType(models.TextChoices):
        DINE_IN = "DINE_IN", _("Dine In")
        TAKEOUT = "TAKEOUT", _("Takeout")
        DELIVERY = "DELIVERY", _("Delivery")
        CATERING = "CATERING", _("Catering")

    TERMINAL_STATUSES = frozenset(
        {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.VOID}
    )
    ACTIVE_STATUSES = frozenset(
        {OrderStatus.OPEN, OrderStatus.IN_PROGRESS, OrderStatus.READY}
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.PositiveIntegerField(unique=True, editable=False)
    table = models.ForeignKey(
        "floor.Table",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
        help_text=_("Absent for takeout and delivery orders"),
    )
    order_type = models.CharField(
        max_length=20, choices=OrderType.choices, default=OrderType.DINE_IN
    )
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.OPEN
    )

    # --- Derived financials, recomputed with every item mutation ---
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    notes = models.TextField(blank=True)
    cancellation_reason = models.TextField(blank=True)
    merged_into = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="merged_orders",
        help_text=_("Surviving order this one was folded into by a table combine"),
    )
    sequence = models.PositiveBigIntegerField(default=1)

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["order_number"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="order_status_created_idx"),
            models.Index(fields=["table", "status"], name="order_table_status_idx"),
        ]

    def __str__(self):
        return f"Order #{self.order_number} ({self.order_type}) - {self.status}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class OrderItem(models.Model):
    class ItemStatus(models.TextChoices):
        PENDING = "PENDING", _("Pending")
        SENT_TO_KITCHEN = "SENT_TO_KITCHEN", _("Sent to Kitchen")
        PREPARING = "PREPARING", _("Preparing")
        READY = "READY", _("Ready")
        SERVED = "SERVED", _("Served")
        CANCELLED = "CANCELLED", _("Cancelled")

    TERMINAL_STATUSES = frozenset({ItemStatus.SERVED, ItemStatus.CANCELLED})

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    menu_item = models.ForeignKey(
        "menu.MenuItem", on_delete=models.PROTECT, related_name="order_items"
    )
    name = models.CharField(max_length=200, help_text=_("Menu item name at the time of sale"))
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(
        max_length=20, choices=ItemStatus.choices, default=ItemStatus.PENDING
    )
    course = models.CharField(max_length=20, choices=Course.choices, default=Course.ENTREE)
    special_instructions = models.TextField(blank=True, null=True)
    seat_number = models.PositiveIntegerField(null=True, blank=True)
    # Table the item was ordered at; a split hands the item back to this table
    origin_table = models.ForeignKey(
        "floor.Table",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    position = models.PositiveIntegerField(default=0)
    sequence = models.PositiveBigIntegerField(default=1)

    sent_to_kitchen_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["position", "created_at"]
        indexes = [
            models.Index(fields=["order", "status"], name="item_order_status_idx"),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.name} in Order #{self.order.order_number}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class OrderItemModifier(models.Model):
    order_item = models.ForeignKey(
        OrderItem, on_delete=models.CASCADE, related_name="modifiers"
    )
    modifier = models.ForeignKey(
        "menu.Modifier",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)

    def __str__(self):
        return f"{self.name} ({self.price} x {self.quantity})"
