import uuid

from django.db import models
from django.utils.translation import gettext_lazy as _


class Course(models.TextChoices):
    APPETIZER = "APPETIZER", _("Appetizer")
    SALAD = "SALAD", _("Salad")
    SOUP = "SOUP", _("Soup")
    ENTREE = "ENTREE", _("Entree")
    SIDE = "SIDE", _("Side")
    DESSERT = "DESSERT", _("Dessert")
    BEVERAGE = "BEVERAGE", _("Beverage")


class MenuItem(models.Model):
    """
    A sellable dish. Only read by the order lifecycle: an item can be ordered
    while it is available and not 86'd.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    course = models.CharField(
        max_length=20, choices=Course.choices, default=Course.ENTREE
    )
    is_available = models.BooleanField(default=True)
    is_86d = models.BooleanField(
        default=False, help_text=_("Temporarily out of stock")
    )
    preparation_time = models.PositiveIntegerField(
        null=True, blank=True, help_text=_("Expected preparation time in minutes")
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.price})"

    @property
    def can_be_ordered(self):
        return self.is_available and not self.is_86d


class Modifier(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    is_available = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} (+{self.price})"
