"""
Typed access to the FLOOR_COORDINATOR block of the Django settings.

Values are re-read on every call so ``override_settings`` and the pytest-django
``settings`` fixture take effect immediately.
"""
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEFAULTS = {
    "TAX_RATE": "0.08",
    "CURRENCY_PLACES": 2,
    "KITCHEN_CHANNEL": "kitchen",
    "DEFAULT_FLOOR_WIDTH": 1200,
    "DEFAULT_FLOOR_HEIGHT": 800,
    "DELIVERY_ATTEMPTS": 3,
    "DELIVERY_RETRY_DELAY": 0.05,
}


@dataclass(frozen=True)
class CoordinatorSettings:
    tax_rate: Decimal
    currency_places: int
    kitchen_channel: str
    default_floor_width: int
    default_floor_height: int
    delivery_attempts: int
    delivery_retry_delay: float

    @property
    def money_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.currency_places)


def get_coordinator_settings() -> CoordinatorSettings:
    raw = {**DEFAULTS, **getattr(settings, "FLOOR_COORDINATOR", {})}

    tax_rate = Decimal(str(raw["TAX_RATE"]))
    if tax_rate < 0 or tax_rate >= 1:
        raise ImproperlyConfigured(
            f"FLOOR_COORDINATOR['TAX_RATE'] must be a fraction in [0, 1), got {tax_rate}"
        )

    delivery_attempts = int(raw["DELIVERY_ATTEMPTS"])
    if delivery_attempts < 1:
        raise ImproperlyConfigured(
            f"FLOOR_COORDINATOR['DELIVERY_ATTEMPTS'] must be at least 1, got {delivery_attempts}"
        )

    return CoordinatorSettings(
        tax_rate=tax_rate,
        currency_places=int(raw["CURRENCY_PLACES"]),
        kitchen_channel=str(raw["KITCHEN_CHANNEL"]),
        default_floor_width=int(raw["DEFAULT_FLOOR_WIDTH"]),
        default_floor_height=int(raw["DEFAULT_FLOOR_HEIGHT"]),
        delivery_attempts=delivery_attempts,
        delivery_retry_delay=float(raw["DELIVERY_RETRY_DELAY"]),
    )
