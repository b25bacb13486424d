from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class CoreBackendConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core_backend"

    def ready(self):
        """
        Validate the FLOOR_COORDINATOR settings when Django starts up so a bad
        tax rate fails the boot instead of the first order.
        """
        from core_backend.config import get_coordinator_settings

        config = get_coordinator_settings()
        logger.debug(
            f"Floor coordinator configured: tax_rate={config.tax_rate} "
            f"kitchen_channel={config.kitchen_channel}"
        )
