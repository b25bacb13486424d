"""
Django settings for the floor coordinator backend.

All deployment-specific values are read from the environment so the same
module serves local development, the test suite and production.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-floor-coordinator-dev-key")

DEBUG = os.environ.get("DJANGO_DEBUG", "False").lower() in ("1", "true", "yes")

ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "core_backend",
    "channels",
    "menu",
    "floor",
    "orders",
    "realtime",
]

ASGI_APPLICATION = "core_backend.asgi.application"

# --- Database ---
DB_ENGINE = os.environ.get("DB_ENGINE", "django.db.backends.sqlite3")

if DB_ENGINE.endswith("sqlite3"):
    DATABASES = {
        "default": {
            "ENGINE": DB_ENGINE,
            "NAME": os.environ.get("DB_NAME", str(BASE_DIR / "db.sqlite3")),
            # BEGIN IMMEDIATE: concurrent writers queue on the database lock
            "OPTIONS": {"transaction_mode": "IMMEDIATE", "timeout": 20},
            # File-backed so threaded tests share one database across connections
            "TEST": {"NAME": str(BASE_DIR / "test_db.sqlite3")},
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": DB_ENGINE,
            "NAME": os.environ.get("DB_NAME", "floor_coordinator"),
            "USER": os.environ.get("DB_USER", ""),
            "PASSWORD": os.environ.get("DB_PASSWORD", ""),
            "HOST": os.environ.get("DB_HOST", "localhost"),
            "PORT": os.environ.get("DB_PORT", "5432"),
            # Bounded statement time so a stuck store surfaces as a retryable PersistenceError
            "OPTIONS": {"options": f"-c statement_timeout={os.environ.get('DB_STATEMENT_TIMEOUT_MS', '5000')}"},
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# --- Channels ---
REDIS_URL = os.environ.get("REDIS_URL")

if REDIS_URL:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels_redis.core.RedisChannelLayer",
            "CONFIG": {"hosts": [REDIS_URL]},
        }
    }
else:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels.layers.InMemoryChannelLayer",
        }
    }

# --- Django REST Framework ---
REST_FRAMEWORK = {
    "EXCEPTION_HANDLER": "core_backend.exceptions.coordinator_exception_handler",
    "COERCE_DECIMAL_TO_STRING": True,
}

# --- Internationalization ---
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# --- Floor coordinator ---
FLOOR_COORDINATOR = {
    "TAX_RATE": os.environ.get("FLOOR_TAX_RATE", "0.08"),
    "CURRENCY_PLACES": 2,
    "KITCHEN_CHANNEL": "kitchen",
    "DEFAULT_FLOOR_WIDTH": 1200,
    "DEFAULT_FLOOR_HEIGHT": 800,
    # Channel layer sends are retried with exponential backoff before an event is given up
    "DELIVERY_ATTEMPTS": int(os.environ.get("FLOOR_DELIVERY_ATTEMPTS", "3")),
    "DELIVERY_RETRY_DELAY": float(os.environ.get("FLOOR_DELIVERY_RETRY_DELAY", "0.05")),
}

# --- Logging ---
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "floor": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "orders": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "realtime": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "core_backend": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
