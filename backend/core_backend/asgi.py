import os

import django

# Set the Django settings module first
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "core_backend.settings")

# Setup Django explicitly before any models are imported
django.setup()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402

import realtime.routing  # noqa: E402

application = ProtocolTypeRouter(
    {
        "websocket": URLRouter(realtime.routing.websocket_urlpatterns),
    }
)
