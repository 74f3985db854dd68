"""
ASGI config for the clinic project.

Wires HTTP (Django), the notification websocket and the background
notification worker channels.  Order matters: configure Django before
importing any Django-dependent modules.
"""
import os

# 1) Configure settings before any Django import
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "clinic.settings")

# 2) Ensure Django is fully set up (so models/auth work during imports)
import django  # noqa: E402
django.setup()  # noqa: E402

# 3) Now import ASGI/Channels components and app consumers
from django.conf import settings  # noqa: E402
from django.core.asgi import get_asgi_application  # noqa: E402
from channels.routing import ChannelNameRouter, ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.auth import AuthMiddlewareStack  # noqa: E402
from django.urls import path  # noqa: E402

from core.realtime.auth import JwtQueryAuthMiddleware  # noqa: E402
from core.realtime.consumers import NotificationStreamConsumer  # noqa: E402
from core.workers import NotificationWorker  # noqa: E402

# HTTP app (Django)
django_asgi_app = get_asgi_application()

# WS routes
websocket_urlpatterns = [
    path("ws/notifications/", NotificationStreamConsumer.as_asgi()),
]

# `runworker <queue>` channels
worker_channels = {
    settings.NOTIFICATIONS["QUEUE_NAME"]: NotificationWorker.as_asgi(),
    settings.NOTIFICATIONS["HIGH_PRIORITY_QUEUE"]: NotificationWorker.as_asgi(),
}

# ASGI entrypoint
application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": AuthMiddlewareStack(JwtQueryAuthMiddleware(URLRouter(websocket_urlpatterns))),
    "channel": ChannelNameRouter(worker_channels),
})
