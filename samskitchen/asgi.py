"""
ASGI config for samskitchen.

HTTP goes to Django; websockets go to the live order-tracking consumer.
"""

import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'samskitchen.settings')

from django.core.asgi import get_asgi_application
from channels.routing import ProtocolTypeRouter, URLRouter

django_asgi_app = get_asgi_application()

from marketplace.tracking.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter({
    'http': django_asgi_app,
    'websocket': URLRouter(websocket_urlpatterns),
})
