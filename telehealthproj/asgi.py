# telehealthproj/asgi.py
import os
from channels.auth import AuthMiddlewareStack
from channels.routing import ProtocolTypeRouter, URLRouter
from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'telehealthproj.settings')

# Initializes settings and the app registry; consumers import models.
django_asgi_app = get_asgi_application()

import chat.routing
import videocalls.routing

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": AuthMiddlewareStack(
        URLRouter(
            videocalls.routing.websocket_urlpatterns
            + chat.routing.websocket_urlpatterns
        )
    ),
})
