from django.urls import re_path

from .consumers import AlertsConsumer, UpdatesConsumer

websocket_urlpatterns = [
    re_path(r"^ws/updates/?$", UpdatesConsumer.as_asgi()),
    re_path(r"^ws/alerts/?$", AlertsConsumer.as_asgi()),
]
