"""Realtime Websocket Consumers Route"""

from django.urls import re_path

from .consumers import RealtimeConsumer
from .rooms import RoomRegistry

room_registry = RoomRegistry()

websocket_urlpatterns = [
    re_path(r"^ws/realtime/$", RealtimeConsumer.as_asgi(registry=room_registry)),
]
