from collections import deque

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from pydantic import ValidationError

from orderease.apps.realtime.broadcast import build_message, stamp
from orderease.apps.realtime.rooms import JoinRequest, RoomRegistry, relay_rooms
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

# a client sitting in several target rooms gets each event once
SEEN_EVENTS = 256


class RealtimeConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket for POS, kitchen, admin and customer clients. URL: /ws/realtime/

    Client -> server: {"event": "join", "data": {...}} then any relayed event.
    Server -> client: {"event": <name>, "data": <payload>}.
    """
    registry = None

    def __init__(self, *args, registry=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.registry = registry if registry is not None else RoomRegistry()
        self.join = None
        self.seen = deque(maxlen=SEEN_EVENTS)

    async def connect(self):
        await self.accept()

    async def disconnect(self, close_code):
        rooms = self.registry.disconnect(self.channel_name)
        for room in rooms:
            await self.channel_layer.group_discard(room, self.channel_name)
        if self.join:
            logger.info(f"{self.join.user_type} socket left {len(rooms)} rooms (code {close_code})")

    async def receive_json(self, content, **kwargs):
        if not isinstance(content, dict):
            await self.send_error('Messages must be JSON objects')
            return
        event = content.get('event')
        data = content.get('data') or {}
        if not isinstance(data, dict):
            await self.send_error('data must be an object')
            return

        if event == 'join':
            await self.handle_join(data)
        else:
            await self.handle_relay(event, data)

    async def handle_join(self, data):
        try:
            join = JoinRequest.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            logger.warning(f"Rejected join payload: {first['msg']}")
            await self.send_error(f"Invalid join: {'.'.join(str(p) for p in first['loc'])} {first['msg']}")
            return

        for room in self.registry.rooms_of(self.channel_name):
            await self.channel_layer.group_discard(room, self.channel_name)

        rooms = self.registry.connect(self.channel_name, join)
        for room in rooms:
            await self.channel_layer.group_add(room, self.channel_name)
        self.join = join

        logger.info(f"{join.user_type} socket joined {rooms}")
        await self.send_json({'event': 'joined', 'data': {'rooms': rooms}})

    async def handle_relay(self, event, data):
        if self.join is None:
            await self.send_error('Join before sending events')
            return

        rooms = relay_rooms(self.join, event, data)
        if not rooms:
            logger.warning(f"{self.join.user_type} socket may not relay '{event}'")
            await self.send_error(f"Event '{event}' is not relayed for {self.join.user_type} clients")
            return

        message = build_message(event, stamp(data, self.join.user_type), sender=self.channel_name)
        for room in rooms:
            await self.channel_layer.group_send(room, message)
        logger.debug(f"Relayed {event} from {self.join.user_type} to {rooms}")

    async def realtime_event(self, message):
        """Handle fan-out from the channel layer: forward the payload to the client"""
        if message.get('sender') == self.channel_name:
            return
        event_id = message.get('event_id')
        if event_id in self.seen:
            return
        self.seen.append(event_id)
        await self.send_json({'event': message['event'], 'data': message['data']})

    async def send_error(self, text):
        await self.send_json({'event': 'error', 'data': {'message': text}})
