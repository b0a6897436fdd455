"""
Room topology for the realtime socket.

Clients declare who they are when they join; the declaration decides which
rooms they sit in. RoomRegistry keeps that membership for one process and is
handed to the consumer explicitly, so it can be exercised without a socket.
"""
from collections import defaultdict
from typing import Dict, FrozenSet, List, Literal, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

ADMIN_GLOBAL = 'admin_global'
CUSTOMER_GLOBAL = 'customer_global'

RELAYED_EVENTS = frozenset({'newOrder', 'orderStatusUpdate', 'paymentStatusUpdate', 'tableStatusUpdate'})

UserType = Literal['admin', 'customer', 'pos', 'kitchen', 'chef']


def restaurant_room(restaurant_id):
    return f'restaurant_{restaurant_id}'


def branch_room(branch_id):
    return f'branch_{branch_id}'


def table_room(table_id):
    return f'table_{table_id}'


def customer_branch_room(branch_id):
    return f'customer_branch_{branch_id}'


def pos_branch_room(branch_id):
    return f'pos_branch_{branch_id}'


def pos_restaurant_room(restaurant_id):
    return f'pos_restaurant_{restaurant_id}'


def kitchen_branch_room(branch_id):
    return f'kitchen_branch_{branch_id}'


def kitchen_restaurant_room(restaurant_id):
    return f'kitchen_restaurant_{restaurant_id}'


class JoinRequest(BaseModel):
    """Payload of the client's `join` message"""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    user_type: UserType = Field(alias='userType')
    branch_id: Optional[str] = Field(default=None, alias='branchId')
    restaurant_id: Optional[str] = Field(default=None, alias='restaurantId')
    table_id: Optional[str] = Field(default=None, alias='tableId')
    user_id: Optional[str] = Field(default=None, alias='userId')
    role: Optional[str] = None

    @field_validator('user_type', mode='before')
    @classmethod
    def lower_user_type(cls, value):
        return value.lower() if isinstance(value, str) else value

    @field_validator('branch_id', 'restaurant_id', 'table_id', 'user_id', mode='before')
    @classmethod
    def ids_as_strings(cls, value):
        if value in (None, ''):
            return None
        return str(value)


def rooms_for(join: JoinRequest) -> List[str]:
    """Rooms a client with this declaration belongs to, in a stable order"""
    rooms = []
    b, r = join.branch_id, join.restaurant_id

    if join.user_type == 'admin':
        if r:
            rooms.append(restaurant_room(r))
        if b:
            rooms.append(branch_room(b))
        rooms.append(ADMIN_GLOBAL)
    elif join.user_type == 'customer':
        if join.table_id:
            rooms.append(table_room(join.table_id))
        if b:
            rooms.append(customer_branch_room(b))
        rooms.append(CUSTOMER_GLOBAL)
    elif join.user_type == 'pos':
        if b:
            rooms.append(pos_branch_room(b))
        if r:
            rooms.append(pos_restaurant_room(r))
        if b:
            rooms.append(kitchen_branch_room(b))
    else:
        if b:
            rooms.append(kitchen_branch_room(b))
        if r:
            rooms.append(kitchen_restaurant_room(r))
        if b:
            rooms.append(pos_branch_room(b))
    return rooms


def relay_rooms(origin: JoinRequest, event: str, payload: dict) -> List[str]:
    """
    Rooms a client-originated event is relayed to.

    POS events go to the kitchen, kitchen events go to the POS, admin events
    go to both; every relay also reaches the branch/restaurant admin rooms.
    Customers cannot relay. A `ready` orderStatusUpdate also reaches the
    table's customer room.
    """
    if event not in RELAYED_EVENTS or origin.user_type == 'customer':
        return []

    b, r = origin.branch_id, origin.restaurant_id
    rooms = []
    if b:
        if origin.user_type in ('pos', 'admin'):
            rooms.append(kitchen_branch_room(b))
        if origin.user_type in ('kitchen', 'chef', 'admin'):
            rooms.append(pos_branch_room(b))
        rooms.append(branch_room(b))
    if r:
        rooms.append(restaurant_room(r))
    rooms.append(ADMIN_GLOBAL)

    table_id = payload.get('tableId') or origin.table_id
    if event == 'orderStatusUpdate' and payload.get('status') == 'ready' and table_id:
        rooms.append(table_room(table_id))
    return rooms


class RoomRegistry:
    """
    Room membership for the connected sockets of one process.

    connect() and disconnect() are the only mutators. A channel that joins
    again replaces its previous membership.
    """

    def __init__(self) -> None:
        self._rooms_by_channel: Dict[str, FrozenSet[str]] = {}
        self._channels_by_room: Dict[str, Set[str]] = defaultdict(set)

    def connect(self, channel: str, join: JoinRequest) -> List[str]:
        self.disconnect(channel)
        rooms = rooms_for(join)
        self._rooms_by_channel[channel] = frozenset(rooms)
        for room in rooms:
            self._channels_by_room[room].add(channel)
        return rooms

    def disconnect(self, channel: str) -> FrozenSet[str]:
        rooms = self._rooms_by_channel.pop(channel, frozenset())
        for room in rooms:
            members = self._channels_by_room.get(room)
            if members is None:
                continue
            members.discard(channel)
            if not members:
                del self._channels_by_room[room]
        return rooms

    def rooms_of(self, channel: str) -> FrozenSet[str]:
        return self._rooms_by_channel.get(channel, frozenset())

    def members(self, room: str) -> FrozenSet[str]:
        return frozenset(self._channels_by_room.get(room, ()))

    def is_connected(self, channel: str) -> bool:
        return channel in self._rooms_by_channel

    def connected_count(self) -> int:
        return len(self._rooms_by_channel)
