import uuid

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.utils import timezone

from orderease.apps.realtime.rooms import (
    ADMIN_GLOBAL, CUSTOMER_GLOBAL,
    branch_room, customer_branch_room, kitchen_branch_room,
    pos_branch_room, pos_restaurant_room, restaurant_room, table_room,
)
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

SERVER_SOURCE = 'server'


def stamp(payload, source):
    return {**payload, 'timestamp': timezone.now().isoformat(), 'source': source}


def build_message(event, payload, sender=None):
    """Channel-layer message handled by RealtimeConsumer.realtime_event"""
    return {
        'type': 'realtime.event',
        'event': event,
        'data': payload,
        'event_id': uuid.uuid4().hex,
        'sender': sender,
    }


def broadcast(event, rooms, payload, source=SERVER_SOURCE):
    """
    Fire-and-forget fan-out of a server-side event.

    Delivery problems are logged and never raised back to the caller: the
    database change that triggered the event has already been committed.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning(f"No channel layer configured, dropping {event}")
        return None

    message = build_message(event, stamp(payload, source))
    for room in dict.fromkeys(rooms):
        try:
            async_to_sync(channel_layer.group_send)(room, message)
        except Exception as e:
            logger.error(f"Failed to send {event} to {room}: {e}")
    logger.debug(f"{event} sent to {list(dict.fromkeys(rooms))}")
    return message


def order_payload(order):
    return {
        'orderId': order.id,
        'orderNumber': order.token_number,
        'orderCode': order.order_code,
        'status': order.status,
        'paymentStatus': order.payment_status,
        'orderType': order.order_type,
        'totalAmount': float(order.total_amount),
        'tableId': order.table_id,
        'branchId': order.branch_id,
        'restaurantId': order.restaurant_id,
    }


def _staff_rooms(order):
    return [
        restaurant_room(order.restaurant_id),
        branch_room(order.branch_id),
        pos_branch_room(order.branch_id),
        pos_restaurant_room(order.restaurant_id),
        kitchen_branch_room(order.branch_id),
        ADMIN_GLOBAL,
    ]


def emit_new_order(order, source=SERVER_SOURCE):
    payload = order_payload(order)
    payload['items'] = [item.to_dict() for item in order.items.all()]
    return broadcast('newOrder', _staff_rooms(order), payload, source)


def emit_order_status(order, source=SERVER_SOURCE):
    rooms = _staff_rooms(order) + [customer_branch_room(order.branch_id), CUSTOMER_GLOBAL]
    if order.table_id:
        rooms.append(table_room(order.table_id))
    return broadcast('orderStatusUpdate', rooms, order_payload(order), source)


def emit_payment_status(order, source=SERVER_SOURCE):
    rooms = _staff_rooms(order)
    if order.table_id:
        rooms.append(table_room(order.table_id))
    payload = order_payload(order)
    payload['paymentMethod'] = order.payment_method
    return broadcast('paymentStatusUpdate', rooms, payload, source)


def emit_table_status(table, source=SERVER_SOURCE):
    rooms = [
        pos_branch_room(table.branch_id),
        kitchen_branch_room(table.branch_id),
        branch_room(table.branch_id),
        pos_restaurant_room(table.restaurant_id),
        restaurant_room(table.restaurant_id),
        table_room(table.id),
    ]
    payload = {
        'tableId': table.id,
        'status': table.status,
        'branchId': table.branch_id,
        'restaurantId': table.restaurant_id,
        'currentOrderId': table.current_order_id,
    }
    return broadcast('tableStatusUpdate', rooms, payload, source)


def inventory_severity(kind, status=None, qty=None):
    if kind == 'wastage':
        return 'critical' if abs(qty or 0) >= settings.ORDEREASE_WASTAGE_ALERT_MIN_QTY else 'info'
    if status in ('out', 'critical'):
        return 'critical'
    if status == 'low':
        return 'low'
    return 'info'


def emit_inventory_notification(item, kind, qty=None, reason=None, notes='', source=SERVER_SOURCE):
    """
    Stock alert for the branch POS screens.

    kind is 'status' when the item crossed into low/critical/out, or
    'wastage' when stock was written off.
    """
    status = item.stock_status
    if kind == 'wastage':
        title = 'Wastage recorded'
        message = f"{item.name} wastage: {abs(qty)} {item.unit} ({reason})"
    else:
        title = f"Stock status: {status}"
        message = f"{item.name} is {status}"
    payload = {
        'type': kind,
        'title': title,
        'message': message,
        'severity': inventory_severity(kind, status, qty),
        'itemId': item.id,
        'itemName': item.name,
        'unit': item.unit,
        'branchId': item.branch_id,
        'restaurantId': item.restaurant_id,
        'status': status,
        'qty': float(qty) if qty is not None else float(item.current_qty),
        'threshold': float(item.low_threshold),
        'reason': reason,
        'notes': notes,
    }
    return broadcast('inventory:notification', [pos_branch_room(item.branch_id)], payload, source)
