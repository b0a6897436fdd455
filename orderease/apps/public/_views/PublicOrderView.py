from django.db import transaction
from rest_framework import status
from rest_framework.response import Response
from orderease.apps.customers.services import find_or_create_customer
from orderease.apps.orders.models import Order, OrderType, PaymentMethod
from orderease.apps.orders.services import create_order, resolve_lines
from orderease.apps.public._views.PublicMenuView import PublicView
from orderease.apps.pos.services import record_batch
from orderease.apps.tables.models import DiningTable, TableStatus
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


def public_order(order):
    """What a guest may see about an order"""
    return {
        'id': order.id,
        'order_code': order.order_code,
        'token_number': order.token_number,
        'status': order.status,
        'payment_status': order.payment_status,
        'order_type': order.order_type,
        'table_id': order.table_id,
        'items': [item.to_dict() for item in order.items.all()],
        'subtotal': float(order.subtotal),
        'tax_amount': float(order.tax_amount),
        'total_amount': float(order.total_amount),
        'placed_at': order.placed_at.isoformat(),
    }


class PublicOrderView(PublicView):
    """
    POST {branch_id, items, table_id?, order_type?, customer: {name, phone, email}, notes?}

    A dine-in order takes its table; a table that is already occupied is refused.
    """

    def post(self, request):
        data = request.data
        branch, error = self.branch_or_error(data.get('branch_id'))
        if error:
            return error
        if not data.get('items'):
            return Response({'error': 'items are required'}, status=status.HTTP_400_BAD_REQUEST)

        order_type = data.get('order_type', OrderType.DINE_IN)
        guest = data.get('customer') or {}
        if not isinstance(guest, dict):
            return Response({'error': 'customer must be an object'}, status=status.HTTP_400_BAD_REQUEST)
        if order_type != OrderType.DINE_IN and not guest.get('name'):
            return Response({'error': 'Customer name is required for takeaway and delivery orders'}, status=status.HTTP_400_BAD_REQUEST)

        lines = resolve_lines(branch, data['items'])

        with transaction.atomic():
            table = None
            if data.get('table_id'):
                table = DiningTable.objects.select_for_update().filter(pk=data['table_id'], branch=branch).first()
                if table is None:
                    return Response({'error': 'Invalid table ID'}, status=status.HTTP_400_BAD_REQUEST)
                if table.status != TableStatus.AVAILABLE:
                    logger.warning(f"Guest order refused for table {table.id} ({table.status})")
                    return Response({'error': f'Table {table.name} is {table.status}'}, status=status.HTTP_400_BAD_REQUEST)

            customer = None
            if guest.get('phone') or guest.get('email'):
                customer = find_or_create_customer(branch, guest.get('name'), guest.get('phone'), guest.get('email'))

            order = create_order(
                branch, lines,
                order_type=order_type,
                table=table,
                customer=customer,
                customer_name=guest.get('name', ''),
                customer_phone=guest.get('phone', ''),
                payment_method=data.get('payment_method', PaymentMethod.CASH),
                notes=data.get('notes', ''),
                source='customer',
            )
            if table is not None and order_type == OrderType.DINE_IN:
                record_batch(table, order, lines, source='customer')

        logger.info(f"Guest order {order.id} (token #{order.token_number}) placed at branch {branch.id}")
        response = public_order(order)
        response['customer_id'] = customer.customer_id if customer else None
        return Response(response, status=status.HTTP_201_CREATED)


class PublicOrderDetailView(PublicView):
    def get(self, request, order_id):
        order = Order.objects.filter(pk=order_id).prefetch_related('items').first()
        if order is None:
            return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(public_order(order))
