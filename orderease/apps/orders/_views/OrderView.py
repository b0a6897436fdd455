from datetime import datetime

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.customers.models import Customer
from orderease.apps.orders.models import Order, OrderStatus, OrderType
from orderease.apps.orders.services import create_order, reprice_order, resolve_lines, update_order_status
from orderease.apps.pos.services import record_batch, rewrite_order_batches
from orderease.apps.tables.models import DiningTable
from orderease.apps.utils import user_allowed_branches, ensure_can_access_branch, get_branch_for_user
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


def parse_day(value):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        return None


def get_order_for_user(request, order_id):
    """(order, None) or (None, error Response)"""
    order = Order.objects.filter(pk=order_id).select_related('branch').first()
    if order is None:
        return None, Response({"error": "Order not found"}, status=status.HTTP_404_NOT_FOUND)
    if not ensure_can_access_branch(request.user, order.branch_id):
        logger.warning(f"Unauthorized order access attempt for order {order_id} by {request.user.email}")
        return None, Response({"error": "Not authorized to access this order"}, status=status.HTTP_403_FORBIDDEN)
    return order, None


def filter_orders(orders, params):
    """
    Params:
        - branch_id, status, payment_status, order_type, table_id
        - date_from / date_to: token date range (YYYY-MM-DD)
    """
    for param in ['branch_id', 'status', 'payment_status', 'order_type', 'table_id']:
        if params.get(param):
            orders = orders.filter(**{param: params[param]})
    for param, lookup in [('date_from', 'token_date__gte'), ('date_to', 'token_date__lte')]:
        if params.get(param):
            day = parse_day(params[param])
            if day is None:
                return None, f"{param} must be YYYY-MM-DD"
            orders = orders.filter(**{lookup: day})
    return orders, None


class OrderView(APIView):
    """
    - GET: order history of the caller's branches
    - POST: place an order from the admin/POS screens
    """
    policy_resource = 'orders'

    def get(self, request):
        orders = Order.objects.filter(branch__in=user_allowed_branches(request.user)).prefetch_related('items')
        orders, message = filter_orders(orders, request.query_params)
        if message:
            return Response({"error": message}, status=status.HTTP_400_BAD_REQUEST)
        return Response([order.to_dict() for order in orders])

    def post(self, request):
        """Create a new order"""
        data = request.data
        branch = get_branch_for_user(request.user, data.get('branch_id') or request.user.branch_id)

        placed_at = None
        if data.get('placed_at'):
            placed_at = parse_datetime(str(data['placed_at']))
            if placed_at is None:
                return Response({"error": "placed_at must be an ISO datetime"}, status=status.HTTP_400_BAD_REQUEST)
            if timezone.is_naive(placed_at):
                placed_at = timezone.make_aware(placed_at)

        table = None
        if data.get('table_id'):
            table = DiningTable.objects.filter(pk=data['table_id'], branch=branch).first()
            if table is None:
                return Response({"error": "Invalid table ID"}, status=status.HTTP_400_BAD_REQUEST)

        customer = None
        if data.get('customer_id'):
            customer = Customer.objects.alive().filter(pk=data['customer_id'], branch=branch).first()
            if customer is None:
                return Response({"error": "Invalid customer ID"}, status=status.HTTP_400_BAD_REQUEST)

        order_type = data.get('order_type', OrderType.DINE_IN)
        lines = resolve_lines(branch, data.get('items', []))

        with transaction.atomic():
            order = create_order(
                branch, lines,
                user=request.user,
                order_type=order_type,
                table=table,
                customer=customer,
                customer_name=data.get('customer_name', ''),
                customer_phone=data.get('customer_phone', ''),
                payment_method=data.get('payment_method', 'cash'),
                notes=data.get('notes', ''),
                placed_at=placed_at,
                source=request.user.role,
            )
            if table is not None and order_type == OrderType.DINE_IN:
                record_batch(table, order, lines, source=request.user.role)

        logger.info(f"Order {order.id} created by {request.user.email} with total {order.total_amount}")
        return Response(order.to_dict(), status=status.HTTP_201_CREATED)


class OrderDetailView(APIView):
    """
    - GET: order with its items
    - PUT: replace the items of an open order
    - DELETE: cancel the order (the row and its token are kept)
    """
    policy_resource = 'orders'

    def get(self, request, order_id):
        order, error = get_order_for_user(request, order_id)
        if error:
            return error
        return Response(order.to_dict())

    def put(self, request, order_id):
        order, error = get_order_for_user(request, order_id)
        if error:
            return error
        lines = resolve_lines(order.branch, request.data.get('items', []))
        with transaction.atomic():
            reprice_order(order, lines)
            rewrite_order_batches(order, lines)
        logger.info(f"Order {order.id} items updated by {request.user.email}")
        return Response(order.to_dict())

    def delete(self, request, order_id):
        order, error = get_order_for_user(request, order_id)
        if error:
            return error
        update_order_status(order, OrderStatus.CANCELLED, source=request.user.role)
        logger.info(f"Order {order.id} cancelled by {request.user.email}")
        return Response(order.to_dict(with_items=False))
