from decimal import Decimal

from django.db.models import Count, Sum
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.orders.models import Order, OrderStatus, PaymentStatus
from orderease.apps.orders._views.OrderView import filter_orders
from orderease.apps.utils import user_allowed_branches


def order_statistics(orders):
    """Counts by status and type, revenue from paid non-cancelled orders"""
    by_status = {row['status']: row['count'] for row in orders.order_by().values('status').annotate(count=Count('id'))}
    by_type = {row['order_type']: row['count'] for row in orders.order_by().values('order_type').annotate(count=Count('id'))}

    paid = orders.filter(payment_status=PaymentStatus.PAID).exclude(status=OrderStatus.CANCELLED)
    totals = paid.aggregate(revenue=Sum('total_amount'), tax=Sum('tax_amount'), count=Count('id'))
    revenue = totals['revenue'] or Decimal('0')
    paid_count = totals['count'] or 0

    return {
        'total_orders': orders.count(),
        'by_status': by_status,
        'by_type': by_type,
        'paid_orders': paid_count,
        'revenue': float(revenue),
        'tax_collected': float(totals['tax'] or 0),
        'average_order_value': float(round(revenue / paid_count, 2)) if paid_count else 0.0,
    }


class OrderStatisticsView(APIView):
    """GET ?branch_id=&date_from=&date_to="""
    policy_resource = 'orders'
    policy_actions = {'GET': 'statistics'}

    def get(self, request):
        orders = Order.objects.filter(branch__in=user_allowed_branches(request.user))
        orders, message = filter_orders(orders, request.query_params)
        if message:
            return Response({"error": message}, status=status.HTTP_400_BAD_REQUEST)
        return Response(order_statistics(orders))
