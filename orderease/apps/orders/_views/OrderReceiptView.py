from django.utils import timezone
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.orders._views.OrderView import get_order_for_user

RULE = "----------------------------------------"


def format_receipt(order):
    """Plain text receipt sized for a thermal printer"""
    lines = [
        order.branch.restaurant.name,
        order.branch.name,
        RULE,
        f"Order: {order.order_code}",
        f"Token: #{order.token_number}",
        f"Date: {timezone.localtime(order.placed_at).strftime('%Y-%m-%d %H:%M:%S')}",
        f"Customer: {order.customer_name or 'Walk-in'}",
        f"Table: {order.table.name if order.table else 'N/A'}",
        f"Type: {order.get_order_type_display()}",
        RULE,
    ]
    for item in order.items.all():
        lines.append(f"{item.name} x {item.quantity}  {item.subtotal}")
        if item.notes:
            lines.append(f"  Notes: {item.notes}")
    lines.append(RULE)
    lines.append(f"Subtotal: {order.subtotal}")
    breakdown = (order.tax_details or {}).get('breakdown') or {}
    if breakdown:
        for name, part in breakdown.items():
            lines.append(f"{name.upper()} ({part['percentage']}%): {part['amount']:.2f}")
    else:
        lines.append(f"{(order.tax_details or {}).get('tax_name', 'Tax')}: {order.tax_amount}")
    lines.append(f"TOTAL AMOUNT: {order.total_amount}")
    lines.append(f"Payment: {order.get_payment_method_display()} ({order.get_payment_status_display()})")
    lines.append("\nThank you for your order!")
    return "\n".join(lines)


class OrderReceiptView(APIView):
    policy_resource = 'orders'

    def get(self, request, order_id):
        order, error = get_order_for_user(request, order_id)
        if error:
            return error
        return Response({
            'receipt': format_receipt(order),
            'order_code': order.order_code,
            'token_number': order.token_number,
        }, status=status.HTTP_200_OK)
