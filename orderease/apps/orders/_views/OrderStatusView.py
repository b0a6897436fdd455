from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.orders.services import update_order_status, update_payment_status
from orderease.apps.orders._views.OrderView import get_order_for_user
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


class OrderStatusView(APIView):
    """PATCH {status}: kitchen and floor staff move orders through preparation"""
    policy_resource = 'orders'
    policy_actions = {'PATCH': 'status'}

    def patch(self, request, order_id):
        order, error = get_order_for_user(request, order_id)
        if error:
            return error
        new_status = request.data.get('status')
        if not new_status:
            return Response({'error': 'status is required'}, status=status.HTTP_400_BAD_REQUEST)
        update_order_status(order, new_status, source=request.user.role)
        logger.info(f"Order {order.id} marked {new_status} by {request.user.email}")
        return Response(order.to_dict(with_items=False))


class OrderPaymentView(APIView):
    """PATCH {payment_status, payment_method?}"""
    policy_resource = 'orders'
    policy_actions = {'PATCH': 'payment'}

    def patch(self, request, order_id):
        order, error = get_order_for_user(request, order_id)
        if error:
            return error
        payment_status = request.data.get('payment_status')
        if not payment_status:
            return Response({'error': 'payment_status is required'}, status=status.HTTP_400_BAD_REQUEST)
        update_payment_status(order, payment_status, request.data.get('payment_method'), source=request.user.role)
        logger.info(f"Order {order.id} payment marked {payment_status} by {request.user.email}")
        return Response(order.to_dict(with_items=False))
