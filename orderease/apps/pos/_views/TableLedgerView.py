from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.orders.models import OrderType, PaymentMethod
from orderease.apps.pos.services import (
    delete_batch_item, get_cart, get_open_batch, issue_kot, open_batches, settle_table, update_batch_item_quantity,
    update_cart,
)
from orderease.apps.tables._views.TableView import get_table_for_user
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


def cart_response(cart, lines):
    data = cart.to_dict()
    data['subtotal'] = float(sum(line['subtotal'] for line in lines)) if lines else 0.0
    return data


class TableCartView(APIView):
    """
    - GET: the table's draft cart
    - PUT: replace {items, customer_info}; either key may be omitted
    """
    policy_resource = 'pos'

    def get(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error
        return Response(get_cart(table).to_dict())

    def put(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error
        cart, lines = update_cart(table, request.data.get('items'), request.data.get('customer_info'))
        logger.debug(f"Cart of table {table.id} updated by {request.user.email}")
        return Response(cart_response(cart, lines))


class KotView(APIView):
    """POST {order_type?, payment_method?, customer_info?, notes?}: send the cart to the kitchen"""
    policy_resource = 'pos'

    def post(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error
        batch = issue_kot(
            table,
            request.user,
            order_type=request.data.get('order_type', OrderType.DINE_IN),
            payment_method=request.data.get('payment_method', PaymentMethod.CASH),
            customer_info=request.data.get('customer_info'),
            notes=request.data.get('notes', ''),
            source=request.user.role,
        )
        logger.info(f"KOT #{batch.order_number} for table {table.id} issued by {request.user.email}")
        table.refresh_from_db()
        return Response({
            'batch': batch.to_dict(),
            'order': batch.order.to_dict(),
            'table': table.to_dict(),
        }, status=status.HTTP_201_CREATED)


class TableBatchView(APIView):
    """GET: open batches of the table, most recent first"""
    policy_resource = 'pos'

    def get(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error
        batches = [batch.to_dict() for batch in open_batches(table)]
        return Response({
            'table_id': table.id,
            'table_status': table.status,
            'batches': batches,
            'total_amount': round(sum(batch['totalAmount'] for batch in batches), 2),
        })


class BatchItemView(APIView):
    """
    - PATCH {quantity}: change a line's quantity
    - DELETE: remove a line; removing the last one drops the batch
    """
    policy_resource = 'pos'

    def patch(self, request, table_id, batch_id, index):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error
        batch = get_open_batch(table, batch_id)
        batch = update_batch_item_quantity(batch, index, request.data.get('quantity'))
        return Response(batch.to_dict())

    def delete(self, request, table_id, batch_id, index):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error
        batch = delete_batch_item(get_open_batch(table, batch_id), index, source=request.user.role)
        if batch is None:
            logger.info(f"Batch {batch_id} of table {table.id} removed by {request.user.email}")
            return Response({'deleted': True, 'batch_id': batch_id})
        return Response(batch.to_dict())


class SettleTableView(APIView):
    """POST {payment_method?}: pay every open batch and free the table"""
    policy_resource = 'pos'
    policy_actions = {'POST': 'settle'}

    def post(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error
        payment_method = request.data.get('payment_method') or request.data.get('paymentMethod') or PaymentMethod.CASH
        summary = settle_table(table, payment_method, source=request.user.role)
        logger.info(f"Table {table.id} settled by {request.user.email}")
        return Response(summary)
