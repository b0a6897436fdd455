"""
Server-owned table ledger for the POS.

A table's cart is the draft; issuing a KOT turns the cart into a `sent`
batch backed by one order; settling pays every open batch's order and then
frees the table.
"""
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from orderease.apps.customers.services import find_or_create_customer
from orderease.apps.orders.models import Order, OrderStatus, OrderType, PaymentMethod, PaymentStatus
from orderease.apps.orders.services import (
    FINAL_STATUSES, create_order, reprice_order, resolve_lines, update_order_status, update_payment_status,
)
from orderease.apps.pos.models import BatchState, PosSession, TableBatch, TableCart
from orderease.apps.tables.models import TableStatus
from orderease.apps.tables.services import occupy_table, release_table
from orderease.apps.taxes.services import quantize
from orderease.utils.exceptions import NotFoundError, OrderEaseError
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

CUSTOMER_FIELDS = ('name', 'phone', 'email')


def get_cart(table):
    cart, _ = TableCart.objects.get_or_create(table=table)
    return cart


def clean_customer_info(raw):
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise OrderEaseError('customer_info must be an object')
    return {field: str(raw[field]).strip() for field in CUSTOMER_FIELDS if raw.get(field)}


def update_cart(table, items=None, customer_info=None):
    """
    Replace the cart lines and/or customer info. Lines are priced to validate
    them; the cart itself only stores what the client sent.
    """
    cart = get_cart(table)
    lines = []
    if items is not None:
        if not isinstance(items, list):
            raise OrderEaseError('items must be a list')
        if items:
            lines = resolve_lines(table.branch, items)
        cart.items = items
    elif cart.items:
        lines = resolve_lines(table.branch, cart.items)
    if customer_info is not None:
        cart.customer_info = clean_customer_info(customer_info)
    cart.save()
    return cart, lines


def batch_line(line):
    """Order line -> JSON snapshot stored on the batch"""
    return {
        'menu_item_id': line['menu_item_id'],
        'name': line['name'],
        'price': float(line['price']),
        'quantity': line['quantity'],
        'subtotal': float(line['subtotal']),
        'customizations': line.get('customizations') or {},
        'notes': line.get('notes', ''),
    }


def batch_total(items):
    return quantize(sum((Decimal(str(item['price'])) * item['quantity'] for item in items), Decimal('0')))


def order_lines(items):
    """Batch snapshot -> order lines, keeping the prices the batch was sent with"""
    return [
        {
            'menu_item_id': item.get('menu_item_id'),
            'name': item['name'],
            'price': Decimal(str(item['price'])),
            'quantity': item['quantity'],
            'subtotal': quantize(Decimal(str(item['price'])) * item['quantity']),
            'customizations': item.get('customizations') or {},
            'notes': item.get('notes', ''),
        }
        for item in items
    ]


def record_batch(table, order, lines, source='pos'):
    """
    Put an order on the table's ledger. A dine-in order also occupies the
    table, so an occupied table always has a batch to settle.
    """
    if order.order_type == OrderType.DINE_IN and table.status != TableStatus.OCCUPIED:
        occupy_table(table, order, source=source)
    items = [batch_line(line) for line in lines]
    return TableBatch.objects.create(
        table=table,
        order=order,
        order_number=order.token_number,
        items=items,
        total_amount=batch_total(items),
    )


def rewrite_order_batches(order, lines):
    """Carry an order's new lines onto the open batch backing it"""
    items = [batch_line(line) for line in lines]
    for batch in order.batches.filter(state=BatchState.SENT):
        batch.items = items
        batch.total_amount = batch_total(items)
        batch.save(update_fields=['items', 'total_amount'])
        logger.info(f"Batch {batch.id} rewritten from order {order.id}, total {batch.total_amount}")


@transaction.atomic
def issue_kot(table, user, order_type=OrderType.DINE_IN, payment_method=PaymentMethod.CASH,
              customer_info=None, notes='', source='pos'):
    """
    Send the table's cart to the kitchen.

    Creates the order, occupies a dine-in table, records the batch and
    clears the cart lines (customer info is kept), all in one transaction.
    """
    cart = TableCart.objects.select_for_update().filter(table=table).first()
    if cart is None or not cart.items:
        raise OrderEaseError('Cart is empty')
    if table.status == TableStatus.MAINTENANCE:
        raise OrderEaseError(f"Table {table.name} is under maintenance")

    info = {**(cart.customer_info or {}), **clean_customer_info(customer_info)}
    if order_type != OrderType.DINE_IN and not info.get('name'):
        raise OrderEaseError('Customer name is required for takeaway and delivery orders')

    branch = table.branch
    lines = resolve_lines(branch, cart.items)
    customer = None
    if info.get('phone') or info.get('email'):
        customer = find_or_create_customer(branch, info.get('name'), info.get('phone'), info.get('email'))

    order = create_order(
        branch, lines,
        user=user,
        order_type=order_type,
        table=table,
        customer=customer,
        customer_name=info.get('name', ''),
        customer_phone=info.get('phone', ''),
        payment_method=payment_method,
        notes=notes,
        source=source,
    )
    batch = record_batch(table, order, lines, source=source)

    cart.items = []
    cart.customer_info = info
    cart.save(update_fields=['items', 'customer_info', 'updated_at'])

    logger.info(f"KOT #{batch.order_number} issued for table {table.id} (order {order.id}, {len(lines)} lines)")
    return batch


def open_batches(table):
    return table.batches.filter(state=BatchState.SENT).select_related('order')


def get_open_batch(table, batch_id):
    batch = open_batches(table).filter(pk=batch_id).first()
    if batch is None:
        raise NotFoundError('Batch not found')
    return batch


def _item_at(batch, index):
    if not 0 <= index < len(batch.items):
        raise NotFoundError(f"Batch has no item at position {index}")
    return batch.items[index]


def _sync_order(batch):
    if batch.order is not None:
        reprice_order(batch.order, order_lines(batch.items))


@transaction.atomic
def update_batch_item_quantity(batch, index, quantity):
    """Change one line's quantity and recompute the batch total and its order"""
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise OrderEaseError('Quantity must be a positive integer')

    item = _item_at(batch, index)
    item['quantity'] = quantity
    item['subtotal'] = float(quantize(Decimal(str(item['price'])) * quantity))
    batch.total_amount = batch_total(batch.items)
    batch.save(update_fields=['items', 'total_amount'])
    _sync_order(batch)

    logger.info(f"Batch {batch.id} item {index} quantity -> {quantity}, total {batch.total_amount}")
    return batch


@transaction.atomic
def delete_batch_item(batch, index, source='pos'):
    """
    Remove one line. Removing the last line drops the batch and cancels its
    order; returns None in that case.
    """
    if batch.order is not None and (batch.order.is_cancelled or batch.order.payment_status == PaymentStatus.PAID):
        raise OrderEaseError('Paid or cancelled orders cannot be changed')
    _item_at(batch, index)
    removed = batch.items.pop(index)

    if batch.items:
        batch.total_amount = batch_total(batch.items)
        batch.save(update_fields=['items', 'total_amount'])
        _sync_order(batch)
        logger.info(f"Removed {removed['name']} from batch {batch.id}, total {batch.total_amount}")
        return batch

    table, order = batch.table, batch.order
    batch.delete()
    if order is not None and order.status not in FINAL_STATUSES:
        update_order_status(order, OrderStatus.CANCELLED, source=source)
    logger.info(f"Batch for order {order.id if order else None} removed from table {table.id} with its last item")

    if table.status == TableStatus.OCCUPIED and not open_batches(table).exists():
        release_table(table, source=source)
    return None


def settle_table(table, payment_method=PaymentMethod.CASH, source='pos'):
    """
    Mark every open batch's order paid, then free the table.

    Payment updates are applied one order at a time and are not rolled back
    when a later one fails. Any failure aborts before the batches, the cart
    and the table are touched.
    """
    if payment_method not in PaymentMethod.values:
        raise OrderEaseError(f"Invalid payment method '{payment_method}'")

    batches = list(open_batches(table))
    if not batches:
        raise OrderEaseError('No batches to settle for this table')

    failed = 0
    for batch in batches:
        if batch.order is None:
            continue
        try:
            update_payment_status(batch.order, PaymentStatus.PAID, payment_method, source=source)
        except OrderEaseError as e:
            failed += 1
            logger.warning(f"Settle of table {table.id}: order {batch.order_id} not paid: {e.detail}")

    if failed:
        logger.error(f"Settle of table {table.id} failed for {failed}/{len(batches)} batches")
        raise OrderEaseError(f"Failed to settle {failed}/{len(batches)} batches")

    with transaction.atomic():
        now = timezone.now()
        TableBatch.objects.filter(pk__in=[b.pk for b in batches]).update(state=BatchState.SETTLED, settled_at=now)
        TableCart.objects.filter(table=table).delete()
        release_table(table, source=source)

    total = sum((b.order.total_amount for b in batches if b.order is not None), Decimal('0'))
    logger.info(f"Table {table.id} settled: {len(batches)} batches, {total} by {payment_method}")
    return {
        'table_id': table.id,
        'settled_batches': len(batches),
        'total_amount': float(total),
        'payment_method': payment_method,
        'table_status': table.status,
    }


def parse_amount(value, field):
    try:
        amount = Decimal(str(value if value not in (None, '') else 0))
    except InvalidOperation:
        raise OrderEaseError(f"{field} must be a number")
    if amount < 0:
        raise OrderEaseError(f"{field} cannot be negative")
    return quantize(amount)


def current_session(branch):
    return PosSession.objects.filter(branch=branch, closed_at__isnull=True).first()


def open_session(branch, user, opening_float=0, notes=''):
    """One open session per branch"""
    if current_session(branch) is not None:
        raise OrderEaseError('A session is already open for this branch')
    session = PosSession.objects.create(
        restaurant_id=branch.restaurant_id,
        branch=branch,
        opened_by=user,
        opening_float=parse_amount(opening_float, 'opening_float'),
        notes=notes or '',
    )
    logger.info(f"POS session {session.id} opened at branch {branch.id} by {user.email}")
    return session


def session_totals(session):
    """
    Aggregate the session's orders. Orders created before sessions existed
    are matched by branch and time window instead.
    """
    orders = session.orders.all()
    if not orders.exists():
        orders = Order.objects.filter(branch=session.branch, placed_at__gte=session.opened_at)
    orders = orders.exclude(status=OrderStatus.CANCELLED)

    gross = orders.aggregate(total=Sum('total_amount'))['total'] or Decimal('0')
    refunds = orders.filter(payment_status=PaymentStatus.REFUNDED).aggregate(total=Sum('total_amount'))['total'] or Decimal('0')

    by_payment = {'cash': Decimal('0'), 'card': Decimal('0'), 'online': Decimal('0')}
    paid = orders.filter(payment_status=PaymentStatus.PAID).order_by()
    for method, total in paid.values_list('payment_method').annotate(total=Sum('total_amount')):
        key = method if method in ('cash', 'card') else 'online'
        by_payment[key] += total

    return {
        'ordersCount': orders.count(),
        'grossSales': float(gross),
        'netSales': float(gross - refunds),
        'discounts': 0.0,
        'refunds': float(refunds),
        'byPayment': {key: float(value) for key, value in by_payment.items()},
    }


@transaction.atomic
def close_session(session, closing_cash=0, expected_cash=0, notes=''):
    if not session.is_open:
        raise NotFoundError('Open session not found')
    session.totals = session_totals(session)
    session.closed_at = timezone.now()
    session.closing_cash = parse_amount(closing_cash, 'closing_cash')
    session.expected_cash = parse_amount(expected_cash, 'expected_cash')
    session.cash_variance = session.closing_cash - session.expected_cash
    if notes:
        session.notes = notes
    session.save()
    logger.info(f"POS session {session.id} closed: {session.totals['ordersCount']} orders, variance {session.cash_variance}")
    return session
