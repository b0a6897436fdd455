"""
Order creation and the state changes every order surface shares.

POS KOTs, the admin order screen and the customer app all create orders
through create_order(), so token numbering, pricing and tax are done in one
place.
"""
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from orderease.apps.menu.models import MenuItem
from orderease.apps.orders.models import (
    Order, OrderItem, OrderStatus, OrderTokenCounter, OrderType, PaymentMethod, PaymentStatus,
)
from orderease.apps.realtime.broadcast import emit_new_order, emit_order_status, emit_payment_status
from orderease.apps.taxes.services import calculate_tax, quantize
from orderease.utils.exceptions import ConflictError, OrderEaseError
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

TOKEN_ATTEMPTS = 3

# statuses an order can no longer leave
FINAL_STATUSES = (OrderStatus.CANCELLED, OrderStatus.DELIVERED)


def date_key(day):
    return day.strftime('%Y%m%d')


def next_token_number(branch_id, day_key):
    """
    Atomically hand out the next token for (branch, YYYYMMDD), starting at 1.

    The increment is a single UPDATE ... SET seq = seq + 1 so the database
    serializes concurrent callers on the counter row. When the row does not
    exist yet, two callers may race to insert it; the unique (branch, date)
    constraint rejects one of them, which then retries the increment.
    """
    for attempt in range(1, TOKEN_ATTEMPTS + 1):
        try:
            with transaction.atomic():
                counters = OrderTokenCounter.objects.filter(branch_id=branch_id, date=day_key)
                if counters.update(seq=F('seq') + 1):
                    return counters.values_list('seq', flat=True).get()
                OrderTokenCounter.objects.create(branch_id=branch_id, date=day_key, seq=1)
                return 1
        except IntegrityError:
            logger.warning(f"Token counter race for branch {branch_id} on {day_key} (attempt {attempt})")
    raise ConflictError('Could not allocate a token number, please retry')


def _find_option(group, name):
    for option in group.get('options', []):
        if option['name'].lower() == str(name).strip().lower():
            return option
    raise OrderEaseError(f"'{name}' is not an option of {group['name']}")


def unit_price(menu_item, customizations):
    """
    Price of one unit with the chosen variants applied.

    An option with an absolute price (e.g. a size) replaces the base price;
    price deltas are then added on top.
    """
    base = menu_item.price
    deltas = Decimal('0')
    for group in menu_item.variant_groups or []:
        chosen = customizations.get(group['name'])
        if chosen in (None, '', []):
            continue
        names = chosen if isinstance(chosen, list) else [chosen]
        if group.get('selection_type') == 'single' and len(names) > 1:
            raise OrderEaseError(f"Only one option may be chosen for {group['name']}")
        for name in names:
            option = _find_option(group, name)
            if option.get('price') is not None:
                base = Decimal(str(option['price']))
            deltas += Decimal(str(option.get('price_delta') or 0))
    return quantize(base + deltas)


def resolve_lines(branch, raw_items):
    """
    Turn client supplied [{menu_item_id, quantity, customizations, notes}]
    into priced line dicts. Prices always come from the menu.
    """
    if not raw_items:
        raise OrderEaseError('No items in order')
    if not isinstance(raw_items, list):
        raise OrderEaseError('items must be a list')

    lines = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise OrderEaseError('Each item must be an object with a menu_item_id')
        menu_item_id = raw.get('menu_item_id')
        quantity = raw.get('quantity', 1)
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            raise OrderEaseError(f"Invalid quantity for menu item {menu_item_id}")

        try:
            pk = int(menu_item_id)
        except (TypeError, ValueError):
            raise OrderEaseError(f"Invalid menu item ID: {menu_item_id}")
        menu_item = MenuItem.objects.active().filter(pk=pk, restaurant_id=branch.restaurant_id).first()
        if menu_item is None or (menu_item.branch_id and menu_item.branch_id != branch.id):
            raise OrderEaseError(f"Invalid menu item ID: {menu_item_id}")

        customizations = raw.get('customizations') or {}
        if not isinstance(customizations, dict):
            raise OrderEaseError('customizations must be an object')

        price = unit_price(menu_item, customizations)
        lines.append({
            'menu_item_id': menu_item.id,
            'name': menu_item.name,
            'price': price,
            'quantity': quantity,
            'subtotal': quantize(price * quantity),
            'customizations': customizations,
            'notes': raw.get('notes', '') or '',
        })
    return lines


def _write_lines(order, lines):
    order.items.all().delete()
    OrderItem.objects.bulk_create([
        OrderItem(
            order=order,
            menu_item_id=line['menu_item_id'],
            name=line['name'],
            price=line['price'],
            quantity=line['quantity'],
            subtotal=line['subtotal'],
            customizations=line.get('customizations') or {},
            notes=line.get('notes', ''),
        )
        for line in lines
    ])


def _apply_totals(order, lines):
    subtotal = sum((Decimal(str(line['subtotal'])) for line in lines), Decimal('0'))
    tax_amount, tax_details = calculate_tax(order.restaurant, subtotal)
    order.subtotal = quantize(subtotal)
    order.tax_amount = tax_amount
    order.tax_details = tax_details
    order.total_amount = quantize(subtotal + tax_amount)


def _open_session(branch):
    from orderease.apps.pos.models import PosSession
    return PosSession.objects.filter(branch=branch, closed_at__isnull=True).first()


@transaction.atomic
def create_order(branch, lines, *, user=None, order_type=OrderType.DINE_IN, table=None, customer=None,
                 customer_name='', customer_phone='', payment_method=PaymentMethod.CASH, notes='',
                 placed_at=None, source='server'):
    """Persist an order from resolved lines and announce it after commit"""
    if order_type not in OrderType.values:
        raise OrderEaseError(f"Invalid order type '{order_type}'")
    if payment_method not in PaymentMethod.values:
        raise OrderEaseError(f"Invalid payment method '{payment_method}'")
    if table is not None and table.branch_id != branch.id:
        raise OrderEaseError('Table does not belong to this branch')

    placed_at = placed_at or timezone.now()
    token_date = timezone.localtime(placed_at).date()

    order = Order(
        restaurant=branch.restaurant,
        branch=branch,
        table=table,
        customer=customer,
        session=_open_session(branch),
        token_number=next_token_number(branch.id, date_key(token_date)),
        token_date=token_date,
        customer_name=customer_name or (customer.name if customer else 'Guest'),
        customer_phone=customer_phone or (customer.phone if customer else ''),
        order_type=order_type,
        payment_method=payment_method,
        notes=notes or '',
        created_by=user,
        placed_at=placed_at,
    )
    _apply_totals(order, lines)
    order.save()
    _write_lines(order, lines)

    logger.info(f"Order {order.id} token #{order.token_number} created in branch {branch.id} total {order.total_amount}")
    transaction.on_commit(lambda: emit_new_order(order, source))
    return order


@transaction.atomic
def reprice_order(order, lines):
    """Replace an open order's lines and recompute subtotal, tax and total"""
    if order.is_cancelled or order.payment_status == PaymentStatus.PAID:
        raise OrderEaseError('Paid or cancelled orders cannot be changed')
    _write_lines(order, lines)
    _apply_totals(order, lines)
    order.save(update_fields=['subtotal', 'tax_amount', 'tax_details', 'total_amount', 'updated_at'])
    logger.info(f"Order {order.id} repriced to {order.total_amount}")
    return order


def update_order_status(order, new_status, source='server'):
    if new_status not in OrderStatus.values:
        raise OrderEaseError(f"Invalid order status '{new_status}'")
    if order.status in FINAL_STATUSES and new_status != order.status:
        raise OrderEaseError(f"Order is already {order.status}")

    order.status = new_status
    if new_status == OrderStatus.CANCELLED:
        order.cancelled_at = timezone.now()
    order.save(update_fields=['status', 'cancelled_at', 'updated_at'])
    logger.info(f"Order {order.id} status -> {new_status}")
    transaction.on_commit(lambda: emit_order_status(order, source))
    return order


def update_payment_status(order, payment_status, payment_method=None, source='server'):
    if payment_status not in PaymentStatus.values:
        raise OrderEaseError(f"Invalid payment status '{payment_status}'")
    if payment_method is not None and payment_method not in PaymentMethod.values:
        raise OrderEaseError(f"Invalid payment method '{payment_method}'")
    if order.is_cancelled:
        raise OrderEaseError(f"Cannot update payment of cancelled order {order.id}")

    order.payment_status = payment_status
    if payment_method:
        order.payment_method = payment_method
    order.paid_at = timezone.now() if payment_status == PaymentStatus.PAID else None
    order.save(update_fields=['payment_status', 'payment_method', 'paid_at', 'updated_at'])
    logger.info(f"Order {order.id} payment -> {payment_status} ({order.payment_method})")
    transaction.on_commit(lambda: emit_payment_status(order, source))
    return order
