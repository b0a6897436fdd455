from django.db import transaction
from django.utils import timezone

from orderease.apps.realtime.broadcast import emit_table_status
from orderease.apps.tables.models import TableStatus, STATUS_ALIASES, BLOCKING_RESERVATIONS
from orderease.utils.exceptions import OrderEaseError
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


def normalize_status(value):
    """Accept UI labels ('blocked') and return a TableStatus value"""
    status = STATUS_ALIASES.get(str(value).strip().lower(), str(value).strip().lower())
    if status not in TableStatus.values:
        raise OrderEaseError(f"Invalid table status '{value}'")
    return status


def set_table_status(table, status, current_order=None, source='server'):
    """
    Persist a status change and announce it once the transaction commits.

    Leaving `occupied` always drops the current order reference.
    """
    table.status = status
    if status == TableStatus.OCCUPIED:
        if current_order is not None:
            table.current_order = current_order
    else:
        table.current_order = None
    table.save(update_fields=['status', 'current_order', 'updated_at'])
    logger.info(f"Table {table.id} is now {status} (order {table.current_order_id})")
    transaction.on_commit(lambda: emit_table_status(table, source))
    return table


def occupy_table(table, order, source='server'):
    return set_table_status(table, TableStatus.OCCUPIED, current_order=order, source=source)


def release_table(table, source='server'):
    """Back to available, or reserved if a reservation covers the current time"""
    now = timezone.now()
    reserved = table.reservations.filter(
        status__in=BLOCKING_RESERVATIONS, start_time__lte=now, end_time__gte=now,
    ).exists()
    return set_table_status(table, TableStatus.RESERVED if reserved else TableStatus.AVAILABLE, source=source)
