from django.conf import settings
from django.db import models
from django.utils import timezone

from orderease.apps.restaurants.models import Restaurant, Branch


class BatchState(models.TextChoices):
    SENT = 'sent', 'Sent to kitchen'
    SETTLED = 'settled', 'Settled'


class TableCart(models.Model):
    """
    Draft stage of a table's ledger: what the POS has rung up but not yet sent.

    items hold client lines ({menu_item_id, quantity, customizations, notes});
    customer_info survives KOTs so the next round keeps the same guest.
    """
    table = models.OneToOneField('tables.DiningTable', on_delete=models.CASCADE, related_name='cart')
    items = models.JSONField(default=list, blank=True)
    customer_info = models.JSONField(default=dict, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Cart for table {self.table_id} ({len(self.items)} items)"

    def to_dict(self):
        return {
            'table_id': self.table_id,
            'items': self.items,
            'customer_info': self.customer_info,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class TableBatch(models.Model):
    """One KOT: a snapshot of the lines sent to the kitchen under a single order"""
    table = models.ForeignKey('tables.DiningTable', on_delete=models.CASCADE, related_name='batches')
    order = models.ForeignKey('orders.Order', on_delete=models.SET_NULL, null=True, blank=True, related_name='batches')
    order_number = models.PositiveIntegerField()  # the order's token number
    items = models.JSONField(default=list)  # [{name, price, quantity, subtotal, ...}]
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    state = models.CharField(max_length=10, choices=BatchState.choices, default=BatchState.SENT)
    created_at = models.DateTimeField(default=timezone.now)
    settled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"Batch #{self.order_number} on table {self.table_id} ({self.state})"

    def to_dict(self):
        return {
            'id': self.id,
            'orderId': self.order_id,
            'orderNumber': self.order_number,
            'items': self.items,
            'totalAmount': float(self.total_amount),
            'state': self.state,
            'createdAt': self.created_at.isoformat(),
        }


class PosSession(models.Model):
    """A cashier shift; orders placed while it is open are linked to it"""
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='pos_sessions')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='pos_sessions')
    opened_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='pos_sessions')
    opening_float = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    opened_at = models.DateTimeField(default=timezone.now)
    closed_at = models.DateTimeField(null=True, blank=True)
    closing_cash = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    expected_cash = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    cash_variance = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    totals = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['-opened_at']

    def __str__(self):
        return f"Session {self.id} at branch {self.branch_id} ({'open' if self.is_open else 'closed'})"

    @property
    def is_open(self):
        return self.closed_at is None

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'opened_by': self.opened_by_id,
            'status': 'open' if self.is_open else 'closed',
            'opening_float': float(self.opening_float),
            'opened_at': self.opened_at.isoformat(),
            'closed_at': self.closed_at.isoformat() if self.closed_at else None,
            'closing_cash': float(self.closing_cash),
            'expected_cash': float(self.expected_cash),
            'cash_variance': float(self.cash_variance),
            'totals': self.totals,
            'notes': self.notes,
        }
