from django.conf import settings
from django.db import models
from django.utils import timezone

from orderease.apps.restaurants.models import Restaurant, Branch


class OrderType(models.TextChoices):
    DINE_IN = 'dine-in', 'Dine In'
    TAKEAWAY = 'takeaway', 'Takeaway'
    DELIVERY = 'delivery', 'Delivery'


class OrderStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    PREPARING = 'preparing', 'Preparing'
    READY = 'ready', 'Ready'
    DELIVERED = 'delivered', 'Delivered'
    CANCELLED = 'cancelled', 'Cancelled'


class PaymentMethod(models.TextChoices):
    CASH = 'cash', 'Cash'
    CARD = 'card', 'Card'
    ONLINE = 'online', 'Online'
    UPI = 'upi', 'UPI'
    WALLET = 'wallet', 'Wallet'
    OTHER = 'other', 'Other'


class PaymentStatus(models.TextChoices):
    UNPAID = 'unpaid', 'Unpaid'
    PENDING = 'pending', 'Pending'
    PAID = 'paid', 'Paid'
    FAILED = 'failed', 'Failed'
    REFUNDED = 'refunded', 'Refunded'
    PARTIAL = 'partial', 'Partial'


class OrderTokenCounter(models.Model):
    """Per-branch per-day sequence behind customer-facing token numbers"""
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='token_counters')
    date = models.CharField(max_length=8)  # YYYYMMDD in the server's time zone
    seq = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('branch', 'date')

    def __str__(self):
        return f"Branch {self.branch_id} {self.date}: {self.seq}"


class Order(models.Model):
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='orders')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='orders')
    table = models.ForeignKey('tables.DiningTable', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    customer = models.ForeignKey('customers.Customer', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    session = models.ForeignKey('pos.PosSession', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')

    token_number = models.PositiveIntegerField()
    token_date = models.DateField(default=timezone.localdate)

    customer_name = models.CharField(max_length=150, default='Guest')
    customer_phone = models.CharField(max_length=20, blank=True)
    order_type = models.CharField(max_length=10, choices=OrderType.choices, default=OrderType.DINE_IN)
    status = models.CharField(max_length=10, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    payment_method = models.CharField(max_length=10, choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    payment_status = models.CharField(max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID)

    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    tax_details = models.JSONField(default=dict, blank=True)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_orders')
    placed_at = models.DateTimeField(default=timezone.now)
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('branch', 'token_date', 'token_number')
        ordering = ['-placed_at']

    def __str__(self):
        return f"Token #{self.token_number} ({self.status}) at {self.branch.name}"

    @property
    def order_code(self):
        return f"ORD-{self.token_date:%Y%m%d}-{self.token_number:03d}"

    @property
    def is_cancelled(self):
        return self.status == OrderStatus.CANCELLED

    def to_dict(self, with_items=True):
        data = {
            'id': self.id,
            'order_code': self.order_code,
            'token_number': self.token_number,
            'token_date': self.token_date.isoformat(),
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'table_id': self.table_id,
            'customer_id': self.customer_id,
            'session_id': self.session_id,
            'customer_name': self.customer_name,
            'customer_phone': self.customer_phone,
            'order_type': self.order_type,
            'status': self.status,
            'payment_method': self.payment_method,
            'payment_status': self.payment_status,
            'subtotal': float(self.subtotal),
            'tax_amount': float(self.tax_amount),
            'tax_details': self.tax_details,
            'total_amount': float(self.total_amount),
            'notes': self.notes,
            'placed_at': self.placed_at.isoformat(),
            'paid_at': self.paid_at.isoformat() if self.paid_at else None,
            'cancelled_at': self.cancelled_at.isoformat() if self.cancelled_at else None,
        }
        if with_items:
            data['items'] = [item.to_dict() for item in self.items.all()]
        return data


class OrderItem(models.Model):
    """Snapshot of a line at order time; survives menu edits and deletes"""
    order = models.ForeignKey(Order, related_name='items', on_delete=models.CASCADE)
    menu_item = models.ForeignKey('menu.MenuItem', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    name = models.CharField(max_length=150)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2)
    customizations = models.JSONField(default=dict, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.quantity}x {self.name} for Order #{self.order_id}"

    def to_dict(self):
        return {
            'menu_item_id': self.menu_item_id,
            'name': self.name,
            'price': float(self.price),
            'quantity': self.quantity,
            'subtotal': float(self.subtotal),
            'customizations': self.customizations,
            'notes': self.notes,
        }
