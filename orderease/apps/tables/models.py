from django.db import models
from django.utils import timezone

from orderease.apps.restaurants.models import Restaurant, Branch


class TableStatus(models.TextChoices):
    AVAILABLE = 'available', 'Available'
    OCCUPIED = 'occupied', 'Occupied'
    RESERVED = 'reserved', 'Reserved'
    MAINTENANCE = 'maintenance', 'Maintenance'


# labels the POS and admin UIs send that are stored under another status
STATUS_ALIASES = {
    'blocked': TableStatus.MAINTENANCE,
}


class ReservationStatus(models.TextChoices):
    CONFIRMED = 'confirmed', 'Confirmed'
    PENDING = 'pending', 'Pending'
    CANCELLED = 'cancelled', 'Cancelled'
    COMPLETED = 'completed', 'Completed'


# reservations in these states hold their time slot
BLOCKING_RESERVATIONS = (ReservationStatus.CONFIRMED, ReservationStatus.PENDING)


class Floor(models.Model):
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='floors')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='floors')
    name = models.CharField(max_length=100)
    level = models.IntegerField(default=0)  # 0 for ground floor
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['branch_id', 'level']
        unique_together = ('branch', 'level')

    def __str__(self):
        return f"{self.name} (level {self.level})"

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'name': self.name,
            'level': self.level,
            'description': self.description,
        }


class DiningTable(models.Model):
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='tables')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='tables')
    floor = models.ForeignKey(Floor, on_delete=models.SET_NULL, null=True, blank=True, related_name='tables')
    name = models.CharField(max_length=50)
    capacity = models.PositiveIntegerField(default=4)
    zone = models.CharField(max_length=50, default='Main')
    status = models.CharField(max_length=15, choices=TableStatus.choices, default=TableStatus.AVAILABLE)
    current_order = models.ForeignKey('orders.Order', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    is_vip = models.BooleanField(default=False)
    minimum_spend = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['branch_id', 'name']
        unique_together = ('branch', 'name')

    def __str__(self):
        return f"Table {self.name} ({self.status})"

    def is_available_at(self, start, end):
        """True if nothing blocks the [start, end) slot; tables under maintenance never are"""
        if self.status == TableStatus.MAINTENANCE:
            return False
        return not self.reservations.filter(
            status__in=BLOCKING_RESERVATIONS,
            start_time__lt=end,
            end_time__gt=start,
        ).exists()

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'floor_id': self.floor_id,
            'name': self.name,
            'capacity': self.capacity,
            'zone': self.zone,
            'status': self.status,
            'current_order_id': self.current_order_id,
            'is_vip': self.is_vip,
            'minimum_spend': float(self.minimum_spend),
            'notes': self.notes,
        }


class Reservation(models.Model):
    table = models.ForeignKey(DiningTable, on_delete=models.CASCADE, related_name='reservations')
    customer = models.ForeignKey('customers.Customer', on_delete=models.SET_NULL, null=True, blank=True, related_name='reservations')
    customer_name = models.CharField(max_length=150)
    customer_phone = models.CharField(max_length=20, blank=True)
    customer_email = models.EmailField(blank=True)
    party_size = models.PositiveIntegerField(default=2)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=10, choices=ReservationStatus.choices, default=ReservationStatus.CONFIRMED)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['start_time']

    def __str__(self):
        return f"{self.customer_name} @ {self.table.name} {self.start_time:%Y-%m-%d %H:%M}"

    def covers(self, moment=None):
        moment = moment or timezone.now()
        return self.start_time <= moment <= self.end_time

    def to_dict(self):
        return {
            'id': self.id,
            'table_id': self.table_id,
            'customer_id': self.customer_id,
            'customer_name': self.customer_name,
            'customer_phone': self.customer_phone,
            'customer_email': self.customer_email,
            'party_size': self.party_size,
            'reservation_date': timezone.localtime(self.start_time).date().isoformat(),
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'notes': self.notes,
            'status': self.status,
        }
