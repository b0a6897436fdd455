import uuid

from django.db import models
from django.utils import timezone

from orderease.apps.restaurants.models import Restaurant, Branch
from orderease.utils.lifecycle import LifecycleModel


def generate_customer_id():
    return f"CUST-{uuid.uuid4().hex[:10].upper()}"


class Customer(LifecycleModel):
    """A guest identified by phone or email, plus a generated customer_id for the customer app"""
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='customers')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='customers')
    customer_id = models.CharField(max_length=20, unique=True, default=generate_customer_id, editable=False)
    name = models.CharField(max_length=150)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    last_activity = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-last_activity']

    def __str__(self):
        return f"{self.name} ({self.customer_id})"

    def to_dict(self):
        return {
            'id': self.id,
            'customer_id': self.customer_id,
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'last_activity': self.last_activity.isoformat(),
            'lifecycle_state': self.lifecycle_state,
        }


class CustomerFavorite(models.Model):
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='favorites')
    menu_item = models.ForeignKey('menu.MenuItem', on_delete=models.CASCADE, related_name='+')
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-added_at']
        unique_together = ('customer', 'menu_item')

    def to_dict(self):
        return {
            'menu_item_id': self.menu_item_id,
            'name': self.menu_item.name,
            'price': float(self.menu_item.price),
            'added_at': self.added_at.isoformat(),
        }
