from django.db import models

from orderease.utils.lifecycle import LifecycleModel


class Restaurant(LifecycleModel):
    name = models.CharField(max_length=150)
    brand_name = models.CharField(max_length=150, blank=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    # free text as entered by the admin; taxes.normalize_country() maps it to a code
    country = models.CharField(max_length=100, default='US')
    currency = models.CharField(max_length=3, default='USD')
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'brand_name': self.brand_name,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'country': self.country,
            'currency': self.currency,
            'phone': self.phone,
            'email': self.email,
            'lifecycle_state': self.lifecycle_state,
        }


class Branch(LifecycleModel):
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='branches')
    name = models.CharField(max_length=150)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    postal_code = models.CharField(max_length=20, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    opening_hours = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Branches"
        ordering = ['restaurant_id', 'name']

    def __str__(self):
        return f"{self.name} ({self.restaurant.name})"

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'name': self.name,
            'address': self.address,
            'city': self.city,
            'state': self.state,
            'postal_code': self.postal_code,
            'phone': self.phone,
            'email': self.email,
            'opening_hours': self.opening_hours,
            'lifecycle_state': self.lifecycle_state,
        }
