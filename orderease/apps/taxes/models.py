from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models

from orderease.utils.lifecycle import LifecycleModel, LifecycleState

DEFAULT_COUNTRY = 'DEFAULT'


class Tax(LifecycleModel):
    """One tax rate per country code; the DEFAULT row is the fallback for unknown countries"""
    country = models.CharField(max_length=10, unique=True)
    name = models.CharField(max_length=100)
    percentage = models.DecimalField(
        max_digits=5, decimal_places=2,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    is_compound = models.BooleanField(default=False)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Taxes"
        ordering = ['country']

    def __str__(self):
        return f"{self.country}: {self.name} {self.percentage}%"

    @property
    def is_default(self):
        return self.country == DEFAULT_COUNTRY

    def save(self, *args, **kwargs):
        self.country = (self.country or '').strip().upper()
        super().save(*args, **kwargs)

    def to_dict(self):
        return {
            'id': self.id,
            'country': self.country,
            'name': self.name,
            'percentage': float(self.percentage),
            'is_compound': self.is_compound,
            'description': self.description,
            'active': self.lifecycle_state == LifecycleState.ACTIVE,
            'is_default': self.is_default,
            'is_generated': False,
        }
