# menu/models.py
from django.core.exceptions import ValidationError
from django.db import models

from orderease.apps.restaurants.models import Restaurant, Branch
from orderease.apps.menu.schemas import size_variants
from orderease.utils.lifecycle import LifecycleModel


class Category(LifecycleModel):
    """Food categories like Breakfast, Coffee, Meals; may nest under a parent"""
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='categories')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, null=True, blank=True, related_name='categories')
    parent = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='children')
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    display_order = models.PositiveIntegerField(default=0)
    image_url = models.URLField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "Categories"
        ordering = ['display_order', 'name']

    def __str__(self):
        return self.name

    def validate_parent(self, parent):
        """Raise ValidationError if `parent` would put this category in a cycle"""
        if parent is None:
            return
        if parent.restaurant_id != self.restaurant_id:
            raise ValidationError('Parent category belongs to another restaurant')
        seen = set()
        node = parent
        while node is not None:
            if node.pk == self.pk or node.pk in seen:
                raise ValidationError('Category cannot be its own ancestor')
            seen.add(node.pk)
            node = node.parent

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'parent_id': self.parent_id,
            'name': self.name,
            'description': self.description,
            'display_order': self.display_order,
            'image_url': self.image_url,
            'lifecycle_state': self.lifecycle_state,
        }


class MenuItem(LifecycleModel):
    """Orderable dish; variant groups are validated by menu.schemas before they land here"""
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='menu_items')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, null=True, blank=True, related_name='menu_items')
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name='items')
    name = models.CharField(max_length=150)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    tags = models.JSONField(default=list, blank=True)
    is_vegetarian = models.BooleanField(default=False)
    is_featured = models.BooleanField(default=False)
    variant_groups = models.JSONField(default=list, blank=True)
    image_url = models.URLField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['category__display_order', 'name']

    def __str__(self):
        return f"{self.name} - {self.price}"

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'category_id': self.category_id,
            'name': self.name,
            'description': self.description,
            'price': float(self.price),
            'tags': self.tags,
            'is_vegetarian': self.is_vegetarian,
            'is_featured': self.is_featured,
            'variant_groups': self.variant_groups,
            'size_variants': size_variants(self.variant_groups),
            'image_url': self.image_url,
            'lifecycle_state': self.lifecycle_state,
        }
