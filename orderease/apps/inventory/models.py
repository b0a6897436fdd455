from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone

from orderease.apps.restaurants.models import Restaurant, Branch
from orderease.utils.lifecycle import LifecycleModel


class Supplier(LifecycleModel):
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='suppliers')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, null=True, blank=True, related_name='suppliers')
    name = models.CharField(max_length=150)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    contact_person = models.CharField(max_length=150, blank=True)
    address = models.TextField(blank=True)
    tax_number = models.CharField(max_length=50, blank=True)  # GST / VAT id
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'contact_person': self.contact_person,
            'address': self.address,
            'tax_number': self.tax_number,
            'notes': self.notes,
            'lifecycle_state': self.lifecycle_state,
        }


class StockStatus(models.TextChoices):
    IN_STOCK = 'in_stock', 'In stock'
    LOW = 'low', 'Low'
    CRITICAL = 'critical', 'Critical'
    OUT = 'out', 'Out of stock'
    EXPIRED = 'expired', 'Expired'


class InventoryItem(LifecycleModel):

    UNIT_CHOICES = [
        ('kg', 'Kg'),
        ('g', 'Grams'),
        ('l', 'Liters'),
        ('ml', 'ML'),
        ('pcs', 'Pieces'),
        ('pack', 'Pack'),
        ('box', 'Box'),
        ('bottle', 'Bottle'),
        ('dozen', 'Dozen'),
        ('bag', 'Bag'),
        ('custom', 'Custom'),
    ]

    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='inventory_items')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, related_name='inventory_items')
    supplier = models.ForeignKey(Supplier, on_delete=models.SET_NULL, null=True, blank=True, related_name='items')
    menu_item = models.ForeignKey('menu.MenuItem', on_delete=models.SET_NULL, null=True, blank=True, related_name='inventory_items')
    name = models.CharField(max_length=150)
    sku = models.CharField(max_length=50, blank=True, db_index=True)
    category = models.CharField(max_length=50, default='General')
    unit = models.CharField(max_length=10, choices=UNIT_CHOICES, default='pcs')
    current_qty = models.DecimalField(max_digits=12, decimal_places=3, default=0, validators=[MinValueValidator(0)])
    low_threshold = models.DecimalField(max_digits=12, decimal_places=3, default=5, validators=[MinValueValidator(0)])
    critical_threshold = models.DecimalField(max_digits=12, decimal_places=3, default=1, validators=[MinValueValidator(0)])
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    sale_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    description = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.current_qty} {self.unit})"

    @property
    def stock_status(self):
        """Expired stock first, then out / critical / low against the thresholds"""
        if self.expiry_date and self.current_qty > 0 and self.expiry_date < timezone.localdate():
            return StockStatus.EXPIRED
        if self.current_qty <= 0:
            return StockStatus.OUT
        if self.current_qty <= self.critical_threshold:
            return StockStatus.CRITICAL
        if self.current_qty <= self.low_threshold:
            return StockStatus.LOW
        return StockStatus.IN_STOCK

    @property
    def is_low_stock(self):
        return self.stock_status != StockStatus.IN_STOCK

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'supplier_id': self.supplier_id,
            'menu_item_id': self.menu_item_id,
            'name': self.name,
            'sku': self.sku,
            'category': self.category,
            'unit': self.unit,
            'current_qty': float(self.current_qty),
            'low_threshold': float(self.low_threshold),
            'critical_threshold': float(self.critical_threshold),
            'cost_price': float(self.cost_price) if self.cost_price is not None else None,
            'sale_price': float(self.sale_price) if self.sale_price is not None else None,
            'expiry_date': self.expiry_date.isoformat() if self.expiry_date else None,
            'description': self.description,
            'notes': self.notes,
            'status': self.stock_status,
            'low_stock': self.is_low_stock,
            'lifecycle_state': self.lifecycle_state,
        }


class AdjustmentReason(models.TextChoices):
    PURCHASE = 'purchase', 'Purchase'
    WASTAGE = 'wastage', 'Wastage'
    BREAKAGE = 'breakage', 'Breakage'
    MANUAL = 'manual', 'Manual'
    CORRECTION = 'correction', 'Correction'
    TRANSFER = 'transfer', 'Transfer'
    SALE = 'sale', 'Sale'


class InventoryAdjustment(models.Model):
    """Append-only stock movement; current_qty on the item is the running sum"""
    item = models.ForeignKey(InventoryItem, on_delete=models.CASCADE, related_name='adjustments')
    delta_qty = models.DecimalField(max_digits=12, decimal_places=3)
    reason = models.CharField(max_length=15, choices=AdjustmentReason.choices, default=AdjustmentReason.CORRECTION)
    order = models.ForeignKey('orders.Order', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.delta_qty:+} {self.item.unit} of {self.item.name} ({self.reason})"

    def to_dict(self):
        return {
            'id': self.id,
            'item_id': self.item_id,
            'delta_qty': float(self.delta_qty),
            'reason': self.reason,
            'order_id': self.order_id,
            'user_id': self.user_id,
            'notes': self.notes,
            'created_at': self.created_at.isoformat(),
        }


class Recipe(models.Model):
    """Bill of materials for one menu item"""
    restaurant = models.ForeignKey(Restaurant, on_delete=models.CASCADE, related_name='recipes')
    branch = models.ForeignKey(Branch, on_delete=models.CASCADE, null=True, blank=True, related_name='recipes')
    menu_item = models.OneToOneField('menu.MenuItem', on_delete=models.CASCADE, related_name='recipe')
    total_qty = models.DecimalField(max_digits=10, decimal_places=3, default=1)
    total_unit = models.CharField(max_length=20, blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    updated_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Recipe for {self.menu_item.name}"

    def to_dict(self):
        return {
            'id': self.id,
            'restaurant_id': self.restaurant_id,
            'branch_id': self.branch_id,
            'menu_item_id': self.menu_item_id,
            'menu_item_name': self.menu_item.name,
            'total_qty': float(self.total_qty),
            'total_unit': self.total_unit,
            'notes': self.notes,
            'ingredients': [ingredient.to_dict() for ingredient in self.ingredients.all()],
        }


class RecipeIngredient(models.Model):
    recipe = models.ForeignKey(Recipe, related_name='ingredients', on_delete=models.CASCADE)
    inventory_item = models.ForeignKey(InventoryItem, on_delete=models.PROTECT, related_name='recipe_uses')
    qty = models.DecimalField(max_digits=10, decimal_places=3, validators=[MinValueValidator(0)])
    waste_pct = models.DecimalField(
        max_digits=5, decimal_places=2, default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    notes = models.CharField(max_length=255, blank=True)

    class Meta:
        unique_together = ('recipe', 'inventory_item')  # prevents listing the same stock item twice

    def __str__(self):
        return f"{self.qty} {self.inventory_item.unit} {self.inventory_item.name}"

    def to_dict(self):
        return {
            'inventory_item_id': self.inventory_item_id,
            'name': self.inventory_item.name,
            'unit': self.inventory_item.unit,
            'qty': float(self.qty),
            'waste_pct': float(self.waste_pct),
            'notes': self.notes,
        }
