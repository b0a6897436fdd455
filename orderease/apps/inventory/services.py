from decimal import Decimal, InvalidOperation

from django.db import transaction

from orderease.apps.inventory.models import (
    AdjustmentReason, InventoryAdjustment, InventoryItem, Recipe, RecipeIngredient, StockStatus,
)
from orderease.apps.realtime.broadcast import emit_inventory_notification
from orderease.utils.exceptions import OrderEaseError
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


def parse_quantity(value, field, allow_negative=False):
    try:
        qty = Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise OrderEaseError(f"{field} must be a number")
    if not qty.is_finite():
        raise OrderEaseError(f"{field} must be a number")
    if qty < 0 and not allow_negative:
        raise OrderEaseError(f"{field} cannot be negative")
    return qty


ALERT_STATUSES = (StockStatus.LOW, StockStatus.CRITICAL, StockStatus.OUT)
WRITE_OFF_REASONS = (AdjustmentReason.WASTAGE, AdjustmentReason.BREAKAGE)


@transaction.atomic
def adjust_stock(item, delta_qty, reason=AdjustmentReason.CORRECTION, user=None, notes='', order=None):
    """Apply a stock movement and record it. Stock never goes below zero."""
    if reason not in AdjustmentReason.values:
        raise OrderEaseError(f"Invalid adjustment reason '{reason}'")
    delta = parse_quantity(delta_qty, 'delta_qty', allow_negative=True)
    if delta == 0:
        raise OrderEaseError('delta_qty cannot be zero')

    item = InventoryItem.objects.select_for_update().get(pk=item.pk)
    new_qty = item.current_qty + delta
    if new_qty < 0:
        raise OrderEaseError(f"Insufficient stock for {item.name}: {item.current_qty} {item.unit} available")

    previous_status = item.stock_status
    item.current_qty = new_qty
    item.save(update_fields=['current_qty', 'updated_at'])
    adjustment = InventoryAdjustment.objects.create(
        item=item, delta_qty=delta, reason=reason, user=user, notes=notes or '', order=order,
    )
    if reason in WRITE_OFF_REASONS:
        transaction.on_commit(lambda: emit_inventory_notification(item, 'wastage', qty=delta, reason=reason, notes=notes))
    if item.stock_status != previous_status and item.stock_status in ALERT_STATUSES:
        logger.warning(f"Inventory item {item.id} ({item.name}) is {item.stock_status}: {item.current_qty} {item.unit}")
        transaction.on_commit(lambda: emit_inventory_notification(item, 'status'))
    logger.info(f"Stock of {item.name} adjusted by {delta} ({reason}) -> {item.current_qty}")
    return item, adjustment


def resolve_ingredients(restaurant_id, raw_ingredients):
    """
    Validate [{inventory_item_id, qty, waste_pct?, notes?}] against the
    inventory items visible to the recipe's restaurant.
    """
    if not isinstance(raw_ingredients, list):
        raise OrderEaseError('ingredients must be a list')

    resolved, seen = [], set()
    for raw in raw_ingredients:
        item_id = raw.get('inventory_item_id')
        if item_id in seen:
            raise OrderEaseError(f"Inventory item {item_id} is listed twice")
        seen.add(item_id)
        item = InventoryItem.objects.alive().filter(pk=item_id, restaurant_id=restaurant_id).first()
        if item is None:
            raise OrderEaseError(f"Invalid inventory item ID: {item_id}")
        waste_pct = parse_quantity(raw.get('waste_pct', 0), 'waste_pct')
        if waste_pct > 100:
            raise OrderEaseError('waste_pct cannot exceed 100')
        resolved.append({
            'inventory_item': item,
            'qty': parse_quantity(raw.get('qty'), 'qty'),
            'waste_pct': waste_pct,
            'notes': raw.get('notes', '') or '',
        })
    return resolved


@transaction.atomic
def set_recipe_ingredients(recipe, raw_ingredients):
    resolved = resolve_ingredients(recipe.restaurant_id, raw_ingredients)
    recipe.ingredients.all().delete()
    RecipeIngredient.objects.bulk_create([RecipeIngredient(recipe=recipe, **line) for line in resolved])
    logger.info(f"Recipe {recipe.id} now has {len(resolved)} ingredients")
    return recipe


def recipe_for_menu_item(menu_item):
    return Recipe.objects.filter(menu_item=menu_item).prefetch_related('ingredients__inventory_item').first()
