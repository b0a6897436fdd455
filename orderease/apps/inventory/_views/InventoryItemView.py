from decimal import Decimal, InvalidOperation

from django.db.models import Q
from django.utils.dateparse import parse_date
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.inventory.models import InventoryItem, Supplier, StockStatus
from orderease.apps.inventory.services import adjust_stock, parse_quantity
from orderease.apps.menu.models import MenuItem
from orderease.apps.utils import user_allowed_branches, ensure_can_access_branch, get_branch_for_user
from orderease.utils.exceptions import OrderEaseError
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

TEXT_FIELDS = ['name', 'sku', 'category', 'description', 'notes']
QTY_FIELDS = ['low_threshold', 'critical_threshold']
PRICE_FIELDS = ['cost_price', 'sale_price']


def get_item_for_user(request, item_id):
    item = InventoryItem.objects.alive().filter(pk=item_id).first()
    if item is None:
        return None, Response({'status': 'error', 'message': 'Inventory item not found'}, status=status.HTTP_404_NOT_FOUND)
    if not ensure_can_access_branch(request.user, item.branch_id):
        logger.warning(f"{request.user.email} attempted to access inventory item {item_id}")
        return None, Response({'status': 'error', 'message': 'You do not have access to this item'}, status=status.HTTP_403_FORBIDDEN)
    return item, None


def apply_item_fields(item, data):
    """Copy editable fields from request data onto the item; raises OrderEaseError"""
    for field in TEXT_FIELDS:
        if field in data:
            setattr(item, field, str(data[field] or '').strip())
    if not item.name:
        raise OrderEaseError('Item name is required')

    if 'unit' in data:
        if data['unit'] not in dict(InventoryItem.UNIT_CHOICES):
            raise OrderEaseError(f"Invalid unit '{data['unit']}'")
        item.unit = data['unit']

    for field in QTY_FIELDS:
        if field in data:
            setattr(item, field, parse_quantity(data[field], field))

    for field in PRICE_FIELDS:
        if field in data:
            if data[field] in (None, ''):
                setattr(item, field, None)
                continue
            try:
                price = Decimal(str(data[field]))
            except InvalidOperation:
                raise OrderEaseError(f"{field} must be a number")
            if price < 0:
                raise OrderEaseError(f"{field} cannot be negative")
            setattr(item, field, price)

    if 'expiry_date' in data:
        item.expiry_date = parse_date(data['expiry_date']) if data['expiry_date'] else None
        if data['expiry_date'] and item.expiry_date is None:
            raise OrderEaseError('expiry_date must be YYYY-MM-DD')

    if 'supplier_id' in data:
        item.supplier = None
        if data['supplier_id']:
            item.supplier = Supplier.objects.alive().filter(pk=data['supplier_id'], restaurant_id=item.restaurant_id).first()
            if item.supplier is None:
                raise OrderEaseError('Invalid supplier ID')

    if 'menu_item_id' in data:
        item.menu_item = None
        if data['menu_item_id']:
            item.menu_item = MenuItem.objects.alive().filter(pk=data['menu_item_id'], restaurant_id=item.restaurant_id).first()
            if item.menu_item is None:
                raise OrderEaseError('Invalid menu item ID')

    if item.critical_threshold > item.low_threshold:
        raise OrderEaseError('critical_threshold cannot exceed low_threshold')


class InventoryItemView(APIView):
    """
    - GET: stock items (?branch_id=, ?category=, ?search=, ?low_stock=true)
    - POST: add a stock item; an initial current_qty is recorded as a purchase
    """
    policy_resource = 'inventory'

    def get(self, request):
        items = InventoryItem.objects.alive().filter(branch__in=user_allowed_branches(request.user))
        if request.GET.get('branch_id'):
            items = items.filter(branch_id=request.GET['branch_id'])
        if request.GET.get('category'):
            items = items.filter(category__iexact=request.GET['category'])
        if request.GET.get('search'):
            term = request.GET['search']
            items = items.filter(Q(name__icontains=term) | Q(sku__icontains=term))

        data = [item.to_dict() for item in items]
        if request.GET.get('low_stock') == 'true':
            data = [item for item in data if item['status'] != StockStatus.IN_STOCK]
        return Response({'status': 'success', 'data': data}, status=status.HTTP_200_OK)

    def post(self, request):
        data = request.data
        branch = get_branch_for_user(request.user, data.get('branch_id') or request.user.branch_id)
        item = InventoryItem(restaurant_id=branch.restaurant_id, branch=branch)
        apply_item_fields(item, data)
        item.save()

        opening_qty = parse_quantity(data.get('current_qty', 0), 'current_qty')
        if opening_qty > 0:
            item, _ = adjust_stock(item, opening_qty, 'purchase', user=request.user, notes='Opening stock')

        logger.info(f"Inventory item {item.name} created in branch {branch.id} by {request.user.email}")
        return Response({'status': 'success', 'data': item.to_dict()}, status=status.HTTP_201_CREATED)


class InventoryItemDetailView(APIView):
    """current_qty is not editable here; stock moves go through the adjust endpoint"""
    policy_resource = 'inventory'

    def get(self, request, item_id):
        item, error = get_item_for_user(request, item_id)
        if error:
            return error
        return Response({'status': 'success', 'data': item.to_dict()})

    def patch(self, request, item_id):
        item, error = get_item_for_user(request, item_id)
        if error:
            return error
        if 'current_qty' in request.data:
            return Response({'status': 'error', 'message': 'Use the adjust endpoint to change stock'}, status=status.HTTP_400_BAD_REQUEST)
        apply_item_fields(item, request.data)
        if 'lifecycle_state' in request.data:
            try:
                item.set_lifecycle(request.data['lifecycle_state'])
            except ValueError as e:
                return Response({'status': 'error', 'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        item.save()
        logger.info(f"Inventory item {item.id} updated by {request.user.email}")
        return Response({'status': 'success', 'data': item.to_dict()})

    def delete(self, request, item_id):
        item, error = get_item_for_user(request, item_id)
        if error:
            return error
        item.soft_delete()
        logger.info(f"Inventory item {item.id} deleted by {request.user.email}")
        return Response({'status': 'success', 'message': f"Inventory item {item.name} deleted"})


class InventoryAdjustView(APIView):
    """
    - GET: adjustment history of an item, newest first
    - POST {delta_qty, reason?, notes?}: restock (positive) or consume (negative)
    """
    policy_resource = 'inventory'
    policy_actions = {'POST': 'adjust'}

    def get(self, request, item_id):
        item, error = get_item_for_user(request, item_id)
        if error:
            return error
        history = [adjustment.to_dict() for adjustment in item.adjustments.all()]
        return Response({'status': 'success', 'data': {'item': item.to_dict(), 'history': history}})

    def post(self, request, item_id):
        item, error = get_item_for_user(request, item_id)
        if error:
            return error
        data = request.data
        if data.get('delta_qty') is None:
            return Response({'status': 'error', 'message': 'delta_qty is required'}, status=status.HTTP_400_BAD_REQUEST)
        item, adjustment = adjust_stock(
            item,
            data['delta_qty'],
            reason=data.get('reason', 'correction'),
            user=request.user,
            notes=data.get('notes', ''),
        )
        return Response({
            'status': 'success',
            'data': {'item': item.to_dict(), 'adjustment': adjustment.to_dict()},
        }, status=status.HTTP_201_CREATED)
