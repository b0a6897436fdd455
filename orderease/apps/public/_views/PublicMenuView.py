from rest_framework.views import APIView
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.inventory.models import InventoryItem, StockStatus
from orderease.apps.menu.models import Category, MenuItem
from orderease.apps.restaurants.models import Branch, Restaurant
from orderease.apps.tables.models import Floor
from orderease.apps.taxes.services import get_tax_for_country
from orderease.apps.menu._views.MenuItemView import menu_items_for
from orderease.apps.menu._views.CategoryView import categories_for
from orderease.utils.lifecycle import LifecycleState

UNAVAILABLE = (StockStatus.OUT, StockStatus.EXPIRED)


class PublicView(APIView):
    """Base for the customer app endpoints: no token, no role policy"""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get_branch(self, branch_id):
        return Branch.objects.active().filter(pk=branch_id).select_related('restaurant').first()

    def branch_or_error(self, branch_id):
        if not branch_id:
            return None, Response({'error': 'branch_id is required'}, status=status.HTTP_400_BAD_REQUEST)
        branch = self.get_branch(branch_id)
        if branch is None:
            return None, Response({'error': 'Branch not found'}, status=status.HTTP_404_NOT_FOUND)
        return branch, None


class PublicBranchView(PublicView):
    def get(self, request, branch_id):
        branch = self.get_branch(branch_id)
        if branch is None:
            return Response({'error': 'Branch not found'}, status=status.HTTP_404_NOT_FOUND)
        restaurant = branch.restaurant
        data = branch.to_dict()
        data['restaurant'] = {
            'id': restaurant.id,
            'name': restaurant.name,
            'brand_name': restaurant.brand_name,
            'country': restaurant.country,
            'currency': restaurant.currency,
        }
        data['tax'] = get_tax_for_country(restaurant.country)
        return Response(data)


class PublicCategoryView(PublicView):
    """GET ?branch_id="""

    def get(self, request):
        branch, error = self.branch_or_error(request.GET.get('branch_id'))
        if error:
            return error
        restaurants = Restaurant.objects.active().filter(pk=branch.restaurant_id)
        categories = categories_for(restaurants, branch_id=branch.id).active()
        return Response([category.to_dict() for category in categories])


class PublicMenuView(PublicView):
    """GET ?branch_id=&category_id=&featured=&vegetarian=&tag="""

    def get(self, request):
        branch, error = self.branch_or_error(request.GET.get('branch_id'))
        if error:
            return error
        restaurants = Restaurant.objects.active().filter(pk=branch.restaurant_id)
        params = {**request.GET.dict(), 'branch_id': branch.id}
        items = [item for item in menu_items_for(restaurants, params) if item.lifecycle_state == LifecycleState.ACTIVE]
        return Response([item.to_dict() for item in items])


class PublicTaxView(PublicView):
    def get(self, request, country):
        return Response(get_tax_for_country(country))


class PublicFloorView(PublicView):
    """GET ?branch_id=: floors with their tables, for table selection"""

    def get(self, request):
        branch, error = self.branch_or_error(request.GET.get('branch_id'))
        if error:
            return error
        floors = []
        for floor in Floor.objects.filter(branch=branch).prefetch_related('tables'):
            data = floor.to_dict()
            data['tables'] = [
                {'id': t.id, 'name': t.name, 'capacity': t.capacity, 'zone': t.zone, 'status': t.status}
                for t in floor.tables.all()
            ]
            floors.append(data)
        return Response(floors)


class PublicInventoryView(PublicView):
    """GET ?branch_id=: which menu items are out of stock"""

    def get(self, request):
        branch, error = self.branch_or_error(request.GET.get('branch_id'))
        if error:
            return error
        availability = {}
        stock = InventoryItem.objects.active().filter(branch=branch, menu_item__isnull=False)
        for item in stock:
            available = item.stock_status not in UNAVAILABLE
            # a menu item is available only while all of its linked stock is
            availability[item.menu_item_id] = availability.get(item.menu_item_id, True) and available
        return Response([
            {'menu_item_id': menu_item_id, 'available': available}
            for menu_item_id, available in sorted(availability.items())
        ])
