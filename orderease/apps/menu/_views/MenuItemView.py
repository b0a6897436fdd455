from decimal import Decimal, InvalidOperation

from django.db.models import Q
from pydantic import ValidationError as SchemaError
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.menu.models import Category, MenuItem
from orderease.apps.menu.schemas import parse_variant_groups
from orderease.apps.utils import user_allowed_restaurants, resolve_scope, ensure_can_access_restaurant
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

FLAG_FILTERS = {'featured': 'is_featured', 'vegetarian': 'is_vegetarian'}


def parse_price(value):
    try:
        price = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    return price if price >= 0 else None


def variant_error(e):
    if isinstance(e, SchemaError):
        first = e.errors()[0]
        location = '.'.join(str(part) for part in first['loc'])
        return f"Invalid variant_groups at {location}: {first['msg']}"
    return str(e)


def menu_items_for(restaurants, params):
    items = MenuItem.objects.alive().filter(restaurant__in=restaurants).select_related('category')
    if params.get('restaurant_id'):
        items = items.filter(restaurant_id=params['restaurant_id'])
    if params.get('branch_id'):
        items = items.filter(Q(branch_id=params['branch_id']) | Q(branch__isnull=True))
    if params.get('category_id'):
        items = items.filter(category_id=params['category_id'])
    for param, field in FLAG_FILTERS.items():
        if params.get(param) in ('true', '1'):
            items = items.filter(**{field: True})
    if params.get('tag'):
        # JSON containment lookups are not portable to sqlite
        return [item for item in items if params['tag'] in (item.tags or [])]
    return items


class MenuItemView(APIView):
    """
    - GET: menu items (?category_id=, ?branch_id=, ?featured=true, ?vegetarian=true, ?tag=)
    - POST: create menu item
    """
    policy_resource = 'menu'

    def get(self, request):
        items = menu_items_for(user_allowed_restaurants(request.user), request.GET)
        return Response([item.to_dict() for item in items])

    def post(self, request):
        data = request.data
        if missing := [f for f in ['name', 'price', 'category_id'] if data.get(f) in (None, '')]:
            return Response({'error': f'Missing fields: {", ".join(missing)}'}, status=status.HTTP_400_BAD_REQUEST)

        price = parse_price(data['price'])
        if price is None:
            return Response({'error': 'Price must be a non-negative number'}, status=status.HTTP_400_BAD_REQUEST)

        restaurant, branch = resolve_scope(request.user, data.get('restaurant_id'), data.get('branch_id'))

        category = Category.objects.alive().filter(pk=data['category_id'], restaurant=restaurant).first()
        if category is None:
            logger.warning(f"Menu item creation with invalid category {data['category_id']} by {request.user.email}")
            return Response({'error': 'Invalid category ID'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            variant_groups = parse_variant_groups(data.get('variant_groups'))
        except (SchemaError, ValueError) as e:
            return Response({'error': variant_error(e)}, status=status.HTTP_400_BAD_REQUEST)

        tags = data.get('tags') or []
        if not isinstance(tags, list):
            return Response({'error': 'tags must be a list'}, status=status.HTTP_400_BAD_REQUEST)

        item = MenuItem.objects.create(
            restaurant=restaurant,
            branch=branch,
            category=category,
            name=data['name'],
            description=data.get('description', ''),
            price=price,
            tags=[str(t).strip() for t in tags if str(t).strip()],
            is_vegetarian=bool(data.get('is_vegetarian', False)),
            is_featured=bool(data.get('is_featured', False)),
            variant_groups=variant_groups,
            image_url=data.get('image_url', ''),
        )
        logger.info(f"Menu item {item.id} '{item.name}' created by {request.user.email}")
        return Response(item.to_dict(), status=status.HTTP_201_CREATED)


class MenuItemDetailView(APIView):
    policy_resource = 'menu'

    def _get_item(self, request, item_id):
        item = MenuItem.objects.alive().filter(pk=item_id).first()
        if item is None:
            return None, Response({'error': 'Menu item not found'}, status=status.HTTP_404_NOT_FOUND)
        if not ensure_can_access_restaurant(request.user, item.restaurant_id):
            logger.warning(f"{request.user.email} attempted to access menu item {item_id}")
            return None, Response({'error': 'You do not have access to this menu item'}, status=status.HTTP_403_FORBIDDEN)
        return item, None

    def get(self, request, item_id):
        item, error = self._get_item(request, item_id)
        if error:
            return error
        return Response(item.to_dict())

    def patch(self, request, item_id):
        item, error = self._get_item(request, item_id)
        if error:
            return error

        data = request.data
        for field in ['name', 'description', 'image_url']:
            if field in data:
                setattr(item, field, data[field])
        for field in ['is_vegetarian', 'is_featured']:
            if field in data:
                setattr(item, field, bool(data[field]))

        if 'price' in data:
            price = parse_price(data['price'])
            if price is None:
                return Response({'error': 'Price must be a non-negative number'}, status=status.HTTP_400_BAD_REQUEST)
            item.price = price

        if 'category_id' in data:
            category = Category.objects.alive().filter(pk=data['category_id'], restaurant_id=item.restaurant_id).first()
            if category is None:
                return Response({'error': 'Invalid category ID'}, status=status.HTTP_400_BAD_REQUEST)
            item.category = category

        if 'tags' in data:
            if not isinstance(data['tags'], list):
                return Response({'error': 'tags must be a list'}, status=status.HTTP_400_BAD_REQUEST)
            item.tags = [str(t).strip() for t in data['tags'] if str(t).strip()]

        if 'variant_groups' in data:
            try:
                item.variant_groups = parse_variant_groups(data['variant_groups'])
            except (SchemaError, ValueError) as e:
                return Response({'error': variant_error(e)}, status=status.HTTP_400_BAD_REQUEST)

        if 'lifecycle_state' in data:
            try:
                item.set_lifecycle(data['lifecycle_state'])
            except ValueError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        item.save()
        logger.info(f"Menu item {item.id} updated by {request.user.email}")
        return Response(item.to_dict())

    def delete(self, request, item_id):
        item, error = self._get_item(request, item_id)
        if error:
            return error
        item.soft_delete()
        logger.info(f"Menu item {item.id} deleted by {request.user.email}")
        return Response({'message': 'Menu item deleted successfully'})
