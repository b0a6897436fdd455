from django.core.exceptions import ValidationError
from django.db.models import Q
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.menu.models import Category
from orderease.apps.utils import user_allowed_restaurants, resolve_scope, ensure_can_access_restaurant
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


def categories_for(restaurants, branch_id=None, restaurant_id=None):
    """Live categories; a branch sees its own rows plus restaurant-wide ones"""
    categories = Category.objects.alive().filter(restaurant__in=restaurants)
    if restaurant_id:
        categories = categories.filter(restaurant_id=restaurant_id)
    if branch_id:
        categories = categories.filter(Q(branch_id=branch_id) | Q(branch__isnull=True))
    return categories


class CategoryView(APIView):
    """
    - GET: categories (?branch_id=, ?restaurant_id=, ?parent_id=)
    - POST: create category
    """
    policy_resource = 'menu'

    def get(self, request):
        categories = categories_for(
            user_allowed_restaurants(request.user),
            branch_id=request.GET.get('branch_id'),
            restaurant_id=request.GET.get('restaurant_id'),
        )
        parent_id = request.GET.get('parent_id')
        if parent_id:
            categories = categories.filter(parent_id=parent_id)
        return Response([c.to_dict() for c in categories])

    def post(self, request):
        data = request.data
        if not data.get('name'):
            return Response({'error': 'Category name is required'}, status=status.HTTP_400_BAD_REQUEST)

        restaurant, branch = resolve_scope(request.user, data.get('restaurant_id'), data.get('branch_id'))

        parent = None
        if data.get('parent_id'):
            parent = Category.objects.alive().filter(pk=data['parent_id'], restaurant=restaurant).first()
            if parent is None:
                return Response({'error': 'Invalid parent category'}, status=status.HTTP_400_BAD_REQUEST)

        category = Category.objects.create(
            restaurant=restaurant,
            branch=branch,
            parent=parent,
            name=data['name'],
            description=data.get('description', ''),
            display_order=data.get('display_order', 0),
            image_url=data.get('image_url', ''),
        )
        logger.info(f"Category {category.id} '{category.name}' created by {request.user.email}")
        return Response(category.to_dict(), status=status.HTTP_201_CREATED)


class CategoryDetailView(APIView):
    policy_resource = 'menu'

    def _get_category(self, request, category_id):
        category = Category.objects.alive().filter(pk=category_id).first()
        if category is None:
            return None, Response({'error': 'Category not found'}, status=status.HTTP_404_NOT_FOUND)
        if not ensure_can_access_restaurant(request.user, category.restaurant_id):
            logger.warning(f"{request.user.email} attempted to access category {category_id}")
            return None, Response({'error': 'You do not have access to this category'}, status=status.HTTP_403_FORBIDDEN)
        return category, None

    def get(self, request, category_id):
        category, error = self._get_category(request, category_id)
        if error:
            return error
        data = category.to_dict()
        data['children'] = [c.to_dict() for c in category.children.alive()]
        return Response(data)

    def patch(self, request, category_id):
        category, error = self._get_category(request, category_id)
        if error:
            return error

        data = request.data
        for field in ['name', 'description', 'display_order', 'image_url']:
            if field in data:
                setattr(category, field, data[field])

        if 'parent_id' in data:
            parent = None
            if data['parent_id']:
                parent = Category.objects.alive().filter(pk=data['parent_id']).first()
                if parent is None:
                    return Response({'error': 'Invalid parent category'}, status=status.HTTP_400_BAD_REQUEST)
            try:
                category.validate_parent(parent)
            except ValidationError as e:
                logger.warning(f"Rejected parent {data['parent_id']} for category {category.id}: {e.messages[0]}")
                return Response({'error': e.messages[0]}, status=status.HTTP_400_BAD_REQUEST)
            category.parent = parent

        if 'lifecycle_state' in data:
            try:
                category.set_lifecycle(data['lifecycle_state'])
            except ValueError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        category.save()
        logger.info(f"Category {category.id} updated by {request.user.email}")
        return Response(category.to_dict())

    def delete(self, request, category_id):
        category, error = self._get_category(request, category_id)
        if error:
            return error
        if category.items.alive().exists():
            return Response({'error': 'Category still has menu items'}, status=status.HTTP_400_BAD_REQUEST)
        category.soft_delete()
        category.children.alive().update(parent=None)
        logger.info(f"Category {category.id} deleted by {request.user.email}")
        return Response({'message': 'Category deleted successfully'})
