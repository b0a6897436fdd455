from decimal import Decimal

from django.db import IntegrityError, transaction
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.inventory.models import Recipe
from orderease.apps.inventory.services import parse_quantity, recipe_for_menu_item, set_recipe_ingredients
from orderease.apps.menu.models import MenuItem
from orderease.apps.utils import user_allowed_restaurants, ensure_can_access_restaurant
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


class RecipeView(APIView):
    """
    - GET: recipes of the caller's restaurants, or ?menu_item_id= for one
    - POST {menu_item_id, ingredients: [{inventory_item_id, qty, waste_pct?, notes?}], ...}
    """
    policy_resource = 'inventory'

    def get(self, request):
        if request.GET.get('menu_item_id'):
            menu_item = MenuItem.objects.alive().filter(
                pk=request.GET['menu_item_id'], restaurant__in=user_allowed_restaurants(request.user),
            ).first()
            recipe = recipe_for_menu_item(menu_item) if menu_item else None
            if recipe is None:
                return Response({'status': 'error', 'message': 'Recipe not found'}, status=status.HTTP_404_NOT_FOUND)
            return Response({'status': 'success', 'data': recipe.to_dict()})

        recipes = Recipe.objects.filter(
            restaurant__in=user_allowed_restaurants(request.user)
        ).select_related('menu_item').prefetch_related('ingredients__inventory_item')
        return Response({'status': 'success', 'data': [recipe.to_dict() for recipe in recipes]})

    def post(self, request):
        data = request.data
        menu_item = MenuItem.objects.alive().filter(pk=data.get('menu_item_id')).first()
        if menu_item is None:
            return Response({'status': 'error', 'message': 'Invalid menu item ID'}, status=status.HTTP_400_BAD_REQUEST)
        if not ensure_can_access_restaurant(request.user, menu_item.restaurant_id):
            return Response({'status': 'error', 'message': 'You do not have access to this menu item'}, status=status.HTTP_403_FORBIDDEN)

        try:
            with transaction.atomic():
                recipe = Recipe.objects.create(
                    restaurant_id=menu_item.restaurant_id,
                    branch_id=menu_item.branch_id,
                    menu_item=menu_item,
                    total_qty=parse_quantity(data.get('total_qty', 1), 'total_qty'),
                    total_unit=data.get('total_unit', ''),
                    notes=data.get('notes', ''),
                    created_by=request.user,
                    updated_by=request.user,
                )
                set_recipe_ingredients(recipe, data.get('ingredients', []))
        except IntegrityError:
            return Response({'status': 'error', 'message': 'This menu item already has a recipe'}, status=status.HTTP_409_CONFLICT)

        logger.info(f"Recipe for menu item {menu_item.id} created by {request.user.email}")
        return Response({'status': 'success', 'data': recipe.to_dict()}, status=status.HTTP_201_CREATED)


class RecipeDetailView(APIView):
    policy_resource = 'inventory'

    def _get_recipe(self, request, recipe_id):
        recipe = Recipe.objects.filter(pk=recipe_id).select_related('menu_item').first()
        if recipe is None:
            return None, Response({'status': 'error', 'message': 'Recipe not found'}, status=status.HTTP_404_NOT_FOUND)
        if not ensure_can_access_restaurant(request.user, recipe.restaurant_id):
            return None, Response({'status': 'error', 'message': 'You do not have access to this recipe'}, status=status.HTTP_403_FORBIDDEN)
        return recipe, None

    def get(self, request, recipe_id):
        recipe, error = self._get_recipe(request, recipe_id)
        if error:
            return error
        return Response({'status': 'success', 'data': recipe.to_dict()})

    def put(self, request, recipe_id):
        recipe, error = self._get_recipe(request, recipe_id)
        if error:
            return error
        data = request.data
        with transaction.atomic():
            if 'total_qty' in data:
                recipe.total_qty = parse_quantity(data['total_qty'], 'total_qty') or Decimal('1')
            for field in ['total_unit', 'notes']:
                if field in data:
                    setattr(recipe, field, data[field] or '')
            recipe.updated_by = request.user
            recipe.save()
            if 'ingredients' in data:
                set_recipe_ingredients(recipe, data['ingredients'])
        logger.info(f"Recipe {recipe.id} updated by {request.user.email}")
        return Response({'status': 'success', 'data': recipe.to_dict()})

    def delete(self, request, recipe_id):
        recipe, error = self._get_recipe(request, recipe_id)
        if error:
            return error
        recipe.delete()
        logger.info(f"Recipe {recipe_id} deleted by {request.user.email}")
        return Response({'status': 'success', 'message': 'Recipe deleted'})
