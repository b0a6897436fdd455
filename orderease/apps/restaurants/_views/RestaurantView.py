from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.restaurants.models import Restaurant
from orderease.apps.utils import user_allowed_restaurants, ensure_can_access_restaurant
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

EDITABLE_FIELDS = ['name', 'brand_name', 'address', 'city', 'state', 'country', 'currency', 'phone', 'email']


class RestaurantView(APIView):
    """
    - GET: restaurants visible to the caller
    - POST: create restaurant (Super Admin only)
    """
    policy_resource = 'restaurants'

    def get(self, request):
        restaurants = user_allowed_restaurants(request.user)
        state = request.GET.get('lifecycle_state')
        if state:
            restaurants = restaurants.filter(lifecycle_state=state)
        return Response([r.to_dict() for r in restaurants])

    def post(self, request):
        data = request.data
        if not data.get('name'):
            logger.warning(f"Restaurant creation without name by {request.user.email}")
            return Response({'error': 'Restaurant name is required'}, status=status.HTTP_400_BAD_REQUEST)

        restaurant = Restaurant.objects.create(**{f: data[f] for f in EDITABLE_FIELDS if f in data})
        logger.info(f"Restaurant {restaurant.id} '{restaurant.name}' created by {request.user.email}")
        return Response(restaurant.to_dict(), status=status.HTTP_201_CREATED)


class RestaurantDetailView(APIView):
    policy_resource = 'restaurants'

    def _get_restaurant(self, request, restaurant_id):
        restaurant = Restaurant.objects.alive().filter(pk=restaurant_id).first()
        if restaurant is None:
            return None, Response({'error': 'Restaurant not found'}, status=status.HTTP_404_NOT_FOUND)
        if not ensure_can_access_restaurant(request.user, restaurant_id):
            logger.warning(f"{request.user.email} attempted to access restaurant {restaurant_id}")
            return None, Response({'error': 'You do not have access to this restaurant'}, status=status.HTTP_403_FORBIDDEN)
        return restaurant, None

    def get(self, request, restaurant_id):
        restaurant, error = self._get_restaurant(request, restaurant_id)
        if error:
            return error
        data = restaurant.to_dict()
        data['branches'] = [b.to_dict() for b in restaurant.branches.alive()]
        return Response(data)

    def patch(self, request, restaurant_id):
        restaurant, error = self._get_restaurant(request, restaurant_id)
        if error:
            return error

        for field in EDITABLE_FIELDS:
            if field in request.data:
                setattr(restaurant, field, request.data[field])
        if 'lifecycle_state' in request.data:
            try:
                restaurant.set_lifecycle(request.data['lifecycle_state'])
            except ValueError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        if not restaurant.name:
            return Response({'error': 'Restaurant name cannot be empty'}, status=status.HTTP_400_BAD_REQUEST)

        restaurant.save()
        logger.info(f"Restaurant {restaurant.id} updated by {request.user.email}")
        return Response(restaurant.to_dict())

    def delete(self, request, restaurant_id):
        restaurant, error = self._get_restaurant(request, restaurant_id)
        if error:
            return error
        restaurant.soft_delete()
        logger.info(f"Restaurant {restaurant.id} deleted by {request.user.email}")
        return Response({'message': 'Restaurant deleted successfully'})
