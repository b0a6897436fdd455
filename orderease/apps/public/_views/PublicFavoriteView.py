from rest_framework import status
from rest_framework.response import Response
from orderease.apps.customers.services import add_favorite, get_customer, remove_favorite
from orderease.apps.public._views.PublicMenuView import PublicView


class PublicFavoriteView(PublicView):
    """
    Favorites of a customer app user, addressed by the generated customer_id.

    - GET: favorites with their menu items, newest first
    - POST {menu_item_id}: add (409 if already there)
    - DELETE {menu_item_id} or ?menu_item_id=: remove
    """

    def get(self, request, customer_id):
        customer = get_customer(customer_id)
        favorites = customer.favorites.select_related('menu_item').order_by('-added_at')
        return Response({
            'customer_id': customer.customer_id,
            'favorites': [favorite.to_dict() for favorite in favorites],
        })

    def post(self, request, customer_id):
        customer = get_customer(customer_id)
        if not request.data.get('menu_item_id'):
            return Response({'error': 'menu_item_id is required'}, status=status.HTTP_400_BAD_REQUEST)
        favorite = add_favorite(customer, request.data['menu_item_id'])
        return Response(favorite.to_dict(), status=status.HTTP_201_CREATED)

    def delete(self, request, customer_id):
        customer = get_customer(customer_id)
        menu_item_id = request.data.get('menu_item_id') or request.GET.get('menu_item_id')
        if not menu_item_id:
            return Response({'error': 'menu_item_id is required'}, status=status.HTTP_400_BAD_REQUEST)
        remove_favorite(customer, menu_item_id)
        return Response({'message': 'Removed from favorites'})
