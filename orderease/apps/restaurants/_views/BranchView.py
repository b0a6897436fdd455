from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.restaurants.models import Branch, Restaurant
from orderease.apps.utils import user_allowed_branches, ensure_can_access_branch, ensure_can_access_restaurant
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

EDITABLE_FIELDS = ['name', 'address', 'city', 'state', 'postal_code', 'phone', 'email', 'opening_hours']


class BranchView(APIView):
    """
    - GET: branches the caller can reach (?restaurant_id= narrows it)
    - POST: create a branch under a restaurant
    """
    policy_resource = 'branches'

    def get(self, request):
        branches = user_allowed_branches(request.user)
        restaurant_id = request.GET.get('restaurant_id')
        if restaurant_id:
            branches = branches.filter(restaurant_id=restaurant_id)
        return Response([b.to_dict() for b in branches])

    def post(self, request):
        data = request.data
        restaurant_id = data.get('restaurant_id')
        if not data.get('name') or not restaurant_id:
            return Response({'error': 'Branch name and restaurant_id are required'}, status=status.HTTP_400_BAD_REQUEST)

        restaurant = Restaurant.objects.alive().filter(pk=restaurant_id).first()
        if restaurant is None:
            return Response({'error': 'Invalid restaurant ID'}, status=status.HTTP_400_BAD_REQUEST)
        if not ensure_can_access_restaurant(request.user, restaurant.pk):
            logger.warning(f"{request.user.email} attempted to create a branch in restaurant {restaurant_id}")
            return Response({'error': 'You do not have access to this restaurant'}, status=status.HTTP_403_FORBIDDEN)

        branch = Branch.objects.create(restaurant=restaurant, **{f: data[f] for f in EDITABLE_FIELDS if f in data})
        logger.info(f"Branch {branch.id} created in restaurant {restaurant.id} by {request.user.email}")
        return Response(branch.to_dict(), status=status.HTTP_201_CREATED)


class BranchDetailView(APIView):
    policy_resource = 'branches'

    def _get_branch(self, request, branch_id):
        branch = Branch.objects.alive().filter(pk=branch_id).first()
        if branch is None:
            return None, Response({'error': 'Branch not found'}, status=status.HTTP_404_NOT_FOUND)
        if not ensure_can_access_branch(request.user, branch_id):
            logger.warning(f"{request.user.email} attempted to access branch {branch_id}")
            return None, Response({'error': 'You do not have access to this branch'}, status=status.HTTP_403_FORBIDDEN)
        return branch, None

    def get(self, request, branch_id):
        branch, error = self._get_branch(request, branch_id)
        if error:
            return error
        return Response(branch.to_dict())

    def patch(self, request, branch_id):
        branch, error = self._get_branch(request, branch_id)
        if error:
            return error

        for field in EDITABLE_FIELDS:
            if field in request.data:
                setattr(branch, field, request.data[field])
        if 'lifecycle_state' in request.data:
            try:
                branch.set_lifecycle(request.data['lifecycle_state'])
            except ValueError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        branch.save()
        logger.info(f"Branch {branch.id} updated by {request.user.email}")
        return Response(branch.to_dict())

    def delete(self, request, branch_id):
        branch, error = self._get_branch(request, branch_id)
        if error:
            return error
        branch.soft_delete()
        logger.info(f"Branch {branch.id} deleted by {request.user.email}")
        return Response({'message': 'Branch deleted successfully'})
