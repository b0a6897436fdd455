from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.inventory.models import Supplier
from orderease.apps.utils import user_allowed_restaurants, ensure_can_access_restaurant, resolve_scope
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

FIELDS = ['name', 'email', 'phone', 'contact_person', 'address', 'tax_number', 'notes']


class SupplierView(APIView):
    policy_resource = 'inventory'

    def get(self, request):
        suppliers = Supplier.objects.alive().filter(restaurant__in=user_allowed_restaurants(request.user))
        if request.GET.get('branch_id'):
            suppliers = suppliers.filter(branch_id=request.GET['branch_id'])
        return Response({'status': 'success', 'data': [s.to_dict() for s in suppliers]})

    def post(self, request):
        data = request.data
        name = str(data.get('name', '')).strip()
        if not name:
            return Response({'status': 'error', 'message': 'Supplier name is required'}, status=status.HTTP_400_BAD_REQUEST)
        restaurant, branch = resolve_scope(request.user, data.get('restaurant_id'), data.get('branch_id'))

        supplier = Supplier(restaurant=restaurant, branch=branch)
        for field in FIELDS:
            setattr(supplier, field, str(data.get(field, '') or '').strip())
        supplier.name = name
        supplier.save()
        logger.info(f"Supplier {supplier.name} created for restaurant {restaurant.id} by {request.user.email}")
        return Response({'status': 'success', 'data': supplier.to_dict()}, status=status.HTTP_201_CREATED)


class SupplierDetailView(APIView):
    policy_resource = 'inventory'

    def _get_supplier(self, request, supplier_id):
        supplier = Supplier.objects.alive().filter(pk=supplier_id).first()
        if supplier is None:
            return None, Response({'status': 'error', 'message': 'Supplier not found'}, status=status.HTTP_404_NOT_FOUND)
        if not ensure_can_access_restaurant(request.user, supplier.restaurant_id):
            return None, Response({'status': 'error', 'message': 'You do not have access to this supplier'}, status=status.HTTP_403_FORBIDDEN)
        return supplier, None

    def get(self, request, supplier_id):
        supplier, error = self._get_supplier(request, supplier_id)
        if error:
            return error
        data = supplier.to_dict()
        data['items'] = [item.to_dict() for item in supplier.items.alive()]
        return Response({'status': 'success', 'data': data})

    def patch(self, request, supplier_id):
        supplier, error = self._get_supplier(request, supplier_id)
        if error:
            return error
        for field in FIELDS:
            if field in request.data:
                setattr(supplier, field, str(request.data[field] or '').strip())
        if not supplier.name:
            return Response({'status': 'error', 'message': 'Supplier name is required'}, status=status.HTTP_400_BAD_REQUEST)
        if 'lifecycle_state' in request.data:
            try:
                supplier.set_lifecycle(request.data['lifecycle_state'])
            except ValueError as e:
                return Response({'status': 'error', 'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        supplier.save()
        return Response({'status': 'success', 'data': supplier.to_dict()})

    def delete(self, request, supplier_id):
        supplier, error = self._get_supplier(request, supplier_id)
        if error:
            return error
        supplier.soft_delete()
        logger.info(f"Supplier {supplier.id} deleted by {request.user.email}")
        return Response({'status': 'success', 'message': f"Supplier {supplier.name} deleted"})
