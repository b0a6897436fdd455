from django.db.models import Q
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.customers.models import Customer
from orderease.apps.customers.services import validate_contact
from orderease.apps.utils import user_allowed_branches, ensure_can_access_branch, get_branch_for_user
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


class CustomerView(APIView):
    """
    - GET: customers of the caller's branches (?branch_id=, ?search=)
    - POST: register a customer; email or phone is required
    """
    policy_resource = 'customers'

    def get(self, request):
        customers = Customer.objects.alive().filter(branch__in=user_allowed_branches(request.user))
        if request.GET.get('branch_id'):
            customers = customers.filter(branch_id=request.GET['branch_id'])
        search = request.GET.get('search')
        if search:
            customers = customers.filter(
                Q(name__icontains=search) | Q(phone__icontains=search) | Q(email__icontains=search)
            )
        return Response([c.to_dict() for c in customers])

    def post(self, request):
        data = request.data
        if not data.get('name'):
            return Response({'error': 'Customer name is required'}, status=status.HTTP_400_BAD_REQUEST)
        validate_contact(data.get('email'), data.get('phone'))
        branch = get_branch_for_user(request.user, data.get('branch_id') or request.user.branch_id)

        if data.get('phone') and Customer.objects.alive().filter(branch=branch, phone=data['phone']).exists():
            return Response({'error': 'A customer with this phone already exists'}, status=status.HTTP_409_CONFLICT)

        customer = Customer.objects.create(
            restaurant=branch.restaurant,
            branch=branch,
            name=data['name'],
            email=(data.get('email') or '').lower(),
            phone=data.get('phone', ''),
            address=data.get('address', ''),
        )
        logger.info(f"Customer {customer.customer_id} created in branch {branch.id} by {request.user.email}")
        return Response(customer.to_dict(), status=status.HTTP_201_CREATED)


class CustomerDetailView(APIView):
    policy_resource = 'customers'

    def _get_customer(self, request, customer_pk):
        customer = Customer.objects.alive().filter(pk=customer_pk).first()
        if customer is None:
            return None, Response({'error': 'Customer not found'}, status=status.HTTP_404_NOT_FOUND)
        if not ensure_can_access_branch(request.user, customer.branch_id):
            logger.warning(f"{request.user.email} attempted to access customer {customer_pk}")
            return None, Response({'error': 'You do not have access to this customer'}, status=status.HTTP_403_FORBIDDEN)
        return customer, None

    def get(self, request, customer_pk):
        customer, error = self._get_customer(request, customer_pk)
        if error:
            return error
        data = customer.to_dict()
        data['favorites'] = [f.to_dict() for f in customer.favorites.select_related('menu_item')]
        data['orders_count'] = customer.orders.count()
        return Response(data)

    def patch(self, request, customer_pk):
        customer, error = self._get_customer(request, customer_pk)
        if error:
            return error
        for field in ['name', 'email', 'phone', 'address']:
            if field in request.data:
                setattr(customer, field, request.data[field] or '')
        validate_contact(customer.email, customer.phone)
        if 'lifecycle_state' in request.data:
            try:
                customer.set_lifecycle(request.data['lifecycle_state'])
            except ValueError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        customer.save()
        logger.info(f"Customer {customer.customer_id} updated by {request.user.email}")
        return Response(customer.to_dict())

    def delete(self, request, customer_pk):
        customer, error = self._get_customer(request, customer_pk)
        if error:
            return error
        customer.soft_delete()
        logger.info(f"Customer {customer.customer_id} deleted by {request.user.email}")
        return Response({'message': 'Customer deleted successfully'})
