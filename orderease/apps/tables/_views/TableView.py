from django.db import IntegrityError, transaction
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.tables.models import DiningTable, Floor, TableStatus
from orderease.apps.tables.services import normalize_status, set_table_status
from orderease.apps.orders.models import Order
from orderease.apps.utils import user_allowed_branches, ensure_can_access_branch, get_branch_for_user
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

EDITABLE_FIELDS = ['name', 'capacity', 'zone', 'is_vip', 'minimum_spend', 'notes']


def get_table_for_user(request, table_id):
    """(table, None) or (None, error Response)"""
    table = DiningTable.objects.filter(pk=table_id).first()
    if table is None:
        return None, Response({'error': 'Dining table not found'}, status=status.HTTP_404_NOT_FOUND)
    if not ensure_can_access_branch(request.user, table.branch_id):
        logger.warning(f"{request.user.email} attempted to access table {table_id} of branch {table.branch_id}")
        return None, Response({'error': 'You do not have access to this table'}, status=status.HTTP_403_FORBIDDEN)
    return table, None


class TableView(APIView):
    """
    - GET: tables of the caller's branches (?branch_id=, ?floor_id=, ?zone=, ?status=)
    - POST: create a table in a branch
    """
    policy_resource = 'tables'

    def get(self, request):
        tables = DiningTable.objects.filter(branch__in=user_allowed_branches(request.user))
        for param, field in [('branch_id', 'branch_id'), ('floor_id', 'floor_id'), ('zone', 'zone')]:
            if request.GET.get(param):
                tables = tables.filter(**{field: request.GET[param]})
        if request.GET.get('status'):
            tables = tables.filter(status=normalize_status(request.GET['status']))
        return Response([t.to_dict() for t in tables])

    def post(self, request):
        data = request.data
        if not data.get('name'):
            return Response({'error': 'Table name is required'}, status=status.HTTP_400_BAD_REQUEST)
        branch = get_branch_for_user(request.user, data.get('branch_id') or request.user.branch_id)

        floor = None
        if data.get('floor_id'):
            floor = Floor.objects.filter(pk=data['floor_id'], branch=branch).first()
            if floor is None:
                return Response({'error': 'Invalid floor ID'}, status=status.HTTP_400_BAD_REQUEST)

        capacity = data.get('capacity', 4)
        if not isinstance(capacity, int) or capacity < 1:
            return Response({'error': 'Capacity must be a positive integer'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            with transaction.atomic():
                table = DiningTable.objects.create(
                    restaurant=branch.restaurant,
                    branch=branch,
                    floor=floor,
                    capacity=capacity,
                    **{f: data[f] for f in EDITABLE_FIELDS if f in data and f != 'capacity'},
                )
        except IntegrityError:
            return Response({'error': f"Table '{data['name']}' already exists in this branch"}, status=status.HTTP_409_CONFLICT)

        logger.info(f"Table {table.id} '{table.name}' created in branch {branch.id} by {request.user.email}")
        return Response(table.to_dict(), status=status.HTTP_201_CREATED)


class TableDetailView(APIView):
    policy_resource = 'tables'

    def get(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error
        data = table.to_dict()
        data['reservations'] = [r.to_dict() for r in table.reservations.all()]
        return Response(data)

    def patch(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error

        data = request.data
        for field in EDITABLE_FIELDS:
            if field in data:
                setattr(table, field, data[field])
        if 'floor_id' in data:
            floor = None
            if data['floor_id']:
                floor = Floor.objects.filter(pk=data['floor_id'], branch_id=table.branch_id).first()
                if floor is None:
                    return Response({'error': 'Invalid floor ID'}, status=status.HTTP_400_BAD_REQUEST)
            table.floor = floor

        try:
            with transaction.atomic():
                table.save()
        except IntegrityError:
            return Response({'error': f"Table '{table.name}' already exists in this branch"}, status=status.HTTP_409_CONFLICT)
        logger.info(f"Table {table.id} updated by {request.user.email}")
        return Response(table.to_dict())

    def delete(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error
        if table.status == TableStatus.OCCUPIED:
            logger.warning(f"Attempt to delete occupied table {table.id} by {request.user.email}")
            return Response({'error': 'Cannot delete an occupied table'}, status=status.HTTP_400_BAD_REQUEST)
        table.delete()
        logger.info(f"Table {table_id} deleted by {request.user.email}")
        return Response({'message': 'Table deleted successfully'})


class TableStatusView(APIView):
    """PATCH {status, current_order_id?} or {is_occupied}; 'blocked' is stored as maintenance"""
    policy_resource = 'tables'

    def patch(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error

        data = request.data
        if 'status' in data:
            new_status = normalize_status(data['status'])
        elif 'is_occupied' in data:
            new_status = TableStatus.OCCUPIED if data['is_occupied'] else TableStatus.AVAILABLE
        else:
            return Response({'error': 'status is required'}, status=status.HTTP_400_BAD_REQUEST)

        order = None
        if data.get('current_order_id'):
            order = Order.objects.filter(pk=data['current_order_id'], branch_id=table.branch_id).first()
            if order is None:
                return Response({'error': 'Invalid order ID'}, status=status.HTTP_400_BAD_REQUEST)

        set_table_status(table, new_status, current_order=order, source=request.user.role)
        return Response(table.to_dict())


class FloorView(APIView):
    policy_resource = 'tables'

    def get(self, request):
        floors = Floor.objects.filter(branch__in=user_allowed_branches(request.user))
        if request.GET.get('branch_id'):
            floors = floors.filter(branch_id=request.GET['branch_id'])
        return Response([f.to_dict() for f in floors])

    def post(self, request):
        data = request.data
        if not data.get('name'):
            return Response({'error': 'Floor name is required'}, status=status.HTTP_400_BAD_REQUEST)
        branch = get_branch_for_user(request.user, data.get('branch_id') or request.user.branch_id)
        level = data.get('level', 0)
        if Floor.objects.filter(branch=branch, level=level).exists():
            return Response({'error': f'Level {level} already exists in this branch'}, status=status.HTTP_409_CONFLICT)

        floor = Floor.objects.create(
            restaurant=branch.restaurant,
            branch=branch,
            name=data['name'],
            level=level,
            description=data.get('description', ''),
        )
        logger.info(f"Floor {floor.id} created in branch {branch.id} by {request.user.email}")
        return Response(floor.to_dict(), status=status.HTTP_201_CREATED)


class FloorDetailView(APIView):
    policy_resource = 'tables'

    def _get_floor(self, request, floor_id):
        floor = Floor.objects.filter(pk=floor_id).first()
        if floor is None:
            return None, Response({'error': 'Floor not found'}, status=status.HTTP_404_NOT_FOUND)
        if not ensure_can_access_branch(request.user, floor.branch_id):
            return None, Response({'error': 'You do not have access to this floor'}, status=status.HTTP_403_FORBIDDEN)
        return floor, None

    def get(self, request, floor_id):
        floor, error = self._get_floor(request, floor_id)
        if error:
            return error
        data = floor.to_dict()
        data['tables'] = [t.to_dict() for t in floor.tables.all()]
        return Response(data)

    def patch(self, request, floor_id):
        floor, error = self._get_floor(request, floor_id)
        if error:
            return error
        for field in ['name', 'description']:
            if field in request.data:
                setattr(floor, field, request.data[field])
        floor.save()
        return Response(floor.to_dict())

    def delete(self, request, floor_id):
        floor, error = self._get_floor(request, floor_id)
        if error:
            return error
        floor.delete()
        logger.info(f"Floor {floor_id} deleted by {request.user.email}")
        return Response({'message': 'Floor deleted successfully'})
