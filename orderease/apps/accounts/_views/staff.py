from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.accounts.models import User, Role
from orderease.apps.restaurants.models import Branch
from orderease.apps.utils import user_allowed_branches, ensure_can_access_branch
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

# a user may only hand out roles strictly below their own
ROLE_RANK = {
    Role.SUPER_ADMIN: 3,
    Role.ADMIN: 2,
    Role.BRANCH_MANAGER: 1,
}

EDITABLE_FIELDS = ['first_name', 'last_name', 'phone']


def can_assign_role(actor, role):
    return ROLE_RANK.get(actor.role, 0) > ROLE_RANK.get(role, 0)


def staff_queryset(user):
    """Staff visible to the caller, never including deleted accounts"""
    qs = User.objects.alive()
    if user.role == Role.SUPER_ADMIN:
        return qs
    if user.role == Role.ADMIN:
        return qs.filter(restaurant_id=user.restaurant_id)
    return qs.filter(branch_id=user.branch_id)


class StaffView(APIView):
    """
    Handles staff member operations:
    - GET: List staff members the caller manages
    - POST: Create staff member scoped to a branch
    """
    policy_resource = 'staff'

    def get(self, request):
        staff = staff_queryset(request.user)
        role = request.GET.get('role')
        if role:
            staff = staff.filter(role=role)
        return Response([member.to_dict() for member in staff])

    def post(self, request):
        """Create new staff member"""
        required_fields = ['email', 'password', 'first_name', 'role']
        if missing := [f for f in required_fields if not request.data.get(f)]:
            logger.warning(f"Attempt to create staff member with missing fields: {missing}")
            return Response(
                {'error': f'Missing fields: {", ".join(missing)}'},
                status=status.HTTP_400_BAD_REQUEST
            )

        role = request.data['role']
        if role not in Role.values:
            return Response({'error': f"Invalid role '{role}'"}, status=status.HTTP_400_BAD_REQUEST)
        if not can_assign_role(request.user, role):
            logger.warning(f"{request.user.email} ({request.user.role}) attempted to create a {role}")
            return Response({'error': 'You cannot create users with this role'}, status=status.HTTP_403_FORBIDDEN)

        if User.objects.filter(email__iexact=request.data['email']).exists():
            return Response({'error': 'A user with this email already exists'}, status=status.HTTP_409_CONFLICT)

        branch = None
        restaurant_id = request.data.get('restaurant_id') or request.user.restaurant_id
        branch_id = request.data.get('branch_id')
        if branch_id:
            branch = Branch.objects.alive().filter(pk=branch_id).first()
            if branch is None:
                return Response({'error': 'Invalid branch ID'}, status=status.HTTP_400_BAD_REQUEST)
            if not ensure_can_access_branch(request.user, branch.pk):
                logger.warning(f"{request.user.email} attempted to create staff in branch {branch_id}")
                return Response({'error': 'You do not have access to this branch'}, status=status.HTTP_403_FORBIDDEN)
            restaurant_id = branch.restaurant_id
        elif role not in (Role.SUPER_ADMIN, Role.ADMIN):
            return Response({'error': 'branch_id is required for this role'}, status=status.HTTP_400_BAD_REQUEST)

        staff_member = User.objects.create_user(
            email=request.data['email'],
            password=request.data['password'],
            first_name=request.data['first_name'],
            last_name=request.data.get('last_name', ''),
            phone=request.data.get('phone', ''),
            role=role,
            restaurant_id=restaurant_id,
            branch=branch,
            created_by=request.user,
        )
        logger.info(f"Staff member {staff_member.email} ({role}) created by {request.user.email}")
        return Response(staff_member.to_dict(), status=status.HTTP_201_CREATED)


class StaffDetailView(APIView):
    policy_resource = 'staff'

    def _get_member(self, request, staff_id):
        member = staff_queryset(request.user).filter(pk=staff_id).first()
        if member is None:
            return None, Response({'error': 'Staff member not found'}, status=status.HTTP_404_NOT_FOUND)
        return member, None

    def get(self, request, staff_id):
        member, error = self._get_member(request, staff_id)
        if error:
            return error
        return Response(member.to_dict())

    def patch(self, request, staff_id):
        member, error = self._get_member(request, staff_id)
        if error:
            return error
        if member.pk != request.user.pk and not can_assign_role(request.user, member.role):
            logger.warning(f"{request.user.email} attempted to edit {member.email}")
            return Response({'error': 'You cannot edit this user'}, status=status.HTTP_403_FORBIDDEN)

        for field in EDITABLE_FIELDS:
            if field in request.data:
                setattr(member, field, request.data[field])

        if 'role' in request.data:
            role = request.data['role']
            if role not in Role.values or not can_assign_role(request.user, role):
                return Response({'error': 'You cannot assign this role'}, status=status.HTTP_403_FORBIDDEN)
            member.role = role

        if 'branch_id' in request.data:
            if not ensure_can_access_branch(request.user, request.data['branch_id']):
                return Response({'error': 'You do not have access to this branch'}, status=status.HTTP_403_FORBIDDEN)
            member.branch_id = request.data['branch_id']

        if 'lifecycle_state' in request.data:
            try:
                member.set_lifecycle(request.data['lifecycle_state'])
            except ValueError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        if request.data.get('password'):
            member.set_password(request.data['password'])

        member.save()
        logger.info(f"Staff member {member.email} updated by {request.user.email}")
        return Response(member.to_dict())

    def delete(self, request, staff_id):
        member, error = self._get_member(request, staff_id)
        if error:
            return error
        if member.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        if not can_assign_role(request.user, member.role):
            return Response({'error': 'You cannot delete this user'}, status=status.HTTP_403_FORBIDDEN)
        member.soft_delete()
        logger.info(f"Staff member {member.email} deleted by {request.user.email}")
        return Response({'message': 'Staff member deleted successfully'})


class StaffByBranchView(APIView):
    policy_resource = 'staff'

    def get(self, request, branch_id):
        if not user_allowed_branches(request.user).filter(pk=branch_id).exists():
            logger.warning(f"{request.user.email} attempted to list staff of branch {branch_id}")
            return Response({'error': 'You do not have access to this branch'}, status=status.HTTP_403_FORBIDDEN)
        staff = User.objects.alive().filter(branch_id=branch_id)
        return Response([member.to_dict() for member in staff])
