from rest_framework.permissions import BasePermission

from orderease.apps.accounts.models import Role
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

ADMINS = frozenset({Role.SUPER_ADMIN, Role.ADMIN})
MANAGERS = ADMINS | {Role.BRANCH_MANAGER}
FRONT_OF_HOUSE = MANAGERS | {Role.POS_OPERATOR, Role.STAFF, Role.WAITER}
KITCHEN = frozenset({Role.CHEF, Role.KITCHEN})
EVERYONE = frozenset(Role.values)

# resource -> action -> roles allowed to perform it
POLICY = {
    'restaurants': {
        'read': MANAGERS,
        'create': {Role.SUPER_ADMIN},
        'update': ADMINS,
        'delete': {Role.SUPER_ADMIN},
    },
    'branches': {
        'read': FRONT_OF_HOUSE | KITCHEN,
        'create': ADMINS,
        'update': MANAGERS,
        'delete': ADMINS,
    },
    'staff': {
        'read': MANAGERS,
        'create': MANAGERS,
        'update': MANAGERS,
        'delete': MANAGERS,
    },
    'menu': {
        'read': EVERYONE,
        'create': MANAGERS,
        'update': MANAGERS,
        'delete': MANAGERS,
    },
    'tables': {
        'read': FRONT_OF_HOUSE | KITCHEN,
        'create': MANAGERS,
        'update': FRONT_OF_HOUSE,
        'delete': MANAGERS,
    },
    'reservations': {
        'read': FRONT_OF_HOUSE,
        'create': FRONT_OF_HOUSE,
        'update': FRONT_OF_HOUSE,
        'delete': FRONT_OF_HOUSE,
    },
    'taxes': {
        'read': EVERYONE,
        'create': ADMINS,
        'update': ADMINS,
        'delete': {Role.SUPER_ADMIN},
    },
    'customers': {
        'read': FRONT_OF_HOUSE | {Role.DELIVERY},
        'create': FRONT_OF_HOUSE,
        'update': FRONT_OF_HOUSE,
        'delete': MANAGERS,
    },
    'orders': {
        'read': EVERYONE,
        'create': FRONT_OF_HOUSE,
        'update': FRONT_OF_HOUSE,
        'delete': MANAGERS,
        'status': FRONT_OF_HOUSE | KITCHEN | {Role.DELIVERY},
        'payment': FRONT_OF_HOUSE,
        'statistics': MANAGERS,
    },
    'pos': {
        'read': FRONT_OF_HOUSE,
        'create': FRONT_OF_HOUSE,
        'update': FRONT_OF_HOUSE,
        'delete': FRONT_OF_HOUSE,
        'settle': FRONT_OF_HOUSE,
    },
    'pos_sessions': {
        'read': MANAGERS | {Role.POS_OPERATOR},
        'create': MANAGERS | {Role.POS_OPERATOR},
        'update': MANAGERS | {Role.POS_OPERATOR},
    },
    'inventory': {
        'read': MANAGERS | KITCHEN,
        'create': MANAGERS,
        'update': MANAGERS,
        'delete': MANAGERS,
        'adjust': MANAGERS | KITCHEN,
    },
}

METHOD_ACTIONS = {
    'GET': 'read',
    'HEAD': 'read',
    'OPTIONS': 'read',
    'POST': 'create',
    'PUT': 'update',
    'PATCH': 'update',
    'DELETE': 'delete',
}


def allowed_roles(resource, action):
    return POLICY.get(resource, {}).get(action, frozenset())


def role_can(role, resource, action):
    return role in allowed_roles(resource, action)


class HasResourcePermission(BasePermission):
    """
    Evaluates POLICY for the view's `policy_resource`.

    A view may remap HTTP methods to named actions through `policy_actions`,
    e.g. {'POST': 'settle'}. Views without a `policy_resource` are not gated here.
    """
    message = 'Your role is not allowed to perform this action'

    def has_permission(self, request, view):
        resource = getattr(view, 'policy_resource', None)
        if resource is None:
            return True

        user = request.user
        if not user or not user.is_authenticated:
            logger.warning(f"Unauthenticated request to {resource}")
            return False

        overrides = getattr(view, 'policy_actions', {}) or {}
        action = overrides.get(request.method) or METHOD_ACTIONS.get(request.method)
        if role_can(user.role, resource, action):
            return True

        logger.warning(f"User {user.email} ({user.role}) denied '{action}' on {resource}")
        return False
