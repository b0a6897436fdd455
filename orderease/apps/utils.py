from orderease.apps.accounts.models import Role
from orderease.apps.restaurants.models import Branch, Restaurant
from orderease.utils.exceptions import AccessDeniedError, NotFoundError, OrderEaseError


def user_allowed_restaurants(user):
    """
    Return a queryset of restaurants the user can access.
    Super Admin -> all restaurants
    Everyone else -> only the restaurant they belong to
    """
    qs = Restaurant.objects.alive()
    if getattr(user, 'role', None) == Role.SUPER_ADMIN:
        return qs
    if getattr(user, 'restaurant_id', None):
        return qs.filter(pk=user.restaurant_id)
    return qs.none()


def user_allowed_branches(user):
    """
    Return a queryset of branches the user can access.
    Super Admin -> all branches
    Restaurant admin -> every branch of their restaurant
    Others -> only their assigned branch
    """
    qs = Branch.objects.alive()
    role = getattr(user, 'role', None)
    if role == Role.SUPER_ADMIN:
        return qs
    if role == Role.ADMIN:
        if not user.restaurant_id:
            return qs.none()
        return qs.filter(restaurant_id=user.restaurant_id)
    if getattr(user, 'branch_id', None):
        return qs.filter(pk=user.branch_id)
    return qs.none()


def ensure_can_access_branch(user, branch_id):
    """
    Return True if user can access the given branch_id.
    """
    return user_allowed_branches(user).filter(pk=branch_id).exists()


def ensure_can_access_restaurant(user, restaurant_id):
    return user_allowed_restaurants(user).filter(pk=restaurant_id).exists()


def get_branch_for_user(user, branch_id):
    """
    Load a live branch and check the user may act on it.
    Raises NotFoundError / AccessDeniedError so services can call it directly.
    """
    if branch_id in (None, ''):
        raise OrderEaseError('branch_id is required')
    try:
        branch_id = int(branch_id)
    except (TypeError, ValueError):
        raise OrderEaseError(f"Invalid branch ID: {branch_id}")
    try:
        branch = Branch.objects.alive().select_related('restaurant').get(pk=branch_id)
    except Branch.DoesNotExist:
        raise NotFoundError('Branch not found')
    if not ensure_can_access_branch(user, branch.pk):
        raise AccessDeniedError('You do not have access to this branch')
    return branch


def resolve_scope(user, restaurant_id=None, branch_id=None):
    """
    Work out the (restaurant, branch) a new record belongs to.

    branch_id wins when given; otherwise restaurant_id, falling back to the
    caller's own restaurant. Raises OrderEaseError subclasses.
    """
    if branch_id:
        branch = get_branch_for_user(user, branch_id)
        return branch.restaurant, branch

    restaurant_id = restaurant_id or getattr(user, 'restaurant_id', None)
    if not restaurant_id:
        raise OrderEaseError('restaurant_id or branch_id is required')
    restaurant = Restaurant.objects.alive().filter(pk=restaurant_id).first()
    if restaurant is None:
        raise NotFoundError('Restaurant not found')
    if not ensure_can_access_restaurant(user, restaurant.pk):
        raise AccessDeniedError('You do not have access to this restaurant')
    return restaurant, None
