from django.db import IntegrityError, transaction
from django.utils import timezone

from orderease.apps.customers.models import Customer, CustomerFavorite
from orderease.apps.menu.models import MenuItem
from orderease.utils.exceptions import ConflictError, NotFoundError, OrderEaseError
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


def validate_contact(email, phone):
    if not (email or phone):
        raise OrderEaseError('Either email or phone is required')


def find_or_create_customer(branch, name, phone='', email=''):
    """Reuse the branch's customer with this phone/email, else register a new one"""
    customer = None
    if phone:
        customer = Customer.objects.alive().filter(branch=branch, phone=phone).first()
    if customer is None and email:
        customer = Customer.objects.alive().filter(branch=branch, email__iexact=email).first()
    if customer is not None:
        customer.last_activity = timezone.now()
        customer.save(update_fields=['last_activity'])
        return customer
    return Customer.objects.create(
        restaurant_id=branch.restaurant_id,
        branch=branch,
        name=name or 'Guest',
        phone=phone or '',
        email=(email or '').lower(),
    )


def get_customer(customer_id):
    customer = Customer.objects.alive().filter(customer_id=customer_id).first()
    if customer is None:
        raise NotFoundError('Customer not found')
    return customer


def add_favorite(customer, menu_item_id):
    menu_item = MenuItem.objects.alive().filter(pk=menu_item_id, restaurant_id=customer.restaurant_id).first()
    if menu_item is None:
        raise NotFoundError('Menu item not found')
    try:
        with transaction.atomic():
            favorite = CustomerFavorite.objects.create(customer=customer, menu_item=menu_item)
    except IntegrityError:
        raise ConflictError('Item is already in favorites')
    logger.info(f"Customer {customer.customer_id} favorited menu item {menu_item.id}")
    return favorite


def remove_favorite(customer, menu_item_id):
    deleted, _ = CustomerFavorite.objects.filter(customer=customer, menu_item_id=menu_item_id).delete()
    if not deleted:
        raise NotFoundError('Item is not in favorites')
    logger.info(f"Customer {customer.customer_id} removed menu item {menu_item_id} from favorites")
