from decimal import Decimal

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from rest_framework import status

from orderease.apps.accounts.models import Role, User
from orderease.apps.inventory.models import InventoryItem
from orderease.apps.orders.models import Order
from orderease.apps.realtime.rooms import pos_branch_room
from orderease.apps.restaurants.models import Branch
from orderease.apps.tables.models import DiningTable
from orderease.utils.lifecycle import LifecycleState
from orderease.tests.base import BaseTestCase, PASSWORD, logger

SLOT_START = '2030-01-01T19:00:00'
SLOT_END = '2030-01-01T21:00:00'


class AccountsTestCase(BaseTestCase):
    """Test authentication and staff management"""

    def test_login_flow(self):
        logger.info("Testing Accounts App - Login Flow")
        self.client.credentials()
        response = self.client.post('/api/accounts/login/', {
            'email': 'wrong@test.com',
            'password': 'wrong123'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED,
                         f"Expected unauthorized for wrong credentials: {response.content}")

        response = self.client.post('/api/accounts/login/', {'email': 'admin@test.com'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        data = self.login('admin@test.com', 'admin123')
        self.assertIn('refresh', data)
        self.assertEqual(data['user']['role'], Role.SUPER_ADMIN)
        self.assertEqual({b['id'] for b in data['branches']}, {self.branch.id, self.other_branch.id})

    def test_token_refresh(self):
        logger.info("Testing Accounts App - Token Refresh")
        self.client.credentials()
        login_response = self.client.post('/api/accounts/login/', {
            'email': 'admin@test.com',
            'password': 'admin123'
        }, format='json')
        refresh_token = login_response.json()['refresh']

        response = self.client.post('/api/accounts/token/refresh/', {'refresh': refresh_token}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Token refresh failed: {response.content}")
        self.assertIn('access', response.json())

        response = self.client.post('/api/accounts/token/refresh/', {'refresh': 'garbage'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        response = self.client.post('/api/accounts/token/refresh/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_staff_crud(self):
        logger.info("Testing Accounts App - Staff CRUD")
        staff_data = {
            'email': 'manager@test.com',
            'password': PASSWORD,
            'first_name': 'Maria',
            'role': Role.BRANCH_MANAGER,
            'branch_id': self.branch.id,
        }
        response = self.client.post('/api/staff/', staff_data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create staff member: {response.content}")
        staff_id = response.json()['id']
        self.assertEqual(response.json()['restaurant_id'], self.restaurant.id)

        response = self.client.post('/api/staff/', staff_data, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.post('/api/staff/', {**staff_data, 'email': 'x@test.com', 'branch_id': None}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(f'/api/staff/branch/{self.branch.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(staff_id, [member['id'] for member in response.json()])

        response = self.client.patch(f'/api/staff/{staff_id}/', {'last_name': 'Lopez'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to update staff member: {response.content}")
        self.assertEqual(response.json()['last_name'], 'Lopez')

        # a branch manager cannot hand out roles at or above their own
        self.login('manager@test.com')
        response = self.client.post('/api/staff/', {
            **staff_data, 'email': 'peer@test.com',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post('/api/staff/', {
            **staff_data, 'email': 'waiter@test.com', 'role': Role.WAITER,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Manager failed to create waiter: {response.content}")

        self.login('admin@test.com', 'admin123')
        response = self.client.delete(f'/api/staff/{staff_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(User.objects.get(pk=staff_id).lifecycle_state, LifecycleState.DELETED)

        response = self.client.get(f'/api/staff/{staff_id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class RestaurantsTestCase(BaseTestCase):
    """Test restaurants and branches"""

    def test_restaurant_crud(self):
        logger.info("Testing Restaurants App - Restaurant CRUD")
        response = self.client.post('/api/restaurants/', {
            'name': 'Spice Route',
            'country': 'India',
            'currency': 'INR',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create restaurant: {response.content}")
        restaurant_id = response.json()['id']

        response = self.client.post('/api/restaurants/', {'city': 'Pune'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/restaurants/{restaurant_id}/', {'brand_name': 'Spice'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['brand_name'], 'Spice')

        response = self.client.patch(f'/api/restaurants/{restaurant_id}/', {'lifecycle_state': 'paused'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(f'/api/restaurants/{restaurant_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(f'/api/restaurants/{restaurant_id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.get('/api/restaurants/')
        self.assertNotIn(restaurant_id, [r['id'] for r in response.json()])

    def test_branch_crud(self):
        logger.info("Testing Restaurants App - Branch CRUD")
        response = self.client.post('/api/branches/', {
            'restaurant_id': self.restaurant.id,
            'name': 'Airport',
            'city': 'Springfield',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create branch: {response.content}")
        branch_id = response.json()['id']

        response = self.client.get(f'/api/restaurants/{self.restaurant.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(branch_id, [b['id'] for b in response.json()['branches']])

        response = self.client.patch(f'/api/branches/{branch_id}/', {'opening_hours': '8-22'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['opening_hours'], '8-22')

        response = self.client.delete(f'/api/branches/{branch_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Branch.objects.get(pk=branch_id).is_deleted)

        response = self.client.post('/api/branches/', {'restaurant_id': 9999, 'name': 'Nowhere'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class MenuTestCase(BaseTestCase):
    """Test categories and menu items"""

    def test_category_crud(self):
        logger.info("Testing Menu App - Category CRUD")
        response = self.client.post('/api/categories/', {
            'name': 'Drinks',
            'restaurant_id': self.restaurant.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create category: {response.content}")
        parent_id = response.json()['id']

        response = self.client.post('/api/categories/', {
            'name': 'Hot Drinks',
            'branch_id': self.branch.id,
            'parent_id': parent_id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        child_id = response.json()['id']
        self.assertEqual(response.json()['branch_id'], self.branch.id)

        response = self.client.get(f'/api/categories/{parent_id}/')
        self.assertEqual([c['id'] for c in response.json()['children']], [child_id])

        # the other branch only sees restaurant-wide categories
        response = self.client.get('/api/categories/', {'branch_id': self.other_branch.id})
        ids = [c['id'] for c in response.json()]
        self.assertIn(parent_id, ids)
        self.assertNotIn(child_id, ids)

        response = self.client.patch(f'/api/categories/{parent_id}/', {'parent_id': child_id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('ancestor', response.json()['error'])

        response = self.client.delete(f'/api/categories/{self.category.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(f'/api/categories/{parent_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get(f'/api/categories/{child_id}/')
        self.assertIsNone(response.json()['parent_id'])

    def test_menu_item_crud(self):
        logger.info("Testing Menu App - Menu item CRUD")
        item_data = {
            'name': 'Pizza',
            'price': 9,
            'category_id': self.category.id,
            'restaurant_id': self.restaurant.id,
            'tags': ['popular'],
            'variant_groups': [
                {'name': 'Size', 'options': [{'name': 'Small', 'price': 8}, {'name': 'Large', 'price': 12}]},
                {'name': 'Extras', 'selectionType': 'multiple', 'options': [{'name': 'Cheese', 'priceDelta': 1.5}]},
            ],
        }
        response = self.client.post('/api/menus/', item_data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create menu item: {response.content}")
        item = response.json()
        self.assertEqual(item['size_variants'], [{'name': 'Small', 'price': 8.0}, {'name': 'Large', 'price': 12.0}])
        self.assertEqual(item['variant_groups'][1]['selection_type'], 'multiple')

        response = self.client.post('/api/menus/', {
            **item_data, 'variant_groups': [{'name': 'Size', 'options': []}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('variant_groups', response.json()['error'])

        response = self.client.post('/api/menus/', {**item_data, 'price': -1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/menus/', {'tag': 'popular'})
        self.assertEqual([i['id'] for i in response.json()], [item['id']])

        # variant prices come from the menu, never from the client
        response = self.client.post('/api/orders/', {
            'branch_id': self.branch.id,
            'order_type': 'takeaway',
            'items': [{
                'menu_item_id': item['id'],
                'quantity': 2,
                'price': 0.01,
                'customizations': {'Size': 'Large', 'Extras': ['Cheese']},
            }],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to order variant: {response.content}")
        self.assertEqual(response.json()['items'][0]['price'], 13.5)
        self.assertEqual(response.json()['subtotal'], 27.0)

        response = self.client.patch(f"/api/menus/{item['id']}/", {'price': 11, 'is_featured': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['price'], 11.0)

        response = self.client.get('/api/menus/', {'featured': 'true'})
        self.assertEqual([i['id'] for i in response.json()], [item['id']])

        response = self.client.delete(f"/api/menus/{item['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get(f"/api/menus/{item['id']}/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TablesTestCase(BaseTestCase):
    """Test tables, floors and reservations"""

    def test_table_crud(self):
        logger.info("Testing Tables App - Table CRUD")
        response = self.client.post('/api/tables/', {
            'name': 'T2',
            'branch_id': self.branch.id,
            'capacity': 2,
            'zone': 'Patio',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create table: {response.content}")
        table_id = response.json()['id']
        self.assertEqual(response.json()['status'], 'available')

        response = self.client.post('/api/tables/', {'name': 'T2', 'branch_id': self.branch.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.post('/api/tables/', {'name': 'T3', 'branch_id': self.branch.id, 'capacity': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/tables/', {'zone': 'Patio'})
        self.assertEqual([t['id'] for t in response.json()], [table_id])

        response = self.client.patch(f'/api/tables/{table_id}/status/', {'status': 'blocked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to update table status: {response.content}")
        self.assertEqual(response.json()['status'], 'maintenance')

        response = self.client.patch(f'/api/tables/{table_id}/status/', {'status': 'exploded'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/tables/{table_id}/status/', {'is_occupied': True}, format='json')
        self.assertEqual(response.json()['status'], 'occupied')
        response = self.client.delete(f'/api/tables/{table_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/tables/{table_id}/status/', {'status': 'available'}, format='json')
        self.assertIsNone(response.json()['current_order_id'])
        response = self.client.delete(f'/api/tables/{table_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(DiningTable.objects.filter(pk=table_id).exists())

    def test_floor_crud(self):
        logger.info("Testing Tables App - Floor CRUD")
        response = self.client.post('/api/floors/', {
            'name': 'Ground',
            'branch_id': self.branch.id,
            'level': 0,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create floor: {response.content}")
        floor_id = response.json()['id']

        response = self.client.post('/api/floors/', {'name': 'Again', 'branch_id': self.branch.id, 'level': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.patch(f'/api/tables/{self.table.id}/', {'floor_id': floor_id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(f'/api/floors/{floor_id}/')
        self.assertEqual([t['id'] for t in response.json()['tables']], [self.table.id])

        response = self.client.get('/api/floors/', {'branch_id': self.other_branch.id})
        self.assertEqual(response.json(), [])

        response = self.client.patch(f'/api/floors/{floor_id}/', {'name': 'Lobby'}, format='json')
        self.assertEqual(response.json()['name'], 'Lobby')

        response = self.client.delete(f'/api/floors/{floor_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.table.refresh_from_db()
        self.assertIsNone(self.table.floor_id)

    def test_reservations(self):
        logger.info("Testing Tables App - Reservations")
        url = f'/api/tables/{self.table.id}/reservations/'
        booking = {
            'customer_name': 'Ana',
            'customer_phone': '555-0101',
            'party_size': 3,
            'start_time': SLOT_START,
            'end_time': SLOT_END,
        }

        response = self.client.post(url, {**booking, 'party_size': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('seats at most', response.json()['error'])

        response = self.client.post(url, {**booking, 'end_time': SLOT_START}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(url, booking, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create reservation: {response.content}")
        reservation = response.json()
        self.assertEqual(reservation['status'], 'confirmed')
        self.assertEqual(reservation['reservation_date'], '2030-01-01')

        # a future booking does not change the table status yet
        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'available')

        response = self.client.post(url, {
            **booking, 'start_time': '2030-01-01T20:00:00', 'end_time': '2030-01-01T22:00:00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('not available', response.json()['error'])

        response = self.client.get('/api/tables/available/', {
            'start': SLOT_START, 'end': SLOT_END, 'branch_id': self.branch.id,
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['count'], 0)

        response = self.client.get(url, {'date': '2030-01-01'})
        self.assertEqual([r['id'] for r in response.json()], [reservation['id']])

        response = self.client.patch(f"{url}{reservation['id']}/", {'notes': 'Window seat'}, format='json')
        self.assertEqual(response.json()['notes'], 'Window seat')

        response = self.client.delete(f"{url}{reservation['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['status'], 'cancelled')

        response = self.client.get('/api/tables/available/', {
            'start': SLOT_START, 'end': SLOT_END, 'branch_id': self.branch.id, 'party_size': 4,
        })
        self.assertEqual([t['id'] for t in response.json()['tables']], [self.table.id])


class CustomersTestCase(BaseTestCase):
    """Test customer registry"""

    def test_customer_crud(self):
        logger.info("Testing Customers App - Customer CRUD")
        response = self.client.post('/api/customers/', {'name': 'Nobody', 'branch_id': self.branch.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['error'], 'Either email or phone is required')

        response = self.client.post('/api/customers/', {
            'name': 'Ana Diaz',
            'phone': '555-0101',
            'email': 'Ana@Example.com',
            'branch_id': self.branch.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create customer: {response.content}")
        customer = response.json()
        self.assertTrue(customer['customer_id'].startswith('CUST-'))
        self.assertEqual(customer['email'], 'ana@example.com')

        response = self.client.post('/api/customers/', {
            'name': 'Ana Again', 'phone': '555-0101', 'branch_id': self.branch.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.get('/api/customers/', {'search': 'diaz'})
        self.assertEqual([c['id'] for c in response.json()], [customer['id']])

        response = self.client.patch(f"/api/customers/{customer['id']}/", {'address': '1 Main St'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['address'], '1 Main St')

        response = self.client.patch(f"/api/customers/{customer['id']}/", {'email': '', 'phone': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(f"/api/customers/{customer['id']}/")
        self.assertEqual(response.json()['orders_count'], 0)
        self.assertEqual(response.json()['favorites'], [])

        response = self.client.delete(f"/api/customers/{customer['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get(f"/api/customers/{customer['id']}/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class OrdersTestCase(BaseTestCase):
    """Test order placement, lifecycle and reporting"""

    def place_order(self, **extra):
        response = self.client.post('/api/orders/', {
            'branch_id': self.branch.id,
            'items': [{'menu_item_id': self.burger.id, 'quantity': 1, 'notes': 'No onions'}],
            **extra,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create order: {response.content}")
        return response.json()

    def test_order_crud(self):
        logger.info("Testing Orders App - Order CRUD")
        order = self.place_order(table_id=self.table.id, customer_name='Ana')
        self.assertEqual(order['status'], 'pending')
        self.assertEqual(order['payment_status'], 'unpaid')
        self.assertEqual(order['total_amount'], 10.0)

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'occupied')
        self.assertEqual(self.table.current_order_id, order['id'])

        response = self.client.put(f"/api/orders/{order['id']}/", {
            'items': [{'menu_item_id': self.fries.id, 'quantity': 3}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to update order: {response.content}")
        self.assertEqual(response.json()['subtotal'], 15.0)
        self.assertEqual(len(response.json()['items']), 1)

        response = self.client.get(f"/api/orders/{order['id']}/receipt/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        receipt = response.json()['receipt']
        self.assertIn(order['order_code'], receipt)
        self.assertIn('Table: T1', receipt)
        self.assertIn('Fries x 3', receipt)
        self.assertIn('TOTAL AMOUNT: 15.00', receipt)

        response = self.client.delete(f"/api/orders/{order['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['status'], 'cancelled')
        self.assertEqual(Order.objects.get(pk=order['id']).token_number, order['token_number'])

        response = self.client.put(f"/api/orders/{order['id']}/", {
            'items': [{'menu_item_id': self.fries.id, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_order_validation(self):
        response = self.client.post('/api/orders/', {'branch_id': self.branch.id, 'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/orders/', {
            'branch_id': self.branch.id,
            'items': [{'menu_item_id': 9999, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Invalid menu item', response.json()['error'])

        response = self.client.post('/api/orders/', {
            'branch_id': self.branch.id,
            'items': [{'menu_item_id': self.burger.id, 'quantity': 0}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/orders/', {
            'branch_id': self.branch.id,
            'order_type': 'drive_through',
            'items': [{'menu_item_id': self.burger.id}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/orders/', {
            'branch_id': 'downtown',
            'items': [{'menu_item_id': self.burger.id}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['error'], 'Invalid branch ID: downtown')

        response = self.client.get('/api/tables/available/', {
            'branch_id': 'x1', 'start': SLOT_START, 'end': SLOT_END,
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_order_history_filtering(self):
        logger.info("Testing Orders App - History filtering")
        first = self.place_order(order_type='takeaway')
        second = self.place_order(order_type='delivery', branch_id=self.other_branch.id)

        response = self.client.get('/api/orders/', {'branch_id': self.branch.id})
        self.assertEqual([o['id'] for o in response.json()], [first['id']])

        response = self.client.get('/api/orders/', {'order_type': 'delivery'})
        self.assertEqual([o['id'] for o in response.json()], [second['id']])

        response = self.client.get('/api/orders/', {'date_from': 'yesterday'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_payment_and_statistics(self):
        logger.info("Testing Orders App - Status, payment and statistics")
        order = self.place_order(order_type='takeaway')
        cancelled = self.place_order(order_type='takeaway')
        self.client.delete(f"/api/orders/{cancelled['id']}/")

        response = self.client.patch(f"/api/orders/{order['id']}/status/", {'status': 'ready'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.patch(f"/api/orders/{order['id']}/payment/", {
            'payment_status': 'paid', 'payment_method': 'card',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to mark order paid: {response.content}")
        self.assertEqual(response.json()['payment_method'], 'card')
        self.assertIsNotNone(response.json()['paid_at'])

        response = self.client.patch(f"/api/orders/{cancelled['id']}/payment/", {'payment_status': 'paid'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f"/api/orders/{cancelled['id']}/status/", {'status': 'ready'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/orders/statistics/', {'branch_id': self.branch.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        stats = response.json()
        self.assertEqual(stats['total_orders'], 2)
        self.assertEqual(stats['by_status'], {'ready': 1, 'cancelled': 1})
        self.assertEqual(stats['by_type'], {'takeaway': 2})
        self.assertEqual(stats['paid_orders'], 1)
        self.assertEqual(stats['revenue'], 10.0)
        self.assertEqual(stats['average_order_value'], 10.0)


class InventoryTestCase(BaseTestCase):
    """Test stock items, adjustments, suppliers and recipes"""

    def create_item(self, **extra):
        response = self.client.post('/api/inventory/items/', {
            'name': 'Beef patty',
            'branch_id': self.branch.id,
            'unit': 'pcs',
            'current_qty': 20,
            'low_threshold': 10,
            'critical_threshold': 3,
            **extra,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create inventory item: {response.content}")
        self.assertEqual(response.json()['status'], 'success')
        return response.json()['data']

    def test_supplier_crud(self):
        logger.info("Testing Inventory App - Supplier CRUD")
        response = self.client.post('/api/inventory/suppliers/', {
            'name': 'Meat Co',
            'restaurant_id': self.restaurant.id,
            'phone': '555-0199',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create supplier: {response.content}")
        supplier_id = response.json()['data']['id']

        item = self.create_item(supplier_id=supplier_id)
        response = self.client.get(f'/api/inventory/suppliers/{supplier_id}/')
        self.assertEqual([i['id'] for i in response.json()['data']['items']], [item['id']])

        response = self.client.patch(f'/api/inventory/suppliers/{supplier_id}/', {'name': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()['status'], 'error')

        response = self.client.delete(f'/api/inventory/suppliers/{supplier_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/inventory/suppliers/')
        self.assertEqual(response.json()['data'], [])

    def test_item_and_adjustments(self):
        logger.info("Testing Inventory App - Items and adjustments")
        item = self.create_item()
        self.assertEqual(item['current_qty'], 20.0)
        self.assertEqual(item['status'], 'in_stock')

        response = self.client.post('/api/inventory/items/', {
            'name': 'Mystery', 'branch_id': self.branch.id, 'unit': 'furlong',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        url = f"/api/inventory/items/{item['id']}/adjust/"
        response = self.client.post(url, {'delta_qty': -12, 'reason': 'wastage'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to adjust stock: {response.content}")
        self.assertEqual(response.json()['data']['item']['current_qty'], 8.0)
        self.assertEqual(response.json()['data']['item']['status'], 'low')

        response = self.client.post(url, {'delta_qty': -100}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.json()['error'])

        response = self.client.post(url, {'delta_qty': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(url)
        history = response.json()['data']['history']
        self.assertEqual([h['delta_qty'] for h in history], [-12.0, 20.0])
        self.assertEqual([h['reason'] for h in history], ['wastage', 'purchase'])

        response = self.client.get('/api/inventory/items/', {'low_stock': 'true'})
        self.assertEqual([i['id'] for i in response.json()['data']], [item['id']])

        response = self.client.patch(f"/api/inventory/items/{item['id']}/", {'current_qty': 99}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f"/api/inventory/items/{item['id']}/", {'low_threshold': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['data']['status'], 'in_stock')

        response = self.client.patch(f"/api/inventory/items/{item['id']}/", {'critical_threshold': 50}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(f"/api/inventory/items/{item['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(InventoryItem.objects.get(pk=item['id']).is_deleted)

    def test_stock_alerts_reach_branch_pos(self):
        logger.info("Testing Inventory App - Stock alerts over sockets")
        item = self.create_item()
        url = f"/api/inventory/items/{item['id']}/adjust/"

        layer = get_channel_layer()
        async_to_sync(layer.flush)()
        channel = async_to_sync(layer.new_channel)()
        async_to_sync(layer.group_add)(pos_branch_room(self.branch.id), channel)

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(url, {'delta_qty': -12, 'reason': 'wastage'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to adjust stock: {response.content}")

        wastage = async_to_sync(layer.receive)(channel)
        self.assertEqual(wastage['event'], 'inventory:notification')
        self.assertEqual(wastage['data']['type'], 'wastage')
        self.assertEqual(wastage['data']['severity'], 'critical')
        self.assertEqual(wastage['data']['qty'], -12.0)
        self.assertEqual(wastage['data']['branchId'], self.branch.id)

        low = async_to_sync(layer.receive)(channel)
        self.assertEqual(low['data']['type'], 'status')
        self.assertEqual(low['data']['status'], 'low')
        self.assertEqual(low['data']['severity'], 'low')
        self.assertEqual(low['data']['message'], 'Beef patty is low')

        # still low: no new status alert, and a correction is not a write-off
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            response = self.client.post(url, {'delta_qty': -1, 'reason': 'correction'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(callbacks), 0)

        with self.captureOnCommitCallbacks(execute=True):
            self.client.post(url, {'delta_qty': -7, 'reason': 'sale'}, format='json')
        out = async_to_sync(layer.receive)(channel)
        self.assertEqual((out['data']['status'], out['data']['severity']), ('out', 'critical'))

    def test_kitchen_can_adjust_but_not_create(self):
        item = self.create_item()
        self.login_as(Role.CHEF)

        response = self.client.post(f"/api/inventory/items/{item['id']}/adjust/", {'delta_qty': -1, 'reason': 'manual'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post('/api/inventory/items/', {'name': 'Buns', 'branch_id': self.branch.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_recipe_crud(self):
        logger.info("Testing Inventory App - Recipe CRUD")
        patty = self.create_item()
        bun = self.create_item(name='Bun', unit='pcs', current_qty=50)

        response = self.client.post('/api/inventory/recipes/', {
            'menu_item_id': self.burger.id,
            'total_qty': 1,
            'total_unit': 'pcs',
            'ingredients': [
                {'inventory_item_id': patty['id'], 'qty': 1},
                {'inventory_item_id': bun['id'], 'qty': 1, 'waste_pct': 5},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create recipe: {response.content}")
        recipe = response.json()['data']
        self.assertEqual(recipe['menu_item_name'], 'Burger')
        self.assertEqual(len(recipe['ingredients']), 2)

        response = self.client.post('/api/inventory/recipes/', {
            'menu_item_id': self.burger.id, 'ingredients': [],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.post('/api/inventory/recipes/', {
            'menu_item_id': self.fries.id,
            'ingredients': [{'inventory_item_id': patty['id'], 'qty': 1}, {'inventory_item_id': patty['id'], 'qty': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/inventory/recipes/', {'menu_item_id': self.burger.id})
        self.assertEqual(response.json()['data']['id'], recipe['id'])

        response = self.client.put(f"/api/inventory/recipes/{recipe['id']}/", {
            'ingredients': [{'inventory_item_id': patty['id'], 'qty': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([i['qty'] for i in response.json()['data']['ingredients']], [2.0])

        response = self.client.delete(f"/api/inventory/recipes/{recipe['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/inventory/recipes/', {'menu_item_id': self.burger.id})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class PublicApiTestCase(BaseTestCase):
    """Test the unauthenticated customer app endpoints"""

    def setUp(self):
        super().setUp()
        self.client.credentials()

    def test_branch_menu_and_tax(self):
        logger.info("Testing Public App - Branch and menu")
        response = self.client.get(f'/api/public/branches/{self.branch.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to read branch: {response.content}")
        self.assertEqual(response.json()['restaurant']['name'], 'Test Bistro')
        self.assertTrue(response.json()['tax']['is_generated'])

        response = self.client.get('/api/public/menus/', {'branch_id': self.branch.id})
        self.assertEqual({i['name'] for i in response.json()}, {'Burger', 'Fries'})

        self.fries.lifecycle_state = LifecycleState.INACTIVE
        self.fries.save()
        response = self.client.get('/api/public/menus/', {'branch_id': self.branch.id})
        self.assertEqual([i['name'] for i in response.json()], ['Burger'])

        response = self.client.get('/api/public/menus/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/public/categories/', {'branch_id': self.branch.id})
        self.assertEqual([c['name'] for c in response.json()], ['Mains'])

        response = self.client.get('/api/public/taxes/us/')
        self.assertEqual(response.json()['country'], 'US')

        response = self.client.get('/api/public/branches/9999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_floors_and_availability(self):
        self.login('admin@test.com', 'admin123')
        response = self.client.post('/api/floors/', {'name': 'Ground', 'branch_id': self.branch.id}, format='json')
        floor_id = response.json()['id']
        self.client.patch(f'/api/tables/{self.table.id}/', {'floor_id': floor_id}, format='json')
        self.client.post('/api/inventory/items/', {
            'name': 'Frozen fries', 'branch_id': self.branch.id, 'menu_item_id': self.fries.id,
        }, format='json')
        self.client.credentials()

        response = self.client.get('/api/public/floors/', {'branch_id': self.branch.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()[0]['tables'][0]['name'], 'T1')

        response = self.client.get('/api/public/inventory/', {'branch_id': self.branch.id})
        self.assertEqual(response.json(), [{'menu_item_id': self.fries.id, 'available': False}])

    def test_guest_order(self):
        logger.info("Testing Public App - Guest order")
        order_data = {
            'branch_id': self.branch.id,
            'table_id': self.table.id,
            'items': [{'menu_item_id': self.burger.id, 'quantity': 2}],
            'customer': {'name': 'Guest', 'phone': '555-0123'},
        }
        response = self.client.post('/api/public/orders/', order_data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to place guest order: {response.content}")
        order = response.json()
        self.assertEqual(order['token_number'], 1)
        self.assertEqual(order['total_amount'], 20.0)
        self.assertIsNotNone(order['customer_id'])

        self.table.refresh_from_db()
        self.assertEqual(self.table.status, 'occupied')

        response = self.client.post('/api/public/orders/', order_data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('occupied', response.json()['error'])

        response = self.client.post('/api/public/orders/', {
            'branch_id': self.branch.id,
            'order_type': 'takeaway',
            'items': [{'menu_item_id': self.fries.id}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(f"/api/public/orders/{order['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['status'], 'pending')
        self.assertNotIn('customer_phone', response.json())

    def test_favorites(self):
        logger.info("Testing Public App - Favorites")
        response = self.client.post('/api/public/orders/', {
            'branch_id': self.branch.id,
            'order_type': 'takeaway',
            'items': [{'menu_item_id': self.fries.id}],
            'customer': {'name': 'Guest', 'email': 'guest@example.com'},
        }, format='json')
        customer_id = response.json()['customer_id']
        url = f'/api/public/favorites/{customer_id}/'

        response = self.client.post(url, {'menu_item_id': self.burger.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to add favorite: {response.content}")

        response = self.client.post(url, {'menu_item_id': self.burger.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = self.client.get(url)
        self.assertEqual([f['name'] for f in response.json()['favorites']], ['Burger'])

        response = self.client.delete(f'{url}?menu_item_id={self.burger.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.delete(f'{url}?menu_item_id={self.burger.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.get('/api/public/favorites/CUST-NOPE/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class IntegrationTestCase(BaseTestCase):
    """POS flow from an empty table to a settled bill"""

    def test_end_to_end_flow(self):
        logger.info("Testing Integration - Cart to settlement")
        self.login_as(Role.POS_OPERATOR)
        base = f'/api/pos/tables/{self.table.id}'

        response = self.client.post('/api/pos/sessions/', {
            'branch_id': self.branch.id, 'opening_float': 100,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to open session: {response.content}")
        session_id = response.json()['session']['id']

        response = self.client.put(f'{base}/cart/', {
            'items': [{'menu_item_id': self.burger.id, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to fill cart: {response.content}")

        response = self.client.post(f'{base}/kot/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to send KOT: {response.content}")
        order_id = response.json()['order']['id']

        self.login_as(Role.KITCHEN)
        for step in ('preparing', 'ready', 'delivered'):
            response = self.client.patch(f'/api/orders/{order_id}/status/', {'status': step}, format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK,
                             f"Failed to move order to {step}: {response.content}")

        self.login('pos_operator@test.com')
        response = self.client.post(f'{base}/settle/', {'payment_method': 'card'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to settle: {response.content}")
        self.assertEqual(response.json()['table_status'], 'available')

        response = self.client.post(f'/api/pos/sessions/{session_id}/close/', {'closing_cash': 100}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to close session: {response.content}")
        summary = response.json()['summary']
        self.assertEqual(summary['ordersCount'], 1)
        self.assertEqual(summary['grossSales'], 20.0)
        self.assertEqual(summary['byPayment']['card'], 20.0)
        self.assertEqual(Order.objects.get(pk=order_id).total_amount, Decimal('20.00'))
