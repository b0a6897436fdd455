from decimal import Decimal

from rest_framework import status

from orderease.apps.accounts.models import Role
from orderease.apps.orders.models import Order, OrderStatus, PaymentStatus
from orderease.apps.pos.models import BatchState, TableBatch, TableCart
from orderease.apps.tables.models import DiningTable, TableStatus
from orderease.tests.base import BaseTestCase, logger


class TableBatchTestCase(BaseTestCase):
    """KOT issuance, batch edits and settling a table"""

    def setUp(self):
        super().setUp()
        self.login_as(Role.POS_OPERATOR)
        self.base_url = f'/api/pos/tables/{self.table.id}'

    def fill_cart(self, items, customer_info=None):
        payload = {'items': items}
        if customer_info is not None:
            payload['customer_info'] = customer_info
        response = self.client.put(f'{self.base_url}/cart/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to update cart: {response.content}")
        return response.json()

    def send_kot(self, items, **extra):
        self.fill_cart(items)
        response = self.client.post(f'{self.base_url}/kot/', extra, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to issue KOT: {response.content}")
        return response.json()

    def open_batches(self):
        response = self.client.get(f'{self.base_url}/batches/')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to list batches: {response.content}")
        return response.json()['batches']

    def table_status(self):
        return DiningTable.objects.get(pk=self.table.id).status

    def test_cart_round_trip(self):
        logger.info("Testing POS - Cart")
        cart = self.fill_cart(
            [{'menu_item_id': self.burger.id, 'quantity': 2}],
            customer_info={'name': 'Ada', 'phone': '5550001'},
        )
        self.assertEqual(cart['subtotal'], 20.0)

        response = self.client.get(f'{self.base_url}/cart/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['items'], [{'menu_item_id': self.burger.id, 'quantity': 2}])
        self.assertEqual(response.json()['customer_info'], {'name': 'Ada', 'phone': '5550001'})

        response = self.client.put(f'{self.base_url}/cart/', {
            'items': [{'menu_item_id': 999999, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST,
                         f"Expected unknown menu item to be rejected: {response.content}")

    def test_first_kot_occupies_table(self):
        logger.info("Testing POS - First KOT on an available table")
        self.assertEqual(self.table_status(), TableStatus.AVAILABLE)

        result = self.send_kot([{'menu_item_id': self.burger.id, 'quantity': 1}])

        self.assertEqual(self.table_status(), TableStatus.OCCUPIED)
        batches = self.open_batches()
        self.assertEqual(len(batches), 1)
        self.assertEqual(batches[0]['orderNumber'], 1)
        self.assertEqual(batches[0]['orderId'], result['order']['id'])
        self.assertEqual(DiningTable.objects.get(pk=self.table.id).current_order_id, result['order']['id'])

        cart = TableCart.objects.get(table=self.table)
        self.assertEqual(cart.items, [])

    def test_second_kot_adds_batch(self):
        logger.info("Testing POS - Subsequent KOT keeps the table occupied")
        first = self.send_kot([{'menu_item_id': self.burger.id, 'quantity': 1}])
        second = self.send_kot([{'menu_item_id': self.fries.id, 'quantity': 2}])

        self.assertEqual(self.table_status(), TableStatus.OCCUPIED)
        batches = self.open_batches()
        self.assertEqual([b['orderNumber'] for b in batches], [2, 1])
        self.assertEqual(batches[0]['orderId'], second['order']['id'])
        self.assertEqual(DiningTable.objects.get(pk=self.table.id).current_order_id, first['order']['id'])

    def test_kot_keeps_customer_info(self):
        logger.info("Testing POS - Customer info survives a KOT")
        self.fill_cart([{'menu_item_id': self.burger.id, 'quantity': 1}], customer_info={'name': 'Ada'})
        response = self.client.post(f'{self.base_url}/kot/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, f"KOT failed: {response.content}")
        self.assertEqual(response.json()['order']['customer_name'], 'Ada')
        self.assertEqual(TableCart.objects.get(table=self.table).customer_info, {'name': 'Ada'})

    def test_kot_validation(self):
        logger.info("Testing POS - KOT validation")
        response = self.client.post(f'{self.base_url}/kot/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST,
                         f"Expected empty cart to be rejected: {response.content}")

        self.fill_cart([{'menu_item_id': self.burger.id, 'quantity': 1}])
        response = self.client.post(f'{self.base_url}/kot/', {'order_type': 'takeaway'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST,
                         f"Expected takeaway without customer name to be rejected: {response.content}")
        self.assertIn('Customer name', response.json()['error'])

        # nothing was written by the failed attempts
        self.assertEqual(self.table_status(), TableStatus.AVAILABLE)
        self.assertFalse(TableBatch.objects.filter(table=self.table).exists())
        self.assertFalse(Order.objects.exists())

    def test_quantity_edit_recomputes_total(self):
        logger.info("Testing POS - Batch quantity edit")
        result = self.send_kot([
            {'menu_item_id': self.burger.id, 'quantity': 1},
            {'menu_item_id': self.fries.id, 'quantity': 2},
        ])
        batch_id = result['batch']['id']
        self.assertEqual(result['batch']['totalAmount'], 20.0)

        response = self.client.patch(f'{self.base_url}/batches/{batch_id}/items/1/', {'quantity': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to update batch item: {response.content}")

        batch = response.json()
        expected = sum(Decimal(str(item['price'])) * item['quantity'] for item in batch['items'])
        self.assertEqual(Decimal(str(batch['totalAmount'])), expected)
        self.assertEqual(batch['totalAmount'], 25.0)
        self.assertEqual(batch['items'][1]['subtotal'], 15.0)

        order = Order.objects.get(pk=result['order']['id'])
        self.assertEqual(order.subtotal, Decimal('25.00'))
        self.assertEqual(order.items.get(name='Fries').quantity, 3)

        response = self.client.patch(f'{self.base_url}/batches/{batch_id}/items/5/', {'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.patch(f'{self.base_url}/batches/{batch_id}/items/0/', {'quantity': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_deleting_an_item_keeps_the_rest(self):
        logger.info("Testing POS - Delete one of several batch items")
        result = self.send_kot([
            {'menu_item_id': self.burger.id, 'quantity': 1},
            {'menu_item_id': self.fries.id, 'quantity': 2},
        ])
        batch_id = result['batch']['id']

        response = self.client.delete(f'{self.base_url}/batches/{batch_id}/items/0/')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to delete batch item: {response.content}")
        self.assertEqual([item['name'] for item in response.json()['items']], ['Fries'])
        self.assertEqual(response.json()['totalAmount'], 10.0)

    def test_deleting_last_item_removes_batch(self):
        logger.info("Testing POS - Delete the only batch item")
        result = self.send_kot([{'menu_item_id': self.burger.id, 'quantity': 1}])
        batch_id = result['batch']['id']

        response = self.client.delete(f'{self.base_url}/batches/{batch_id}/items/0/')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to delete batch item: {response.content}")
        self.assertTrue(response.json()['deleted'])

        self.assertEqual(self.open_batches(), [])
        self.assertFalse(TableBatch.objects.filter(pk=batch_id).exists())
        self.assertEqual(Order.objects.get(pk=result['order']['id']).status, OrderStatus.CANCELLED)
        self.assertEqual(self.table_status(), TableStatus.AVAILABLE)

    def test_paid_batch_items_cannot_be_removed(self):
        logger.info("Testing POS - Delete item of a paid order")
        result = self.send_kot([{'menu_item_id': self.burger.id, 'quantity': 1}])
        order_id, batch_id = result['order']['id'], result['batch']['id']

        response = self.client.patch(f'/api/orders/{order_id}/payment/', {'payment_status': 'paid'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to mark order paid: {response.content}")

        response = self.client.delete(f'{self.base_url}/batches/{batch_id}/items/0/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST,
                         f"Expected paid batch edit to be refused: {response.content}")
        self.assertEqual(response.json()['error'], 'Paid or cancelled orders cannot be changed')

        order = Order.objects.get(pk=order_id)
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.payment_status, PaymentStatus.PAID)
        self.assertTrue(TableBatch.objects.filter(pk=batch_id).exists())
        self.assertEqual(self.table_status(), TableStatus.OCCUPIED)

    def test_malformed_items_are_rejected(self):
        logger.info("Testing POS - Malformed cart lines")
        for items in ([{'menu_item_id': 'abc'}], [5], [{'menu_item_id': None}]):
            response = self.client.put(f'{self.base_url}/cart/', {'items': items}, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST,
                             f"Expected {items} to be rejected: {response.content}")

        response = self.client.put(f'{self.base_url}/cart/', {'items': [{'menu_item_id': 'abc'}]}, format='json')
        self.assertEqual(response.json()['error'], 'Invalid menu item ID: abc')

        response = self.client.post('/api/orders/', {
            'branch_id': self.branch.id,
            'items': [{'menu_item_id': [1]}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_order_edit_rewrites_its_batch(self):
        logger.info("Testing POS - Order edit keeps the batch in step")
        result = self.send_kot([{'menu_item_id': self.burger.id, 'quantity': 1}])
        order_id, batch_id = result['order']['id'], result['batch']['id']

        response = self.client.put(f'/api/orders/{order_id}/', {
            'items': [{'menu_item_id': self.fries.id, 'quantity': 3}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to update order: {response.content}")
        self.assertEqual(response.json()['subtotal'], 15.0)

        batch = TableBatch.objects.get(pk=batch_id)
        self.assertEqual([item['name'] for item in batch.items], ['Fries'])
        self.assertEqual(batch.items[0]['quantity'], 3)
        self.assertEqual(batch.total_amount, Decimal('15.00'))
        self.assertEqual(batch.total_amount, Order.objects.get(pk=order_id).subtotal)

    def test_order_placed_outside_pos_can_be_settled(self):
        logger.info("Testing POS - Settle a table occupied from the order screen")
        response = self.client.post('/api/orders/', {
            'branch_id': self.branch.id,
            'table_id': self.table.id,
            'items': [{'menu_item_id': self.burger.id, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create order: {response.content}")
        order = response.json()
        self.assertEqual(self.table_status(), TableStatus.OCCUPIED)

        batches = self.open_batches()
        self.assertEqual(len(batches), 1)
        self.assertEqual(batches[0]['orderId'], order['id'])
        self.assertEqual(batches[0]['orderNumber'], order['token_number'])
        self.assertEqual(batches[0]['totalAmount'], 20.0)

        response = self.client.post(f'{self.base_url}/settle/', {'payment_method': 'cash'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to settle table: {response.content}")
        self.assertEqual(self.table_status(), TableStatus.AVAILABLE)
        self.assertEqual(Order.objects.get(pk=order['id']).payment_status, PaymentStatus.PAID)

    def test_guest_order_can_be_settled(self):
        logger.info("Testing POS - Settle a table taken by a guest order")
        self.client.credentials()
        response = self.client.post('/api/public/orders/', {
            'branch_id': self.branch.id,
            'table_id': self.table.id,
            'items': [{'menu_item_id': self.fries.id, 'quantity': 1}],
            'customer': {'name': 'Guest'},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to place guest order: {response.content}")

        self.login_as(Role.WAITER)
        self.assertEqual(len(self.open_batches()), 1)
        response = self.client.post(f'{self.base_url}/settle/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to settle table: {response.content}")
        self.assertEqual(self.table_status(), TableStatus.AVAILABLE)

    def test_settle_partial_failure_changes_nothing_else(self):
        logger.info("Testing POS - Settle with one failing batch")
        order_a = self.send_kot([{'menu_item_id': self.burger.id, 'quantity': 1}])['order']
        order_b = self.send_kot([{'menu_item_id': self.fries.id, 'quantity': 3}])['order']
        self.assertEqual(order_a['total_amount'], 10.0)
        self.assertEqual(order_b['total_amount'], 15.0)

        # a cancelled order can no longer be paid
        self.login('admin@test.com', 'admin123')
        response = self.client.delete(f"/api/orders/{order_b['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK, f"Failed to cancel order: {response.content}")

        response = self.client.post(f'{self.base_url}/settle/', {'payment_method': 'card'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST,
                         f"Expected settle to fail: {response.content}")
        self.assertEqual(response.json()['error'], 'Failed to settle 1/2 batches')

        self.assertEqual(self.table_status(), TableStatus.OCCUPIED)
        self.assertTrue(TableCart.objects.filter(table=self.table).exists())
        self.assertEqual(TableBatch.objects.filter(table=self.table, state=BatchState.SENT).count(), 2)
        # the successful payment is not rolled back
        self.assertEqual(Order.objects.get(pk=order_a['id']).payment_status, PaymentStatus.PAID)
        self.assertEqual(Order.objects.get(pk=order_b['id']).payment_status, PaymentStatus.UNPAID)

    def test_settle_frees_table(self):
        logger.info("Testing POS - Settle table")
        order_a = self.send_kot([{'menu_item_id': self.burger.id, 'quantity': 1}])['order']
        order_b = self.send_kot([{'menu_item_id': self.fries.id, 'quantity': 3}])['order']

        response = self.client.post(f'{self.base_url}/settle/', {'paymentMethod': 'card'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to settle table: {response.content}")
        summary = response.json()
        self.assertEqual(summary['settled_batches'], 2)
        self.assertEqual(summary['total_amount'], 25.0)
        self.assertEqual(summary['table_status'], TableStatus.AVAILABLE)

        self.assertEqual(self.table_status(), TableStatus.AVAILABLE)
        self.assertFalse(TableCart.objects.filter(table=self.table).exists())
        self.assertEqual(self.open_batches(), [])
        for order_id in (order_a['id'], order_b['id']):
            order = Order.objects.get(pk=order_id)
            self.assertEqual(order.payment_status, PaymentStatus.PAID)
            self.assertEqual(order.payment_method, 'card')

        response = self.client.post(f'{self.base_url}/settle/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST,
                         f"Expected settle without batches to fail: {response.content}")

    def test_kitchen_cannot_settle(self):
        logger.info("Testing POS - Settle permission")
        self.send_kot([{'menu_item_id': self.burger.id, 'quantity': 1}])
        self.login_as(Role.CHEF)
        response = self.client.post(f'{self.base_url}/settle/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN,
                         f"Expected chef to be refused: {response.content}")

    def test_other_branch_table_is_refused(self):
        logger.info("Testing POS - Cross-branch access")
        self.login_as(Role.POS_OPERATOR, email='uptown-pos@test.com', branch=self.other_branch)
        response = self.client.get(f'{self.base_url}/batches/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN,
                         f"Expected cross-branch access to be refused: {response.content}")


class PosSessionTestCase(BaseTestCase):

    def setUp(self):
        super().setUp()
        self.login_as(Role.POS_OPERATOR)

    def test_session_lifecycle(self):
        logger.info("Testing POS - Cashier session")
        response = self.client.post('/api/pos/sessions/', {'opening_float': '100'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to open session: {response.content}")
        session_id = response.json()['session']['id']

        response = self.client.post('/api/pos/sessions/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST,
                         f"Expected a second open session to be refused: {response.content}")

        response = self.client.put(f'/api/pos/tables/{self.table.id}/cart/', {
            'items': [{'menu_item_id': self.burger.id, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post(f'/api/pos/tables/{self.table.id}/kot/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, f"KOT failed: {response.content}")
        self.assertEqual(response.json()['order']['session_id'], session_id)
        response = self.client.post(f'/api/pos/tables/{self.table.id}/settle/', {'payment_method': 'cash'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, f"Settle failed: {response.content}")

        response = self.client.get('/api/pos/sessions/current/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()['session']['id'], session_id)

        response = self.client.post(f'/api/pos/sessions/{session_id}/close/', {
            'closing_cash': '125.00',
            'expected_cash': '120.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to close session: {response.content}")
        summary = response.json()['summary']
        self.assertEqual(summary['ordersCount'], 1)
        self.assertEqual(summary['grossSales'], 20.0)
        self.assertEqual(summary['byPayment']['cash'], 20.0)
        self.assertEqual(summary['cashVariance'], 5.0)

        response = self.client.get('/api/pos/sessions/current/')
        self.assertIsNone(response.json()['session'])

        response = self.client.post(f'/api/pos/sessions/{session_id}/close/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
