from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework import status

from orderease.apps.orders.models import OrderTokenCounter
from orderease.apps.orders.services import date_key, next_token_number
from orderease.apps.restaurants.models import Branch, Restaurant
from orderease.tests.base import BaseTestCase, logger


class TokenCounterTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        restaurant = Restaurant.objects.create(name='Counter Cafe')
        cls.branch = Branch.objects.create(restaurant=restaurant, name='Main')
        cls.other_branch = Branch.objects.create(restaurant=restaurant, name='Annex')

    def test_sequence_starts_at_one_without_gaps(self):
        logger.info("Testing Orders - Token counter sequence")
        tokens = [next_token_number(self.branch.id, '20260101') for _ in range(5)]
        self.assertEqual(tokens, [1, 2, 3, 4, 5])
        self.assertEqual(OrderTokenCounter.objects.get(branch=self.branch, date='20260101').seq, 5)

    def test_sequence_is_per_branch_and_day(self):
        logger.info("Testing Orders - Token counter scope")
        self.assertEqual(next_token_number(self.branch.id, '20260101'), 1)
        self.assertEqual(next_token_number(self.branch.id, '20260101'), 2)
        self.assertEqual(next_token_number(self.other_branch.id, '20260101'), 1)
        self.assertEqual(next_token_number(self.branch.id, '20260102'), 1)
        self.assertEqual(OrderTokenCounter.objects.count(), 3)

    def test_date_key(self):
        self.assertEqual(date_key(datetime(2026, 3, 7).date()), '20260307')


class OrderTokenTestCase(BaseTestCase):

    def place_order(self, **extra):
        response = self.client.post('/api/orders/', {
            'branch_id': self.branch.id,
            'items': [{'menu_item_id': self.burger.id, 'quantity': 1}],
            **extra,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create order: {response.content}")
        return response.json()

    def test_orders_receive_consecutive_tokens(self):
        logger.info("Testing Orders - Tokens on order creation")
        first = self.place_order()
        second = self.place_order(order_type='takeaway', customer_name='Bob')
        self.assertEqual([first['token_number'], second['token_number']], [1, 2])

        today = timezone.localdate()
        self.assertEqual(first['order_code'], f"ORD-{today:%Y%m%d}-001")

        other = self.client.post('/api/orders/', {
            'branch_id': self.other_branch.id,
            'items': [{'menu_item_id': self.fries.id, 'quantity': 1}],
        }, format='json')
        self.assertEqual(other.status_code, status.HTTP_201_CREATED, f"Failed to create order: {other.content}")
        self.assertEqual(other.json()['token_number'], 1)

    def test_backdated_order_uses_its_own_day(self):
        logger.info("Testing Orders - Token day follows placed_at")
        self.place_order()
        backdated = self.place_order(placed_at='2025-12-31T20:00:00Z')
        self.assertEqual(backdated['token_number'], 1)
        self.assertEqual(backdated['token_date'], '2025-12-31')


class ConcurrentTokenTestCase(TransactionTestCase):
    """K concurrent callers for one branch-day get exactly 1..K"""

    WORKERS = 8
    CALLS = 40

    def setUp(self):
        restaurant = Restaurant.objects.create(name='Busy Diner')
        self.branch = Branch.objects.create(restaurant=restaurant, name='Rush Hour')

    def allocate(self, _):
        try:
            return next_token_number(self.branch.id, '20260214')
        finally:
            connection.close()

    def test_concurrent_increments(self):
        logger.info("Testing Orders - Concurrent token allocation")
        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            tokens = list(pool.map(self.allocate, range(self.CALLS)))
        self.assertEqual(sorted(tokens), list(range(1, self.CALLS + 1)))
