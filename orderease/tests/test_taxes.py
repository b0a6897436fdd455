from decimal import Decimal

from django.test import override_settings
from rest_framework import status

from orderease.apps.restaurants.models import Restaurant
from orderease.apps.taxes.models import Tax
from orderease.apps.taxes.services import calculate_tax, normalize_country
from orderease.tests.base import BaseTestCase, logger


class TaxTestCase(BaseTestCase):

    def test_country_is_stored_as_code(self):
        logger.info("Testing Tax - Create and lookup by country")
        response = self.client.post('/api/taxes/', {
            'country': 'us',
            'name': 'Sales Tax',
            'percentage': 8.25,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create tax: {response.content}")
        self.assertEqual(response.json()['country'], 'US')

        for code in ('US', 'us', 'usa'):
            response = self.client.get(f'/api/taxes/{code}/')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.json()['percentage'], 8.25)
            self.assertFalse(response.json()['is_generated'])

        response = self.client.post('/api/taxes/', {
            'country': 'USA',
            'name': 'Duplicate',
            'percentage': 5,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already exists', response.json()['error'])

    def test_invalid_percentage(self):
        response = self.client.post('/api/taxes/', {
            'country': 'GB',
            'name': 'VAT',
            'percentage': 120,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/taxes/', {'country': 'GB'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_default_fallback(self):
        logger.info("Testing Tax - DEFAULT fallback")
        Tax.objects.create(country='DEFAULT', name='Standard', percentage=Decimal('5.00'))

        response = self.client.get('/api/taxes/FR/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data['country'], 'DEFAULT')
        self.assertEqual(data['requested_country'], 'FR')
        self.assertEqual(data['percentage'], 5.0)

    @override_settings(ORDEREASE_GENERATED_TAX_PERCENTAGE=10.0)
    def test_generated_rate_without_default_row(self):
        response = self.client.get('/api/taxes/JP/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertTrue(data['is_generated'])
        self.assertEqual(data['country'], 'JP')
        self.assertEqual(data['percentage'], 10.0)
        self.assertIsNone(data['id'])

    def test_update_and_delete(self):
        Tax.objects.create(country='CA', name='GST', percentage=Decimal('5.00'))

        response = self.client.put('/api/taxes/canada/', {'percentage': 13, 'name': 'HST'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK,
                         f"Failed to update tax: {response.content}")
        self.assertEqual(response.json()['percentage'], 13.0)
        self.assertEqual(response.json()['name'], 'HST')

        response = self.client.delete('/api/taxes/CA/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Tax.objects.filter(country='CA').exists())

        response = self.client.delete('/api/taxes/CA/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_order_total_includes_tax(self):
        logger.info("Testing Tax - Applied to order totals")
        Tax.objects.create(country='US', name='Sales Tax', percentage=Decimal('8.25'))

        response = self.client.post('/api/orders/', {
            'branch_id': self.branch.id,
            'order_type': 'takeaway',
            'customer_name': 'Jane',
            'items': [{'menu_item_id': self.burger.id, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED,
                         f"Failed to create order: {response.content}")
        data = response.json()
        self.assertEqual(data['subtotal'], 20.0)
        self.assertEqual(data['tax_amount'], 1.65)
        self.assertEqual(data['total_amount'], 21.65)


class TaxCalculationTestCase(BaseTestCase):

    def test_normalize_country(self):
        self.assertEqual(normalize_country(' united kingdom '), 'GB')
        self.assertEqual(normalize_country('in'), 'IN')
        self.assertEqual(normalize_country(None), '')

    def test_india_is_split_into_cgst_and_sgst(self):
        logger.info("Testing Tax - CGST/SGST split")
        Tax.objects.create(country='IN', name='GST', percentage=Decimal('5.00'))
        restaurant = Restaurant.objects.create(name='Spice Route', country='India', currency='INR')

        amount, details = calculate_tax(restaurant, Decimal('200.00'))
        self.assertEqual(amount, Decimal('10.00'))
        self.assertEqual(details['country'], 'IN')
        self.assertEqual(details['breakdown']['cgst'], {'amount': 5.0, 'percentage': 2.5})
        self.assertEqual(details['breakdown']['sgst'], {'amount': 5.0, 'percentage': 2.5})

    def test_no_tax_row_means_zero(self):
        amount, details = calculate_tax(self.restaurant, Decimal('50.00'))
        self.assertEqual(amount, Decimal('0.00'))
        self.assertEqual(details['tax_name'], 'No Tax')
        self.assertEqual(details['breakdown'], {})
