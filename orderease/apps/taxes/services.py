from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

from orderease.apps.taxes.models import Tax, DEFAULT_COUNTRY
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)

TWO_PLACES = Decimal('0.01')

COUNTRY_CODES = {
    'UNITED KINGDOM': 'GB',
    'UK': 'GB',
    'GREAT BRITAIN': 'GB',
    'ENGLAND': 'GB',
    'UNITED STATES': 'US',
    'UNITED STATES OF AMERICA': 'US',
    'USA': 'US',
    'AMERICA': 'US',
    'CANADA': 'CA',
    'AUSTRALIA': 'AU',
    'INDIA': 'IN',
    'GERMANY': 'DE',
    'FRANCE': 'FR',
    'ITALY': 'IT',
    'JAPAN': 'JP',
    'CHINA': 'CN',
    'BRAZIL': 'BR',
    'MEXICO': 'MX',
    'SPAIN': 'ES',
}


def normalize_country(value):
    """Map a free-text country name or code to its uppercase code ('usa' -> 'US', 'in' -> 'IN')"""
    if value is None:
        return ''
    country = str(value).strip().upper()
    return COUNTRY_CODES.get(country, country)


def quantize(amount):
    return Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def get_tax_for_country(country):
    """
    Tax rate to show for a country.

    Lookup order: the active row for the country, then the DEFAULT row, then a
    generated rate from settings so callers always get an answer.
    """
    code = normalize_country(country)
    tax = Tax.objects.active().filter(country=code).first()
    if tax:
        return tax.to_dict()

    fallback = Tax.objects.active().filter(country=DEFAULT_COUNTRY).first()
    if fallback:
        logger.info(f"No tax row for {code}, using DEFAULT")
        data = fallback.to_dict()
        data['requested_country'] = code
        return data

    logger.info(f"No tax row for {code} and no DEFAULT row, generating one")
    return {
        'id': None,
        'country': code,
        'name': 'Standard Tax',
        'percentage': float(settings.ORDEREASE_GENERATED_TAX_PERCENTAGE),
        'is_compound': False,
        'description': '',
        'active': True,
        'is_default': False,
        'is_generated': True,
    }


def calculate_tax(restaurant, subtotal):
    """
    Tax owed on an order subtotal, from the restaurant's country.

    Returns (amount, details). Countries without an active tax row are taxed at 0.
    India is reported as equal CGST/SGST halves.
    """
    subtotal = Decimal(str(subtotal))
    country = normalize_country(restaurant.country if restaurant else None)
    tax = Tax.objects.active().filter(country=country).first() if country else None

    if tax is None:
        return Decimal('0.00'), {'country': country, 'tax_name': 'No Tax', 'percentage': 0, 'breakdown': {}}

    amount = quantize(subtotal * tax.percentage / Decimal('100'))

    breakdown = {}
    if country == 'IN' and amount > 0:
        half_amount = quantize(amount / 2)
        half_percent = quantize(tax.percentage / 2)
        breakdown = {
            'cgst': {'amount': float(half_amount), 'percentage': float(half_percent)},
            'sgst': {'amount': float(half_amount), 'percentage': float(half_percent)},
        }

    return amount, {
        'country': country,
        'tax_name': tax.name,
        'percentage': float(tax.percentage),
        'breakdown': breakdown,
    }
