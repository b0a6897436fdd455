from decimal import Decimal, InvalidOperation

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.taxes.models import Tax
from orderease.apps.taxes.services import normalize_country, get_tax_for_country
from orderease.utils.lifecycle import LifecycleState
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


def parse_percentage(value):
    try:
        percentage = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    if percentage < 0 or percentage > 100:
        return None
    return percentage


class TaxView(APIView):
    """
    - GET: all tax rows
    - POST: create a tax row; the country is stored as an uppercase code
    """
    policy_resource = 'taxes'

    def get(self, request):
        return Response([tax.to_dict() for tax in Tax.objects.alive()])

    def post(self, request):
        data = request.data
        country = normalize_country(data.get('country'))
        if not country or not data.get('name') or data.get('percentage') is None:
            return Response({'error': 'country, name and percentage are required'}, status=status.HTTP_400_BAD_REQUEST)

        percentage = parse_percentage(data.get('percentage'))
        if percentage is None:
            return Response({'error': 'percentage must be a number between 0 and 100'}, status=status.HTTP_400_BAD_REQUEST)

        if Tax.objects.filter(country=country).exists():
            logger.warning(f"Duplicate tax for {country} attempted by {request.user.email}")
            return Response({'error': f'Tax for country {country} already exists'}, status=status.HTTP_400_BAD_REQUEST)

        tax = Tax.objects.create(
            country=country,
            name=data['name'],
            percentage=percentage,
            is_compound=bool(data.get('is_compound', False)),
            description=data.get('description', ''),
            lifecycle_state=LifecycleState.ACTIVE if data.get('active', True) else LifecycleState.INACTIVE,
        )
        logger.info(f"Tax {tax.country} {tax.percentage}% created by {request.user.email}")
        return Response(tax.to_dict(), status=status.HTTP_201_CREATED)


class TaxCountryView(APIView):
    """
    - GET: rate for a country, falling back to DEFAULT and then a generated rate
    - PUT: update the country's row
    - DELETE: remove the country's row
    """
    policy_resource = 'taxes'

    def get(self, request, country):
        return Response(get_tax_for_country(country))

    def put(self, request, country):
        code = normalize_country(country)
        tax = Tax.objects.alive().filter(country=code).first()
        if tax is None:
            return Response({'error': f'Tax for country {code} not found'}, status=status.HTTP_404_NOT_FOUND)

        data = request.data
        if 'percentage' in data:
            percentage = parse_percentage(data['percentage'])
            if percentage is None:
                return Response({'error': 'percentage must be a number between 0 and 100'}, status=status.HTTP_400_BAD_REQUEST)
            tax.percentage = percentage
        if 'name' in data:
            tax.name = data['name']
        if 'description' in data:
            tax.description = data['description']
        if 'is_compound' in data:
            tax.is_compound = bool(data['is_compound'])
        if 'active' in data:
            tax.lifecycle_state = LifecycleState.ACTIVE if data['active'] else LifecycleState.INACTIVE

        tax.save()
        logger.info(f"Tax {tax.country} updated by {request.user.email}")
        return Response(tax.to_dict())

    def delete(self, request, country):
        code = normalize_country(country)
        tax = Tax.objects.alive().filter(country=code).first()
        if tax is None:
            return Response({'error': f'Tax for country {code} not found'}, status=status.HTTP_404_NOT_FOUND)
        tax.delete()
        logger.info(f"Tax {code} deleted by {request.user.email}")
        return Response({'message': f'Tax for {code} deleted successfully'})
