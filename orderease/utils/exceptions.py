import traceback

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from rest_framework import status
from rest_framework.exceptions import APIException, ParseError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


class OrderEaseError(APIException):
    """Base error for service-layer failures; maps to 400 unless overridden"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request'
    default_code = 'invalid'


class NotFoundError(OrderEaseError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found'
    default_code = 'not_found'


class AccessDeniedError(OrderEaseError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have access to this resource'
    default_code = 'forbidden'


class ConflictError(OrderEaseError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists'
    default_code = 'conflict'


def _message_from(data, fallback):
    if isinstance(data, dict) and 'detail' in data:
        return str(data['detail'])
    if isinstance(data, list) and data:
        return str(data[0])
    if isinstance(data, str):
        return data
    return fallback


def custom_exception_handler(exc, context):
    """
    Project-wide DRF exception handler.

    Every failure leaves the API as {"error": ..., "details": ..., "status_code": n}.
    """
    view = context.get('view')
    view_name = view.__class__.__name__ if view else 'unknown view'

    response = exception_handler(exc, context)

    if response is not None:
        if isinstance(exc, ParseError):
            logger.warning(f"Malformed request body in {view_name}: {exc}")
            message = 'Malformed JSON in request body'
        else:
            message = _message_from(response.data, 'An error occurred')
        if response.status_code >= 500:
            logger.error(f"{view_name} failed: {message}")
        response.data = {
            'error': message,
            'details': response.data,
            'status_code': response.status_code,
        }
        return response

    if isinstance(exc, ValidationError):
        logger.warning(f"Validation error in {view_name}: {exc.messages}")
        return Response({
            'error': exc.messages[0] if exc.messages else 'Validation error',
            'details': {'non_field_errors': exc.messages},
            'status_code': 400,
        }, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity error in {view_name}: {exc}")
        return Response({
            'error': 'This operation violates database constraints',
            'details': {'error': str(exc)} if settings.DEBUG else {},
            'status_code': 409,
        }, status=status.HTTP_409_CONFLICT)

    logger.error(f"Unexpected error in {view_name}: {exc}", exc_info=True)
    details = {}
    if settings.DEBUG:
        details = {
            'error': str(exc),
            'traceback': traceback.format_exception(type(exc), exc, exc.__traceback__),
        }
    return Response({
        'error': str(exc) if settings.DEBUG else 'An unexpected error occurred',
        'details': details,
        'status_code': 500,
    }, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
