from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from orderease.apps.tables.models import DiningTable, Reservation, ReservationStatus, TableStatus, BLOCKING_RESERVATIONS
from orderease.apps.tables.services import set_table_status, release_table
from orderease.apps.tables._views.TableView import get_table_for_user
from orderease.apps.utils import get_branch_for_user
from orderease.utils.logger import OrderEaseLogger

logger = OrderEaseLogger(__name__)


def parse_moment(value):
    """ISO datetime string -> aware datetime, or None"""
    if not value:
        return None
    dt = parse_datetime(str(value))
    if dt is None:
        return None
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt)
    return dt


def parse_slot(start_value, end_value):
    start, end = parse_moment(start_value), parse_moment(end_value)
    if start is None or end is None:
        return None, None, 'start_time and end_time must be ISO datetimes'
    if end <= start:
        return None, None, 'end_time must be after start_time'
    return start, end, None


def overlaps(table, start, end, exclude=None):
    clashes = table.reservations.filter(status__in=BLOCKING_RESERVATIONS, start_time__lt=end, end_time__gt=start)
    if exclude is not None:
        clashes = clashes.exclude(pk=exclude.pk)
    return clashes.exists()


class ReservationView(APIView):
    """
    - GET: reservations of a table (?date=YYYY-MM-DD, ?status=)
    - POST: book a slot; refused when it overlaps a confirmed/pending booking
    """
    policy_resource = 'reservations'

    def get(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error
        reservations = table.reservations.all()
        if request.GET.get('date'):
            reservations = reservations.filter(start_time__date=request.GET['date'])
        if request.GET.get('status'):
            reservations = reservations.filter(status=request.GET['status'])
        return Response([r.to_dict() for r in reservations])

    def post(self, request, table_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return error

        data = request.data
        if not data.get('customer_name'):
            return Response({'error': 'customer_name is required'}, status=status.HTTP_400_BAD_REQUEST)
        start, end, message = parse_slot(data.get('start_time'), data.get('end_time'))
        if message:
            return Response({'error': message}, status=status.HTTP_400_BAD_REQUEST)

        party_size = data.get('party_size', 2)
        if not isinstance(party_size, int) or party_size < 1:
            return Response({'error': 'party_size must be a positive integer'}, status=status.HTTP_400_BAD_REQUEST)
        if party_size > table.capacity:
            return Response({'error': f'Table seats at most {table.capacity}'}, status=status.HTTP_400_BAD_REQUEST)

        if not table.is_available_at(start, end):
            logger.info(f"Reservation refused for table {table.id}: slot {start} - {end} taken")
            return Response({'error': 'Table is not available for the requested time slot'}, status=status.HTTP_400_BAD_REQUEST)

        with transaction.atomic():
            reservation = Reservation.objects.create(
                table=table,
                customer_id=data.get('customer_id'),
                customer_name=data['customer_name'],
                customer_phone=data.get('customer_phone', ''),
                customer_email=data.get('customer_email', ''),
                party_size=party_size,
                start_time=start,
                end_time=end,
                notes=data.get('notes', ''),
                status=ReservationStatus.CONFIRMED,
            )
            if reservation.covers() and table.status == TableStatus.AVAILABLE:
                set_table_status(table, TableStatus.RESERVED, source=request.user.role)

        logger.info(f"Reservation {reservation.id} on table {table.id} created by {request.user.email}")
        return Response(reservation.to_dict(), status=status.HTTP_201_CREATED)


class ReservationDetailView(APIView):
    policy_resource = 'reservations'

    def _get_reservation(self, request, table_id, reservation_id):
        table, error = get_table_for_user(request, table_id)
        if error:
            return None, error
        reservation = table.reservations.filter(pk=reservation_id).first()
        if reservation is None:
            return None, Response({'error': 'Reservation not found'}, status=status.HTTP_404_NOT_FOUND)
        return reservation, None

    def patch(self, request, table_id, reservation_id):
        reservation, error = self._get_reservation(request, table_id, reservation_id)
        if error:
            return error

        data = request.data
        for field in ['customer_name', 'customer_phone', 'customer_email', 'notes', 'party_size']:
            if field in data:
                setattr(reservation, field, data[field])

        if 'start_time' in data or 'end_time' in data:
            start, end, message = parse_slot(
                data.get('start_time', reservation.start_time.isoformat()),
                data.get('end_time', reservation.end_time.isoformat()),
            )
            if message:
                return Response({'error': message}, status=status.HTTP_400_BAD_REQUEST)
            if overlaps(reservation.table, start, end, exclude=reservation):
                return Response({'error': 'Table is not available for the requested time slot'}, status=status.HTTP_400_BAD_REQUEST)
            reservation.start_time, reservation.end_time = start, end

        if 'status' in data:
            if data['status'] not in ReservationStatus.values:
                return Response({'error': f"Invalid reservation status '{data['status']}'"}, status=status.HTTP_400_BAD_REQUEST)
            reservation.status = data['status']

        reservation.save()
        logger.info(f"Reservation {reservation.id} updated by {request.user.email}")
        return Response(reservation.to_dict())

    def delete(self, request, table_id, reservation_id):
        """Cancel; the row is kept for history"""
        reservation, error = self._get_reservation(request, table_id, reservation_id)
        if error:
            return error

        with transaction.atomic():
            reservation.status = ReservationStatus.CANCELLED
            reservation.save(update_fields=['status'])
            table = reservation.table
            if table.status == TableStatus.RESERVED:
                release_table(table, source=request.user.role)

        logger.info(f"Reservation {reservation.id} cancelled by {request.user.email}")
        return Response(reservation.to_dict())


class AvailableTablesView(APIView):
    """GET ?start=&end=&party_size=&branch_id= -> tables free for the whole slot"""
    policy_resource = 'reservations'

    def get(self, request):
        start, end, message = parse_slot(request.GET.get('start'), request.GET.get('end'))
        if message:
            return Response({'error': message}, status=status.HTTP_400_BAD_REQUEST)

        branch = get_branch_for_user(request.user, request.GET.get('branch_id') or request.user.branch_id)
        tables = DiningTable.objects.filter(branch=branch).exclude(status=TableStatus.MAINTENANCE)

        party_size = request.GET.get('party_size')
        if party_size:
            if not party_size.isdigit():
                return Response({'error': 'party_size must be a positive integer'}, status=status.HTTP_400_BAD_REQUEST)
            tables = tables.filter(capacity__gte=int(party_size))

        available = [t.to_dict() for t in tables if t.is_available_at(start, end)]
        return Response({'count': len(available), 'tables': available})
