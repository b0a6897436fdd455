from django.urls import path

from .views import (
    TableView,
    TableDetailView,
    TableStatusView,
    ReservationView,
    ReservationDetailView,
    AvailableTablesView,
)

urlpatterns = [
    path('', TableView.as_view(), name='tables'),
    path('available/', AvailableTablesView.as_view(), name='available_tables'),
    path('<int:table_id>/', TableDetailView.as_view(), name='table_detail'),
    path('<int:table_id>/status/', TableStatusView.as_view(), name='table_status'),
    path('<int:table_id>/reservations/', ReservationView.as_view(), name='table_reservations'),
    path('<int:table_id>/reservations/<int:reservation_id>/', ReservationDetailView.as_view(), name='table_reservation_detail'),
]
