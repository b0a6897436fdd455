from django.urls import path

from .views import (
    OrderView,
    OrderDetailView,
    OrderStatusView,
    OrderPaymentView,
    OrderReceiptView,
    OrderStatisticsView,
)

urlpatterns = [
    path('', OrderView.as_view(), name='orders'),
    path('statistics/', OrderStatisticsView.as_view(), name='order_statistics'),
    path('<int:order_id>/', OrderDetailView.as_view(), name='order_detail'),
    path('<int:order_id>/status/', OrderStatusView.as_view(), name='order_status'),
    path('<int:order_id>/payment/', OrderPaymentView.as_view(), name='order_payment'),
    path('<int:order_id>/receipt/', OrderReceiptView.as_view(), name='order_receipt'),
]
