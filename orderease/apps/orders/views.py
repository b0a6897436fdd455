# orders/views.py

from ._views.OrderView import OrderView, OrderDetailView
from ._views.OrderStatusView import OrderStatusView, OrderPaymentView
from ._views.OrderReceiptView import OrderReceiptView
from ._views.OrderStatisticsView import OrderStatisticsView
