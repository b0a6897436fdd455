from django.urls import path

from .views import (
    TableCartView,
    KotView,
    TableBatchView,
    BatchItemView,
    SettleTableView,
    PosSessionView,
    CurrentPosSessionView,
    ClosePosSessionView,
)

urlpatterns = [
    path('tables/<int:table_id>/cart/', TableCartView.as_view(), name='pos_table_cart'),
    path('tables/<int:table_id>/kot/', KotView.as_view(), name='pos_kot'),
    path('tables/<int:table_id>/batches/', TableBatchView.as_view(), name='pos_batches'),
    path('tables/<int:table_id>/batches/<int:batch_id>/items/<int:index>/', BatchItemView.as_view(), name='pos_batch_item'),
    path('tables/<int:table_id>/settle/', SettleTableView.as_view(), name='pos_settle'),

    path('sessions/', PosSessionView.as_view(), name='pos_sessions'),
    path('sessions/current/', CurrentPosSessionView.as_view(), name='pos_current_session'),
    path('sessions/<int:session_id>/close/', ClosePosSessionView.as_view(), name='pos_close_session'),
]
