from django.urls import path

from .views import FloorView, FloorDetailView

urlpatterns = [
    path('', FloorView.as_view(), name='floors'),
    path('<int:floor_id>/', FloorDetailView.as_view(), name='floor_detail'),
]
