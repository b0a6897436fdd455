from django.urls import path

from .views import CustomerView, CustomerDetailView

urlpatterns = [
    path('', CustomerView.as_view(), name='customers'),
    path('<int:customer_pk>/', CustomerDetailView.as_view(), name='customer_detail'),
]
