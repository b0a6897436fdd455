from django.urls import path

from .views import TaxView, TaxCountryView

urlpatterns = [
    path('', TaxView.as_view(), name='taxes'),
    path('<str:country>/', TaxCountryView.as_view(), name='tax_country'),
]
