# accounts/urls.py

from django.urls import path

from .views import UserLoginView, CustomTokenRefreshView

urlpatterns = [
    path('login/', UserLoginView.as_view(), name='login'),
    path('token/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
]
