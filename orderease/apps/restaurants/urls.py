from django.urls import path

from .views import RestaurantView, RestaurantDetailView, BranchView, BranchDetailView

urlpatterns = [
    path('restaurants/', RestaurantView.as_view(), name='restaurants'),
    path('restaurants/<int:restaurant_id>/', RestaurantDetailView.as_view(), name='restaurant_detail'),
    path('branches/', BranchView.as_view(), name='branches'),
    path('branches/<int:branch_id>/', BranchDetailView.as_view(), name='branch_detail'),
]
