from django.urls import path

from .views import (
    PublicBranchView,
    PublicCategoryView,
    PublicMenuView,
    PublicTaxView,
    PublicFloorView,
    PublicInventoryView,
    PublicFavoriteView,
    PublicOrderView,
    PublicOrderDetailView,
)

urlpatterns = [
    path('branches/<int:branch_id>/', PublicBranchView.as_view(), name='public_branch'),
    path('categories/', PublicCategoryView.as_view(), name='public_categories'),
    path('menus/', PublicMenuView.as_view(), name='public_menus'),
    path('taxes/<str:country>/', PublicTaxView.as_view(), name='public_tax'),
    path('floors/', PublicFloorView.as_view(), name='public_floors'),
    path('inventory/', PublicInventoryView.as_view(), name='public_inventory'),
    path('favorites/<str:customer_id>/', PublicFavoriteView.as_view(), name='public_favorites'),
    path('orders/', PublicOrderView.as_view(), name='public_orders'),
    path('orders/<int:order_id>/', PublicOrderDetailView.as_view(), name='public_order_detail'),
]
