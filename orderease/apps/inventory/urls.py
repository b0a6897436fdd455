from django.urls import path

from .views import (
    InventoryItemView,
    InventoryItemDetailView,
    InventoryAdjustView,
    SupplierView,
    SupplierDetailView,
    RecipeView,
    RecipeDetailView,
)

urlpatterns = [
    path('items/', InventoryItemView.as_view(), name='inventory_items'),
    path('items/<int:item_id>/', InventoryItemDetailView.as_view(), name='inventory_item_detail'),
    path('items/<int:item_id>/adjust/', InventoryAdjustView.as_view(), name='inventory_adjust'),

    path('suppliers/', SupplierView.as_view(), name='suppliers'),
    path('suppliers/<int:supplier_id>/', SupplierDetailView.as_view(), name='supplier_detail'),

    path('recipes/', RecipeView.as_view(), name='recipes'),
    path('recipes/<int:recipe_id>/', RecipeDetailView.as_view(), name='recipe_detail'),
]
