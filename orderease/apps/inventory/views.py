from ._views.InventoryItemView import InventoryItemView, InventoryItemDetailView, InventoryAdjustView
from ._views.SupplierView import SupplierView, SupplierDetailView
from ._views.RecipeView import RecipeView, RecipeDetailView
