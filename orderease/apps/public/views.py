# public/views.py

from ._views.PublicMenuView import (
    PublicBranchView, PublicCategoryView, PublicMenuView, PublicTaxView, PublicFloorView, PublicInventoryView,
)
from ._views.PublicFavoriteView import PublicFavoriteView
from ._views.PublicOrderView import PublicOrderView, PublicOrderDetailView
