# restaurants/views.py

from ._views.RestaurantView import RestaurantView, RestaurantDetailView
from ._views.BranchView import BranchView, BranchDetailView
