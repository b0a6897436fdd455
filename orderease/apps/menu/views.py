# menu/views.py

from ._views.CategoryView import CategoryView, CategoryDetailView
from ._views.MenuItemView import MenuItemView, MenuItemDetailView
