from django.urls import path

from .views import CategoryView, CategoryDetailView, MenuItemView, MenuItemDetailView

urlpatterns = [
    path('categories/', CategoryView.as_view(), name='categories'),
    path('categories/<int:category_id>/', CategoryDetailView.as_view(), name='category_detail'),
    path('menus/', MenuItemView.as_view(), name='menus'),
    path('menus/<int:item_id>/', MenuItemDetailView.as_view(), name='menu_item_detail'),
]
