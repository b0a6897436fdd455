from django.urls import include, path

urlpatterns = [
    path('api/accounts/', include('orderease.apps.accounts.urls')),
    path('api/staff/', include('orderease.apps.accounts.staff_urls')),
    path('api/', include('orderease.apps.restaurants.urls')),
    path('api/', include('orderease.apps.menu.urls')),
    path('api/tables/', include('orderease.apps.tables.urls')),
    path('api/floors/', include('orderease.apps.tables.floor_urls')),
    path('api/taxes/', include('orderease.apps.taxes.urls')),
    path('api/customers/', include('orderease.apps.customers.urls')),
    path('api/orders/', include('orderease.apps.orders.urls')),
    path('api/pos/', include('orderease.apps.pos.urls')),
    path('api/inventory/', include('orderease.apps.inventory.urls')),
    path('api/public/', include('orderease.apps.public.urls')),
]
