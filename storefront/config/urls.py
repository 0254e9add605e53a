"""
URL configuration for the storefront backend.

Public storefront and back-office endpoints all live under /api/.
"""
from django.contrib import admin
from django.urls import path, include
from storefront.core.views import health

admin.site.site_header = "Storefront Admin Panel"
admin.site.site_title = "Storefront Admin Portal"
admin.site.index_title = "Catalog, orders and content"

urlpatterns = [
    path('', health, name='health'),
    path('admin/', admin.site.urls),
    path('api/admin/', include('storefront.core.urls')),
    path('api/products/', include('storefront.catalog.urls')),
    path('api/orders/', include('storefront.orders.urls')),
    path('api/page-content/', include('storefront.content.urls')),
    path('api/portfolio/', include('storefront.portfolio.urls')),
    path('api/upload/', include('storefront.media.urls')),
]
