from django.urls import path
from .views import product_list_create, product_detail, check_availability, verify_cart

urlpatterns = [
    path('', product_list_create, name='product-list-create'),
    path('<int:pk>/', product_detail, name='product-detail'),
    path('check-availability/', check_availability, name='product-check-availability'),
    path('verify-cart/', verify_cart, name='product-verify-cart'),
]
