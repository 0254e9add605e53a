from django.urls import path
from . import views

urlpatterns = [
    path('', views.order_list_create, name='order-list-create'),
    path('test/', views.order_api_test, name='order-api-test'),
    path('<int:pk>/', views.order_detail, name='order-detail'),
    path('<int:pk>/status/', views.order_status_update, name='order-status-update'),
]
