from django.urls import path
from . import views

urlpatterns = [
    path('', views.page_content_list, name='page-content-list'),
    path('<str:page_id>/', views.page_content_detail, name='page-content-detail'),
]
