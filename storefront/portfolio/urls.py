from django.urls import path
from . import views

urlpatterns = [
    path('', views.portfolio_list_create, name='portfolio-list-create'),
    path('reorder/', views.portfolio_reorder, name='portfolio-reorder'),
    path('<int:pk>/', views.portfolio_detail, name='portfolio-detail'),
]
