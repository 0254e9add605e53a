from django.urls import path
from .views import admin_login, AdminTokenRefreshView, admin_dashboard, admin_stats

urlpatterns = [
    # Auth endpoints
    path('login/', admin_login, name='admin-login'),
    path('refresh/', AdminTokenRefreshView.as_view(), name='admin-token-refresh'),

    # Dashboard endpoints
    path('dashboard/', admin_dashboard, name='admin-dashboard'),
    path('stats/', admin_stats, name='admin-stats'),
]
