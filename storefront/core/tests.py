"""
Test suite for the core module
Tests: back-office authentication, dashboard stats, audit logging, caching helpers
"""
from decimal import Decimal
from io import StringIO
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, RequestFactory, override_settings
from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken
from storefront.core.cache_utils import (
    get_cached_products_list, cache_products_list, invalidate_products_cache
)
from storefront.core.models import AuditLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.utils import create_audit_log, get_client_ip


class HealthTests(TestCase):

    def test_root_reports_backend_running(self):
        response = self.client.get('/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content.decode(), 'Backend is running')


class AdminLoginTests(TestCase):
    """Test token issuance for back-office users"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin(username='admin', password='1234')

    def test_login_success_returns_tokens(self):
        response = self.client.post('/api/admin/login/', {'username': 'admin', 'password': '1234'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertIn('refresh', response.data)
        token = AccessToken(response.data['token'])
        self.assertEqual(token['username'], 'admin')
        self.assertEqual(token['role'], 'admin')

    def test_login_wrong_password(self):
        response = self.client.post('/api/admin/login/', {'username': 'admin', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])

    def test_login_rejects_non_staff_user(self):
        TestDataFactory.create_user(username='shopper', password='secret123')
        response = self.client.post('/api/admin/login/', {'username': 'shopper', 'password': 'secret123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(response.data['success'])

    def test_login_missing_fields(self):
        response = self.client.post('/api/admin/login/', {'username': 'admin'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_refresh_issues_new_access_token(self):
        login = self.client.post('/api/admin/login/', {'username': 'admin', 'password': '1234'}, format='json')
        response = self.client.post('/api/admin/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_refresh_with_garbage_token(self):
        response = self.client.post('/api/admin/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AdminDashboardTests(TestCase):
    """Test token-protected back-office endpoints"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()

    def test_dashboard_requires_token(self):
        response = self.client.get('/api/admin/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_dashboard_with_invalid_token(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer invalid.token.value')
        response = self.client.get('/api/admin/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_dashboard_forbidden_for_non_staff(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/admin/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_dashboard_returns_user(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/admin/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['username'], self.admin.username)
        self.assertEqual(response.data['user']['role'], 'admin')

    def test_stats(self):
        available = TestDataFactory.create_product(price=Decimal('10.00'))
        sold_out = TestDataFactory.create_product(price=Decimal('20.00'), in_stock=False)
        TestDataFactory.create_order(products=[available])
        TestDataFactory.create_order(products=[sold_out], status='cancelled')
        create_audit_log(action='create', model_name='Product', object_id=available.id, object_name=available.name)

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/admin/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_products'], 2)
        self.assertEqual(response.data['products_out_of_stock'], 1)
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['orders_by_status']['pending'], 1)
        self.assertEqual(response.data['orders_by_status']['cancelled'], 1)
        self.assertEqual(response.data['orders_by_status']['shipped'], 0)
        self.assertEqual(Decimal(response.data['revenue']), Decimal('10.00'))
        self.assertEqual(len(response.data['recent_activity']), 1)


class AuditLogTests(TestCase):
    """Test audit log helpers"""

    def setUp(self):
        self.factory = RequestFactory()

    def test_client_ip_prefers_forwarded_header(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='203.0.113.5, 10.0.0.1')
        self.assertEqual(get_client_ip(request), '203.0.113.5')

    def test_client_ip_falls_back_to_remote_addr(self):
        request = self.factory.get('/')
        self.assertEqual(get_client_ip(request), '127.0.0.1')

    def test_create_audit_log_records_user(self):
        user = TestDataFactory.create_admin()
        log = create_audit_log(user=user, action='update', model_name='Product', object_id=7,
                               object_name='Vase', changes={'price': {'old': '1', 'new': '2'}})
        self.assertIsNotNone(log)
        self.assertEqual(log.user, user)
        self.assertEqual(log.object_id, '7')
        self.assertEqual(AuditLog.objects.count(), 1)

    def test_create_audit_log_skips_missing_fields(self):
        self.assertIsNone(create_audit_log(action='update', model_name='Product'))
        self.assertEqual(AuditLog.objects.count(), 0)


class EnsureAdminCommandTests(TestCase):

    def test_creates_then_updates_staff_user(self):
        out = StringIO()
        call_command('ensure_admin', '--username', 'boss', '--password', 'pw-1', stdout=out)
        self.assertIn('Created', out.getvalue())

        call_command('ensure_admin', '--username', 'boss', '--password', 'pw-2', stdout=out)
        self.assertIn('Updated', out.getvalue())

        from django.contrib.auth import get_user_model
        user = get_user_model().objects.get(username='boss')
        self.assertTrue(user.is_staff)
        self.assertTrue(user.check_password('pw-2'))

    @override_settings(ADMIN_USERNAME='', ADMIN_PASSWORD='')
    def test_requires_credentials(self):
        from django.core.management.base import CommandError
        with self.assertRaises(CommandError):
            call_command('ensure_admin', stdout=StringIO())


class ProductsCacheTests(TestCase):
    """Test the product list cache helpers and their invalidation"""

    def setUp(self):
        cache.clear()

    def test_cache_roundtrip_and_invalidation(self):
        data, key = get_cached_products_list({'search': 'vase'})
        self.assertIsNone(data)
        cache_products_list(key, [{'id': 1}])
        self.assertEqual(get_cached_products_list({'search': 'vase'})[0], [{'id': 1}])

        invalidate_products_cache()
        self.assertIsNone(get_cached_products_list({'search': 'vase'})[0])

    def test_product_save_invalidates_cache(self):
        _, key = get_cached_products_list({})
        cache_products_list(key, [])
        TestDataFactory.create_product()
        self.assertIsNone(cache.get(key))
