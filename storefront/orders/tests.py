"""
Test suite for the orders module
Tests: checkout, stock movements, confirmation email, back-office status management
"""
from decimal import Decimal
from unittest.mock import patch
from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from storefront.catalog.availability import MAX_LINE_QUANTITY
from storefront.catalog.models import Product
from storefront.core.models import AuditLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.orders.models import Order


class OrderModelTests(TestCase):

    def test_totals(self):
        a = TestDataFactory.create_product(price=Decimal('12.50'))
        b = TestDataFactory.create_product(price=Decimal('7.50'))
        order = TestDataFactory.create_order(products=[a, b])
        self.assertEqual(order.get_total(), Decimal('20.00'))
        self.assertEqual(order.items.first().get_line_total(), Decimal('12.50'))
        self.assertIn('Jane Doe', str(order))


class CheckoutTests(TestCase):
    """Test POST /api/orders/"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.vase = TestDataFactory.create_product(name='Vase', price=Decimal('20.00'), stock_quantity=2)
        self.print = TestDataFactory.create_product(name='Print', price=Decimal('15.00'))
        self.painting = TestDataFactory.create_product(name='Painting', price=Decimal('300.00'), is_unique=True)

    def checkout(self, items, **extra):
        data = {'customer_name': 'Jane Doe', 'customer_email': 'jane@test.com', 'items': items}
        data.update(extra)
        return self.client.post('/api/orders/', data, format='json')

    def test_checkout_creates_order_and_takes_stock(self):
        response = self.checkout([
            {'product_id': self.vase.id, 'quantity': 2, 'price': '20.00'},
            {'product_id': self.print.id, 'quantity': 1},
            {'product_id': self.painting.id, 'quantity': 1},
        ], total_amount='355.00')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        order = response.data['order']
        self.assertEqual(order['total_amount'], '355.00')
        self.assertEqual(order['status'], 'pending')
        self.assertEqual(len(order['items']), 3)

        self.vase.refresh_from_db()
        self.assertEqual(self.vase.stock_quantity, 0)
        self.assertFalse(self.vase.in_stock)

        self.painting.refresh_from_db()
        self.assertEqual(self.painting.stock_quantity, 0)
        self.assertFalse(self.painting.in_stock)

        self.print.refresh_from_db()
        self.assertIsNone(self.print.stock_quantity)
        self.assertTrue(self.print.in_stock)

        self.assertEqual(AuditLog.objects.filter(action='checkout').count(), 1)

    def test_checkout_uses_server_prices(self):
        response = self.checkout([{'product_id': self.print.id, 'quantity': 2}])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order']['total_amount'], '30.00')
        self.assertEqual(response.data['order']['items'][0]['price'], '15.00')

    def test_checkout_sends_confirmation_email(self):
        response = self.checkout([{'product_id': self.print.id, 'quantity': 1}])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ['jane@test.com'])
        self.assertIn(f"#{response.data['order']['id']}", message.subject)
        self.assertIn('Print', message.body)
        self.assertEqual(message.alternatives[0][1], 'text/html')

    @patch('storefront.orders.emails.EmailMultiAlternatives.send', side_effect=ConnectionRefusedError('smtp down'))
    def test_email_failure_does_not_fail_checkout(self, mock_send):
        response = self.checkout([{'product_id': self.print.id, 'quantity': 1}])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Order.objects.count(), 1)
        mock_send.assert_called_once()

    def test_checkout_conflict_when_stock_is_short(self):
        response = self.checkout([{'product_id': self.vase.id, 'quantity': 3}])
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['success'])
        patch_ = response.data['availability']['updates_to_apply'][0]
        self.assertEqual(patch_['quantity'], 2)
        self.assertEqual(Order.objects.count(), 0)
        self.vase.refresh_from_db()
        self.assertEqual(self.vase.stock_quantity, 2)

    def test_checkout_conflict_for_sold_product(self):
        self.painting.in_stock = False
        self.painting.save()
        response = self.checkout([{'product_id': self.painting.id, 'quantity': 1}])
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Order.objects.count(), 0)

    def test_checkout_conflict_on_total_mismatch(self):
        response = self.checkout([{'product_id': self.print.id, 'quantity': 1}], total_amount='10.00')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['availability']['total'], '15.00')
        self.assertEqual(Order.objects.count(), 0)

    def test_checkout_total_with_extra_precision(self):
        response = self.checkout([{'product_id': self.print.id, 'quantity': 1}], total_amount='15.004')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(Order.objects.count(), 0)

        response = self.checkout([{'product_id': self.print.id, 'quantity': 1}], total_amount='15.000')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order']['total_amount'], '15.00')

    def test_checkout_conflict_for_huge_quantity(self):
        response = self.checkout([{'product_id': self.print.id, 'quantity': 10 ** 12}])
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        patch_ = response.data['availability']['updates_to_apply'][0]
        self.assertEqual(patch_['quantity'], MAX_LINE_QUANTITY)
        self.assertEqual(Order.objects.count(), 0)

    def test_checkout_conflict_when_total_exceeds_limit(self):
        pricey = TestDataFactory.create_product(name='Pricey', price=Decimal('99999999.99'))
        response = self.checkout([{'product_id': pricey.id, 'quantity': 2}])
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['availability']['total'], '199999999.98')
        self.assertEqual(Order.objects.count(), 0)
        pricey.refresh_from_db()
        self.assertTrue(pricey.in_stock)

    def test_checkout_rejects_array_body(self):
        response = self.client.post('/api/orders/', [1, 2], format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['message'], 'Invalid order data')

    def test_checkout_missing_information(self):
        response = self.client.post('/api/orders/', {'customer_name': 'Jane', 'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Missing order information')

    def test_checkout_invalid_email(self):
        response = self.checkout([{'product_id': self.print.id, 'quantity': 1}], customer_email='not-an-email')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid email address')

    def test_checkout_invalidates_product_cache(self):
        self.client.get('/api/products/')
        self.assertEqual(self.client.get('/api/products/')['X-Cache'], 'HIT')
        self.checkout([{'product_id': self.vase.id, 'quantity': 1}])
        response = self.client.get('/api/products/')
        self.assertEqual(response['X-Cache'], 'MISS')
        vase = next(p for p in response.data if p['id'] == self.vase.id)
        self.assertEqual(vase['stock_quantity'], 1)


class OrderManagementTests(TestCase):
    """Test back-office order endpoints"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.product = TestDataFactory.create_product(price=Decimal('20.00'), stock_quantity=1)
        self.order = TestDataFactory.create_order(products=[self.product])
        # stock as it stands after the checkout of self.order
        Product.objects.filter(pk=self.product.pk).update(stock_quantity=0, in_stock=False)

    def test_list_requires_staff(self):
        response = self.client.get('/api/orders/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_with_status_filter(self):
        TestDataFactory.create_order(customer_name='Bob', status='shipped')
        self.client.authenticate_user(self.admin)

        response = self.client.get('/api/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['results'][0]['customer_name'], 'Bob')

        response = self.client.get('/api/orders/', {'status': 'shipped'})
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/orders/', {'status': 'lost'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get(f'/api/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(self.client.get('/api/orders/999999/').status_code, status.HTTP_404_NOT_FOUND)

    def test_status_update(self):
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/orders/{self.order.id}/status/', {'status': 'shipped'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'shipped')
        log = AuditLog.objects.get(action='status_change')
        self.assertEqual(log.changes['status'], {'old': 'pending', 'new': 'shipped'})

    def test_status_update_rejects_unknown_status(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/orders/{self.order.id}/status/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancel_restores_stock_and_is_terminal(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/orders/{self.order.id}/status/', {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 1)
        self.assertTrue(self.product.in_stock)

        response = self.client.put(f'/api/orders/{self.order.id}/status/', {'status': 'pending'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_update_requires_staff(self):
        response = self.client.put(f'/api/orders/{self.order.id}/status/', {'status': 'shipped'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_api_test_endpoint(self):
        response = self.client.get('/api/orders/test/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Order API is working')
