"""
Test suite for the catalog module
Tests: image normalization, product CRUD, list caching and filters, cart reconciliation
"""
from decimal import Decimal
from unittest.mock import patch
from django.core.cache import cache
from django.test import TestCase, SimpleTestCase
from rest_framework import status
from storefront.catalog.availability import (
    reconcile_cart, merge_cart_items, parse_quantity, load_products, MAX_LINE_QUANTITY,
    PATCH_REMOVE, PATCH_MARK_UNAVAILABLE, PATCH_UPDATE_QUANTITY, PATCH_UPDATE_PRICE,
    REASON_INVALID_QUANTITY, REASON_NOT_FOUND, REASON_OUT_OF_STOCK
)
from storefront.catalog.models import Product
from storefront.catalog.utils import normalize_images, main_image_of
from storefront.core.models import AuditLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class NormalizeImagesTests(SimpleTestCase):

    def test_first_image_becomes_main_when_none_flagged(self):
        images = normalize_images([{'url': 'https://a/1.jpg'}, {'url': 'https://a/2.jpg'}])
        self.assertEqual([i['is_main'] for i in images], [True, False])
        self.assertEqual([i['order'] for i in images], [0, 1])

    def test_only_first_flagged_image_stays_main(self):
        images = normalize_images([
            {'url': 'https://a/1.jpg'},
            {'url': 'https://a/2.jpg', 'is_main': True},
            {'url': 'https://a/3.jpg', 'is_main': True, 'order': 9},
        ])
        self.assertEqual([i['is_main'] for i in images], [False, True, False])
        self.assertEqual(images[2]['order'], 9)
        self.assertEqual(main_image_of(images), 'https://a/2.jpg')

    def test_empty(self):
        self.assertEqual(normalize_images([]), [])
        self.assertEqual(main_image_of([]), '')


class ProductModelTests(TestCase):

    def test_main_image_url_fallbacks(self):
        product = TestDataFactory.create_product(images=[])
        self.assertIsNone(product.main_image_url)
        product.image_url = 'https://a/legacy.jpg'
        self.assertEqual(product.main_image_url, 'https://a/legacy.jpg')
        product.images = [{'url': 'https://a/1.jpg'}, {'url': 'https://a/2.jpg', 'is_main': True}]
        self.assertEqual(product.main_image_url, 'https://a/2.jpg')

    def test_is_available(self):
        self.assertTrue(TestDataFactory.create_product().is_available())
        self.assertFalse(TestDataFactory.create_product(in_stock=False).is_available())
        self.assertFalse(TestDataFactory.create_product(stock_quantity=0).is_available())
        self.assertTrue(TestDataFactory.create_product(stock_quantity=3).is_available())


class ProductAPITests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()

    def test_list_is_public(self):
        TestDataFactory.create_product(name='Blue vase')
        response = self.client.get('/api/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], 'Blue vase')

    def test_list_is_cached_until_a_product_changes(self):
        TestDataFactory.create_product()
        first = self.client.get('/api/products/')
        self.assertEqual(first['X-Cache'], 'MISS')
        second = self.client.get('/api/products/')
        self.assertEqual(second['X-Cache'], 'HIT')

        TestDataFactory.create_product()
        third = self.client.get('/api/products/')
        self.assertEqual(third['X-Cache'], 'MISS')
        self.assertEqual(len(third.data), 2)

    def test_list_filters(self):
        TestDataFactory.create_product(name='Blue vase', price=Decimal('30.00'))
        TestDataFactory.create_product(name='Red bowl', price=Decimal('12.00'), stock_quantity=0)
        TestDataFactory.create_product(name='Green vase', price=Decimal('50.00'), in_stock=False)

        response = self.client.get('/api/products/', {'search': 'vase'})
        self.assertEqual({p['name'] for p in response.data}, {'Blue vase', 'Green vase'})

        response = self.client.get('/api/products/', {'in_stock': 'true'})
        self.assertEqual([p['name'] for p in response.data], ['Blue vase'])

        response = self.client.get('/api/products/', {'min_price': '20', 'max_price': '40'})
        self.assertEqual([p['name'] for p in response.data], ['Blue vase'])

    def test_list_rejects_bad_filter(self):
        response = self.client.get('/api/products/', {'min_price': 'cheap'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_retrieve_and_404(self):
        product = TestDataFactory.create_product()
        response = self.client.get(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], product.id)
        self.assertEqual(response.data['main_image_url'], product.main_image_url)

        response = self.client.get('/api/products/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_requires_staff(self):
        data = {'name': 'Vase', 'price': '10.00', 'images': [{'url': 'https://a/1.jpg'}]}
        response = self.client.post('/api/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_requires_an_image(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/products/', {'name': 'Vase', 'price': '10.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('images', response.data)

    def test_create_normalizes_images(self):
        self.client.authenticate_user(self.admin)
        data = {
            'name': 'Vase',
            'price': '10.00',
            'images': [{'url': 'https://a/1.jpg'}, {'url': 'https://a/2.jpg', 'is_main': True}],
        }
        response = self.client.post('/api/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['image_url'], 'https://a/2.jpg')
        self.assertEqual(response.data['main_image_url'], 'https://a/2.jpg')
        self.assertTrue(response.data['in_stock'])
        self.assertEqual(AuditLog.objects.filter(action='create', model_name='Product').count(), 1)

    def test_create_unique_forces_single_unit(self):
        self.client.authenticate_user(self.admin)
        data = {
            'name': 'Painting', 'price': '300.00', 'is_unique': True, 'stock_quantity': 5,
            'images': [{'url': 'https://a/p.jpg'}],
        }
        response = self.client.post('/api/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['stock_quantity'], 1)

    def test_create_rejects_negative_price(self):
        self.client.authenticate_user(self.admin)
        data = {'name': 'Vase', 'price': '-1.00', 'images': [{'url': 'https://a/1.jpg'}]}
        response = self.client.post('/api/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_is_partial(self):
        product = TestDataFactory.create_product(name='Old', price=Decimal('10.00'))
        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/products/{product.id}/', {'price': '12.50'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Old')
        self.assertEqual(response.data['price'], '12.50')

        log = AuditLog.objects.get(action='update')
        self.assertEqual(log.changes['price'], {'old': '10.00', 'new': '12.50'})

    def test_update_with_bare_image_url(self):
        product = TestDataFactory.create_product()
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/products/{product.id}/', {'image_url': 'https://a/new.jpg'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['images'], [{'url': 'https://a/new.jpg', 'is_main': True, 'order': 0}])

    def test_update_cannot_clear_images(self):
        product = TestDataFactory.create_product()
        self.client.authenticate_user(self.admin)
        response = self.client.patch(f'/api/products/{product.id}/', {'images': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_unknown_product(self):
        self.client.authenticate_user(self.admin)
        response = self.client.patch('/api/products/999999/', {'price': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @patch('storefront.catalog.views.destroy_hosted_image', return_value=True)
    def test_delete_destroys_hosted_images(self, mock_destroy):
        product = TestDataFactory.create_product(images=[
            {'url': 'https://res.cloudinary.com/demo-cloud/image/upload/v1/shop/products/a.jpg', 'is_main': True, 'order': 0},
            {'url': 'https://res.cloudinary.com/demo-cloud/image/upload/v1/shop/products/b.jpg', 'is_main': False, 'order': 1},
        ])
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Product deleted successfully')
        self.assertFalse(Product.objects.filter(id=product.id).exists())
        self.assertEqual(mock_destroy.call_count, 2)


class CheckAvailabilityTests(TestCase):

    def test_returns_availability_subset(self):
        product = TestDataFactory.create_product(stock_quantity=2)
        response = self.client.post('/api/products/check-availability/',
                                    {'product_ids': [product.id, 999999, 'junk']}, content_type='application/json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(len(response.data['products']), 1)
        entry = response.data['products'][0]
        self.assertEqual(entry['stock_quantity'], 2)
        self.assertNotIn('description', entry)

    def test_rejects_non_list(self):
        response = self.client.post('/api/products/check-availability/',
                                    {'product_ids': 'abc'}, content_type='application/json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_rejects_array_body(self):
        response = self.client.post('/api/products/check-availability/',
                                    [1, 2], content_type='application/json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])


class CartReconciliationTests(TestCase):
    """Test reconcile_cart patch rules"""

    def setUp(self):
        self.vase = TestDataFactory.create_product(name='Vase', price=Decimal('20.00'), stock_quantity=3)
        self.print = TestDataFactory.create_product(name='Print', price=Decimal('15.00'))
        self.painting = TestDataFactory.create_product(name='Painting', price=Decimal('300.00'), is_unique=True)
        self.sold_out = TestDataFactory.create_product(name='Sold out', in_stock=False)
        self.empty = TestDataFactory.create_product(name='Empty', stock_quantity=0)

    def reconcile(self, items):
        from storefront.catalog.availability import collect_product_ids
        return reconcile_cart(items, load_products(collect_product_ids(items)))

    def test_valid_cart(self):
        result = self.reconcile([
            {'id': self.vase.id, 'quantity': 2, 'price': '20.00'},
            {'id': self.print.id, 'quantity': 1},
        ])
        self.assertTrue(result['valid'])
        self.assertEqual(result['updates_to_apply'], [])
        self.assertEqual(result['total'], '55.00')
        self.assertEqual(result['items'][0]['line_total'], '40.00')

    def test_missing_product(self):
        result = self.reconcile([{'id': 999999, 'quantity': 1, 'name': 'Ghost'}])
        self.assertFalse(result['valid'])
        self.assertEqual(result['updates_to_apply'], [
            {'type': PATCH_MARK_UNAVAILABLE, 'id': 999999, 'reason': REASON_NOT_FOUND}
        ])
        self.assertEqual(result['unavailable_items'][0]['name'], 'Ghost')

    def test_out_of_stock_products(self):
        result = self.reconcile([
            {'id': self.sold_out.id, 'quantity': 1},
            {'id': self.empty.id, 'quantity': 1},
        ])
        reasons = [u['reason'] for u in result['updates_to_apply']]
        self.assertEqual(reasons, [REASON_OUT_OF_STOCK, REASON_OUT_OF_STOCK])
        self.assertEqual(result['items'], [])
        self.assertEqual(result['total'], '0.00')

    def test_unique_product_clamped_to_one_with_price_change(self):
        result = self.reconcile([{'id': self.painting.id, 'quantity': 3, 'price': '250.00'}])
        self.assertEqual(result['updates_to_apply'], [
            {'type': PATCH_UPDATE_QUANTITY, 'id': self.painting.id, 'quantity': 1, 'price': '300.00'}
        ])
        self.assertEqual(result['items'][0]['quantity'], 1)

    def test_tracked_stock_clamp(self):
        result = self.reconcile([{'id': self.vase.id, 'quantity': 5}])
        self.assertEqual(result['updates_to_apply'][0]['type'], PATCH_UPDATE_QUANTITY)
        self.assertEqual(result['updates_to_apply'][0]['quantity'], 3)
        self.assertNotIn('price', result['updates_to_apply'][0])

    def test_huge_quantity_clamped_to_line_maximum(self):
        result = self.reconcile([{'id': self.print.id, 'quantity': 10 ** 12}])
        self.assertEqual(result['updates_to_apply'], [
            {'type': PATCH_UPDATE_QUANTITY, 'id': self.print.id, 'quantity': MAX_LINE_QUANTITY}
        ])
        self.assertEqual(result['items'][0]['quantity'], MAX_LINE_QUANTITY)

    def test_price_change(self):
        result = self.reconcile([{'id': self.print.id, 'quantity': 1, 'price': '10.00'}])
        self.assertEqual(result['updates_to_apply'], [
            {'type': PATCH_UPDATE_PRICE, 'id': self.print.id, 'price': '15.00'}
        ])
        self.assertEqual(result['total'], '15.00')

    def test_invalid_quantity_removed(self):
        result = self.reconcile([
            {'id': self.print.id, 'quantity': 0},
            {'id': self.vase.id, 'quantity': 1.5},
        ])
        self.assertEqual([u['type'] for u in result['updates_to_apply']], [PATCH_REMOVE, PATCH_REMOVE])
        self.assertEqual(result['unavailable_items'][0]['reason'], REASON_INVALID_QUANTITY)

    def test_duplicate_lines_are_merged(self):
        result = self.reconcile([
            {'id': self.vase.id, 'quantity': 2},
            {'_id': str(self.vase.id), 'quantity': 2},
        ])
        self.assertEqual(len(result['updates_to_apply']), 1)
        self.assertEqual(result['updates_to_apply'][0]['quantity'], 3)

    def test_parse_quantity(self):
        self.assertEqual(parse_quantity('2'), 2)
        self.assertEqual(parse_quantity(2.0), 2)
        self.assertIsNone(parse_quantity(True))
        self.assertIsNone(parse_quantity('two'))
        self.assertIsNone(parse_quantity(-1))

    def test_merge_keeps_first_seen_order(self):
        lines = merge_cart_items([{'id': 2, 'quantity': 1}, {'id': 1, 'quantity': 1}, {'id': 2, 'quantity': 1}])
        self.assertEqual([line['product_id'] for line in lines], [2, 1])
        self.assertEqual(lines[0]['quantity'], 2)

    def test_verify_cart_endpoint(self):
        response = self.client.post('/api/products/verify-cart/',
                                    {'items': [{'id': self.vase.id, 'quantity': 4}]}, content_type='application/json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['valid'])
        self.assertEqual(response.data['updates_to_apply'][0]['quantity'], 3)
