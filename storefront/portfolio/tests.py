"""
Test suite for the portfolio module
Tests: gallery ordering, item CRUD, reordering
"""
from unittest.mock import patch
from django.test import TestCase
from rest_framework import status
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.portfolio.models import PortfolioItem


class PortfolioTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()

    def test_list_orders_by_display_order(self):
        TestDataFactory.create_portfolio_item(title='Second', display_order=2)
        TestDataFactory.create_portfolio_item(title='First', display_order=1)
        response = self.client.get('/api/portfolio/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['title'] for item in response.data], ['First', 'Second'])

    def test_create_appends_at_the_end(self):
        self.client.authenticate_user(self.admin)
        data = {'title': 'Bouquet', 'image_url': 'https://a/bouquet.jpg'}
        response = self.client.post('/api/portfolio/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['item']['display_order'], 1)
        self.assertFalse(response.data['item']['featured'])

        response = self.client.post('/api/portfolio/', dict(data, featured=True), format='json')
        self.assertEqual(response.data['item']['display_order'], 2)
        self.assertTrue(response.data['item']['featured'])

    def test_create_requires_title_and_image(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/portfolio/', {'title': 'No image'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_create_rejects_array_body(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/portfolio/', [{'title': 'a'}], format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertFalse(PortfolioItem.objects.exists())

    def test_create_requires_staff(self):
        response = self.client.post('/api/portfolio/', {'title': 'a', 'image_url': 'https://a/b.jpg'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_partial_update(self):
        item = TestDataFactory.create_portfolio_item(title='Old')
        self.client.authenticate_user(self.admin)
        response = self.client.put(f'/api/portfolio/{item.id}/', {'featured': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['item']['title'], 'Old')
        self.assertTrue(response.data['item']['featured'])

    def test_update_unknown_item(self):
        self.client.authenticate_user(self.admin)
        response = self.client.patch('/api/portfolio/999999/', {'title': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])

    @patch('storefront.portfolio.views.destroy_hosted_image', return_value=False)
    def test_delete_survives_media_failure(self, mock_destroy):
        item = TestDataFactory.create_portfolio_item()
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/portfolio/{item.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertFalse(PortfolioItem.objects.filter(id=item.id).exists())
        mock_destroy.assert_called_once_with(item.image_url)

    def test_reorder(self):
        a = TestDataFactory.create_portfolio_item(title='A', display_order=1)
        b = TestDataFactory.create_portfolio_item(title='B', display_order=2)
        c = TestDataFactory.create_portfolio_item(title='C', display_order=3)
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/portfolio/reorder/', {
            'items': [{'id': c.id}, {'id': 999999}, {'id': a.id}, {'id': b.id}]
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['title'] for item in response.data['items']], ['C', 'A', 'B'])
        self.assertEqual([item['display_order'] for item in response.data['items']], [0, 2, 3])

    def test_reorder_rejects_non_list(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/portfolio/reorder/', {'items': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
