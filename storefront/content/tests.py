"""
Test suite for the content module
Tests: public page reads and back-office upserts
"""
from django.test import TestCase
from rest_framework import status
from storefront.content.models import PageContent
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class PageContentTests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()

    def test_public_read(self):
        TestDataFactory.create_page(page_id='soins', title='Soins', content='Nos soins')
        response = self.client.get('/api/page-content/soins/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], 'Soins')
        self.assertEqual(response.data['content'], 'Nos soins')

    def test_missing_page(self):
        response = self.client.get('/api/page-content/unknown/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(response.data['success'])

    def test_upsert_creates_then_updates(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put('/api/page-content/about/', {'title': 'About', 'content': 'v1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['page_content']['page_id'], 'about')
        first_update = PageContent.objects.get(page_id='about').last_updated

        response = self.client.put('/api/page-content/about/', {'title': 'About us', 'content': 'v2'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(PageContent.objects.count(), 1)
        page = PageContent.objects.get(page_id='about')
        self.assertEqual(page.content, 'v2')
        self.assertGreaterEqual(page.last_updated, first_update)

    def test_upsert_requires_title_and_content(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put('/api/page-content/about/', {'title': 'About'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertFalse(PageContent.objects.exists())

    def test_upsert_rejects_invalid_page_id(self):
        self.client.authenticate_user(self.admin)
        response = self.client.put('/api/page-content/About_Us/', {'title': 'a', 'content': 'b'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upsert_requires_staff(self):
        response = self.client.put('/api/page-content/about/', {'title': 'a', 'content': 'b'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_is_staff_only(self):
        TestDataFactory.create_page(page_id='home')
        TestDataFactory.create_page(page_id='about')
        self.assertEqual(self.client.get('/api/page-content/').status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/page-content/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['page_id'] for p in response.data], ['about', 'home'])
