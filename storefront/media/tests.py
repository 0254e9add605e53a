"""
Test suite for the media module
Tests: public id parsing, SDK calls, upload validation, upload/delete endpoints
"""
from io import BytesIO
from unittest.mock import patch
from cloudinary.exceptions import Error as CloudinaryError, GeneralError
from PIL import Image
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, SimpleTestCase, override_settings
from rest_framework import status
from storefront.core.models import AuditLog
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient, CLOUDINARY_TEST_SETTINGS
from storefront.media.client import CloudinaryClient, MediaServiceError, build_public_id, destroy_hosted_image
from storefront.media.validators import validate_folder, InvalidUpload


def make_png(name='photo.png', size=(4, 4)):
    buffer = BytesIO()
    Image.new('RGB', size, color=(200, 30, 30)).save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


def uploaded(public_id):
    return {
        'secure_url': f'https://res.cloudinary.com/demo-cloud/image/upload/v1/{public_id}.png',
        'public_id': public_id,
    }


class PublicIdTests(SimpleTestCase):

    def setUp(self):
        self.client = CloudinaryClient('demo-cloud', 'key', 'secret')

    def test_build_public_id(self):
        self.assertEqual(build_public_id('My Photo.final.JPG', now=1.5), '1500-My-Photo-final')
        self.assertEqual(build_public_id('', now=2), '2000-image')

    def test_versioned_url(self):
        url = 'https://res.cloudinary.com/demo-cloud/image/upload/v1712345/projet-personnel/portfolio/123-a.jpg'
        self.assertEqual(self.client.public_id_from_url(url), 'projet-personnel/portfolio/123-a')

    def test_url_with_transformation(self):
        url = 'https://res.cloudinary.com/demo-cloud/image/upload/c_fill,w_300/v5/shop/b.png'
        self.assertEqual(self.client.public_id_from_url(url), 'shop/b')

    def test_foreign_urls(self):
        self.assertIsNone(self.client.public_id_from_url('https://example.com/image/upload/v1/a.jpg'))
        self.assertIsNone(self.client.public_id_from_url('https://res.cloudinary.com/other/image/upload/v1/a.jpg'))
        self.assertIsNone(self.client.public_id_from_url(''))

    def test_folder_path(self):
        client = CloudinaryClient('demo-cloud', 'key', 'secret', root_folder='/projet-personnel/')
        self.assertEqual(client.folder_path('portfolio'), 'projet-personnel/portfolio')


class CloudinaryClientTests(SimpleTestCase):
    """Test the SDK calls made by CloudinaryClient"""

    def setUp(self):
        self.client = CloudinaryClient('demo-cloud', 'key', 'secret', root_folder='shop', timeout=12)

    @patch('cloudinary.uploader.upload', return_value=uploaded('shop/products/1-a'))
    def test_upload_passes_folder_and_formats(self, mock_upload):
        result = self.client.upload(BytesIO(b'data'), 'a.png', 'products')
        self.assertEqual(result['public_id'], 'shop/products/1-a')
        self.assertTrue(result['image_url'].startswith('https://res.cloudinary.com/'))

        kwargs = mock_upload.call_args.kwargs
        self.assertEqual(kwargs['folder'], 'shop/products')
        self.assertEqual(kwargs['allowed_formats'], ['jpg', 'jpeg', 'png'])
        self.assertTrue(kwargs['public_id'].endswith('-a'))
        self.assertEqual(kwargs['timeout'], 12)

    @patch('cloudinary.uploader.upload', side_effect=GeneralError('Invalid image file'))
    def test_upload_error_is_wrapped(self, mock_upload):
        with self.assertRaisesMessage(MediaServiceError, 'Invalid image file'):
            self.client.upload(BytesIO(b'data'), 'a.png', 'products')

    @patch('cloudinary.uploader.upload', return_value={})
    def test_upload_without_url(self, mock_upload):
        with self.assertRaises(MediaServiceError):
            self.client.upload(BytesIO(b'data'), 'a.png', 'products')

    @patch('cloudinary.uploader.destroy')
    def test_destroy_results(self, mock_destroy):
        mock_destroy.return_value = {'result': 'ok'}
        self.assertTrue(self.client.destroy('shop/a'))
        mock_destroy.return_value = {'result': 'not found'}
        self.assertFalse(self.client.destroy('shop/a'))
        self.assertEqual(mock_destroy.call_args.args[0], 'shop/a')

    @patch('cloudinary.uploader.destroy', side_effect=CloudinaryError('boom'))
    def test_destroy_error_is_wrapped(self, mock_destroy):
        with self.assertRaises(MediaServiceError):
            self.client.destroy('shop/a')

    @patch('cloudinary.uploader.destroy')
    def test_unconfigured_client_raises(self, mock_destroy):
        with self.assertRaises(MediaServiceError):
            CloudinaryClient('', '', '').destroy('a')
        mock_destroy.assert_not_called()


class ValidatorTests(SimpleTestCase):

    def test_validate_folder(self):
        self.assertEqual(validate_folder(None), 'products')
        self.assertEqual(validate_folder('portfolio'), 'portfolio')
        with self.assertRaises(InvalidUpload):
            validate_folder('../etc')


@override_settings(**CLOUDINARY_TEST_SETTINGS)
class UploadAPITests(TestCase):
    """Test upload endpoints with the media service mocked"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    @patch('cloudinary.uploader.upload', return_value=uploaded('projet-personnel/portfolio/1-photo'))
    def test_upload_image(self, mock_upload):
        response = self.client.post('/api/upload/?folder=portfolio', {'image': make_png()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['public_id'], 'projet-personnel/portfolio/1-photo')
        self.assertEqual(mock_upload.call_args.kwargs['folder'], 'projet-personnel/portfolio')
        self.assertTrue(AuditLog.objects.filter(action='upload').exists())

    def test_upload_requires_staff(self):
        self.client.logout()
        response = self.client.post('/api/upload/', {'image': make_png()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_upload_without_file(self):
        response = self.client.post('/api/upload/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_rejects_non_image(self):
        upload = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')
        response = self.client.post('/api/upload/', {'image': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('message', response.data)

    def test_upload_rejects_unsupported_extension(self):
        response = self.client.post('/api/upload/', {'image': make_png(name='photo.gif')}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_rejects_corrupt_image(self):
        upload = SimpleUploadedFile('photo.png', b'not really a png', content_type='image/png')
        response = self.client.post('/api/upload/', {'image': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(MEDIA_MAX_UPLOAD_BYTES=10)
    def test_upload_rejects_large_file(self):
        response = self.client.post('/api/upload/', {'image': make_png()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_rejects_bad_folder(self):
        response = self.client.post('/api/upload/?folder=a.b', {'image': make_png()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch('cloudinary.uploader.upload', side_effect=GeneralError('down'))
    def test_upload_media_service_failure(self, mock_upload):
        response = self.client.post('/api/upload/', {'image': make_png()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    @override_settings(CLOUDINARY_API_SECRET='')
    @patch('cloudinary.uploader.upload')
    def test_upload_media_service_not_configured(self, mock_upload):
        response = self.client.post('/api/upload/', {'image': make_png()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        mock_upload.assert_not_called()

    @patch('cloudinary.uploader.upload', side_effect=[uploaded('p/1'), uploaded('p/2')])
    def test_upload_multiple(self, mock_upload):
        files = [make_png('one.png'), make_png('two.png')]
        response = self.client.post('/api/upload/multiple/', {'images': files}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['image_urls']), 2)
        self.assertEqual(response.data['images'][1]['public_id'], 'p/2')

    @patch('cloudinary.uploader.destroy', return_value={'result': 'ok'})
    @patch('cloudinary.uploader.upload', side_effect=[uploaded('p/1'), GeneralError('down')])
    def test_upload_multiple_discards_partial_batch(self, mock_upload, mock_destroy):
        files = [make_png('one.png'), make_png('two.png')]
        response = self.client.post('/api/upload/multiple/', {'images': files}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        mock_destroy.assert_called_once()
        self.assertEqual(mock_destroy.call_args.args[0], 'p/1')

    @patch('cloudinary.uploader.upload')
    def test_upload_multiple_limit(self, mock_upload):
        files = [make_png(f'{i}.png') for i in range(11)]
        response = self.client.post('/api/upload/multiple/', {'images': files}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        mock_upload.assert_not_called()

    @patch('cloudinary.uploader.destroy', return_value={'result': 'ok'})
    def test_delete_by_url(self, mock_destroy):
        url = 'https://res.cloudinary.com/demo-cloud/image/upload/v1/projet-personnel/products/1-a.jpg'
        response = self.client.delete('/api/upload/', {'image_url': url}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['deleted'])
        self.assertEqual(mock_destroy.call_args.args[0], 'projet-personnel/products/1-a')

    @patch('cloudinary.uploader.destroy')
    def test_delete_rejects_non_object_body(self, mock_destroy):
        response = self.client.delete('/api/upload/', [1, 2], format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        mock_destroy.assert_not_called()

    @patch('cloudinary.uploader.destroy', side_effect=GeneralError('boom'))
    def test_delete_media_failure(self, mock_destroy):
        response = self.client.delete('/api/upload/', {'public_id': 'p/1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    @patch('cloudinary.uploader.destroy', side_effect=GeneralError('boom'))
    def test_destroy_hosted_image_is_best_effort(self, mock_destroy):
        self.assertFalse(destroy_hosted_image('https://example.com/a.jpg'))
        mock_destroy.assert_not_called()

        url = 'https://res.cloudinary.com/demo-cloud/image/upload/v1/p/a.jpg'
        self.assertFalse(destroy_hosted_image(url))
        mock_destroy.assert_called_once()
