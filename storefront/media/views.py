import logging
from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from storefront.core.utils import create_audit_log
from .client import get_media_client, MediaServiceError
from .validators import validate_folder, validate_image_upload, InvalidUpload

logger = logging.getLogger(__name__)

MAX_FILES_PER_UPLOAD = 10


def _upload_one(client, uploaded_file, folder):
    validate_image_upload(uploaded_file, settings.MEDIA_MAX_UPLOAD_BYTES)
    return client.upload(uploaded_file, uploaded_file.name, folder)


def _discard_uploads(client, uploaded):
    """Remove images already sent when a batch upload fails partway"""
    for item in uploaded:
        try:
            client.destroy(item['public_id'])
        except MediaServiceError as e:
            logger.warning(f"Could not discard partial upload {item['public_id']}: {str(e)}")


@api_view(['POST', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def upload_image(request):
    """Upload one image (field `image`) or delete a hosted image"""
    client = get_media_client()

    if request.method == 'DELETE':
        if not isinstance(request.data, dict):
            return Response({'success': False, 'message': 'Request body must be a JSON object'},
                            status=status.HTTP_400_BAD_REQUEST)
        public_id = request.data.get('public_id') or client.public_id_from_url(request.data.get('image_url', ''))
        if not public_id:
            return Response({'message': 'A public_id or a hosted image_url is required'}, status=status.HTTP_400_BAD_REQUEST)
        try:
            deleted = client.destroy(public_id)
        except MediaServiceError as e:
            return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)
        create_audit_log(request=request, action='delete', model_name='Image', object_id=public_id,
                         object_name=public_id, changes={'deleted': deleted})
        message = 'Image deleted' if deleted else 'Image was already absent'
        return Response({'message': message, 'deleted': deleted})

    uploaded_file = request.FILES.get('image')
    if not uploaded_file:
        return Response({'message': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        folder = validate_folder(request.query_params.get('folder'))
        result = _upload_one(client, uploaded_file, folder)
    except InvalidUpload as e:
        return Response({'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except MediaServiceError as e:
        return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

    create_audit_log(request=request, action='upload', model_name='Image', object_id=result['public_id'] or result['image_url'],
                     object_name=uploaded_file.name, changes={'folder': folder, 'image_url': result['image_url']})
    return Response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def upload_multiple_images(request):
    """Upload up to ten images sent in the `images` field"""
    files = request.FILES.getlist('images')
    if not files:
        return Response({'message': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)
    if len(files) > MAX_FILES_PER_UPLOAD:
        return Response({'message': f'At most {MAX_FILES_PER_UPLOAD} images per upload'}, status=status.HTTP_400_BAD_REQUEST)

    client = get_media_client()
    try:
        folder = validate_folder(request.query_params.get('folder'))
        # Validate everything before anything is sent
        for uploaded_file in files:
            validate_image_upload(uploaded_file, settings.MEDIA_MAX_UPLOAD_BYTES)
    except InvalidUpload as e:
        return Response({'message': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    uploaded = []
    try:
        for uploaded_file in files:
            uploaded.append(client.upload(uploaded_file, uploaded_file.name, folder))
    except MediaServiceError as e:
        _discard_uploads(client, uploaded)
        return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

    logger.info(f"Uploaded {len(uploaded)} image(s) to folder {folder}")
    return Response({
        'image_urls': [item['image_url'] for item in uploaded],
        'images': uploaded,
    })
