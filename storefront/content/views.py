import logging
from django.utils.text import slugify
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from storefront.core.permissions import IsStaffOrReadOnly
from storefront.core.utils import create_audit_log
from .models import PageContent
from .serializers import PageContentSerializer

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def page_content_list(request):
    pages = PageContent.objects.all()
    return Response(PageContentSerializer(pages, many=True).data)


@api_view(['GET', 'PUT'])
@permission_classes([IsStaffOrReadOnly])
def page_content_detail(request, page_id):
    """Read a page's content (public) or create/replace it (staff)"""
    if request.method == 'GET':
        page = PageContent.objects.filter(page_id=page_id).first()
        if page is None:
            return Response({
                'success': False,
                'message': 'Page content not found'
            }, status=status.HTTP_404_NOT_FOUND)
        return Response(PageContentSerializer(page).data)

    # PUT: upsert
    if slugify(page_id) != page_id:
        return Response({
            'success': False,
            'message': 'Invalid page id'
        }, status=status.HTTP_400_BAD_REQUEST)

    page = PageContent.objects.filter(page_id=page_id).first()
    serializer = PageContentSerializer(page, data=request.data)
    if not serializer.is_valid():
        return Response({
            'success': False,
            'message': 'Title and content are required',
            'errors': serializer.errors
        }, status=status.HTTP_400_BAD_REQUEST)

    created = page is None
    page = serializer.save(page_id=page_id)
    logger.info(f"Page content {'created' if created else 'updated'}: {page_id}")
    create_audit_log(request=request, action='create' if created else 'update', model_name='PageContent',
                     object_id=page.id, object_name=page_id, changes={'title': page.title})

    return Response({
        'success': True,
        'message': 'Page content saved successfully',
        'page_content': PageContentSerializer(page).data
    })
