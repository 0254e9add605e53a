import logging
from django.db import transaction
from django.db.models import Max
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from storefront.core.permissions import IsStaffOrReadOnly
from storefront.core.utils import create_audit_log
from storefront.media.client import destroy_hosted_image
from .models import PortfolioItem
from .serializers import PortfolioItemSerializer, PortfolioReorderSerializer

logger = logging.getLogger(__name__)


def _not_found():
    return Response({
        'success': False,
        'message': 'Portfolio item not found'
    }, status=status.HTTP_404_NOT_FOUND)


@api_view(['GET', 'POST'])
@permission_classes([IsStaffOrReadOnly])
def portfolio_list_create(request):
    """Gallery in display order (public) or add an item at the end (staff)"""
    if request.method == 'GET':
        items = PortfolioItem.objects.all()
        return Response(PortfolioItemSerializer(items, many=True).data)

    if not isinstance(request.data, dict):
        return Response({
            'success': False,
            'message': 'Request body must be a JSON object'
        }, status=status.HTTP_400_BAD_REQUEST)

    if not request.data.get('title') or not request.data.get('image_url'):
        return Response({
            'success': False,
            'message': 'Title and image are required'
        }, status=status.HTTP_400_BAD_REQUEST)

    serializer = PortfolioItemSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({
            'success': False,
            'message': 'Invalid portfolio item',
            'errors': serializer.errors
        }, status=status.HTTP_400_BAD_REQUEST)

    highest = PortfolioItem.objects.aggregate(highest=Max('display_order'))['highest']
    item = serializer.save(display_order=highest + 1 if highest is not None else 1)
    logger.info(f"Portfolio item created: id={item.id} title={item.title!r}")
    create_audit_log(request=request, action='create', model_name='PortfolioItem', object_id=item.id,
                     object_name=item.title, changes={'display_order': item.display_order})

    return Response({
        'success': True,
        'message': 'Portfolio item added successfully',
        'item': PortfolioItemSerializer(item).data
    }, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def portfolio_detail(request, pk):
    item = PortfolioItem.objects.filter(pk=pk).first()
    if item is None:
        return _not_found()

    if request.method == 'DELETE':
        item_id, title, image_url = item.id, item.title, item.image_url
        item.delete()
        image_deleted = destroy_hosted_image(image_url)
        logger.info(f"Portfolio item deleted: id={item_id} image_deleted={image_deleted}")
        create_audit_log(request=request, action='delete', model_name='PortfolioItem', object_id=item_id,
                         object_name=title, changes={'image_deleted': image_deleted})
        return Response({
            'success': True,
            'message': 'Portfolio item deleted successfully'
        })

    serializer = PortfolioItemSerializer(item, data=request.data, partial=True)
    if not serializer.is_valid():
        return Response({
            'success': False,
            'message': 'Invalid portfolio item',
            'errors': serializer.errors
        }, status=status.HTTP_400_BAD_REQUEST)

    item = serializer.save()
    create_audit_log(request=request, action='update', model_name='PortfolioItem', object_id=item.id,
                     object_name=item.title, changes={key: str(value) for key, value in serializer.validated_data.items()})
    return Response({
        'success': True,
        'message': 'Portfolio item updated successfully',
        'item': PortfolioItemSerializer(item).data
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def portfolio_reorder(request):
    """Set display_order to each listed item's position; unknown ids are skipped"""
    serializer = PortfolioReorderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({
            'success': False,
            'message': 'items must be a list of {id} objects'
        }, status=status.HTTP_400_BAD_REQUEST)

    with transaction.atomic():
        for index, entry in enumerate(serializer.validated_data['items']):
            try:
                item_id = int(entry.get('id'))
            except (TypeError, ValueError):
                continue
            PortfolioItem.objects.filter(pk=item_id).update(display_order=index)

    create_audit_log(request=request, action='reorder', model_name='PortfolioItem', object_id='all',
                     object_name='Portfolio', changes={'count': len(serializer.validated_data['items'])})

    items = PortfolioItem.objects.order_by('display_order', '-created_at', '-id')
    return Response({
        'success': True,
        'message': 'Portfolio order updated successfully',
        'items': PortfolioItemSerializer(items, many=True).data
    })
