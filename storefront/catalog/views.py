import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.shortcuts import get_object_or_404
from storefront.core.cache_utils import get_cached_products_list, cache_products_list
from storefront.core.permissions import IsStaffOrReadOnly
from storefront.core.utils import create_audit_log
from storefront.media.client import destroy_hosted_image
from .availability import collect_product_ids, load_products, reconcile_cart
from .filters import ProductFilter
from .models import Product
from .serializers import ProductSerializer, ProductAvailabilitySerializer, VerifyCartSerializer

logger = logging.getLogger(__name__)

PRODUCT_AUDIT_FIELDS = ['name', 'price', 'in_stock', 'is_unique', 'stock_quantity']


def _audit_snapshot(product):
    return {field: str(getattr(product, field)) for field in PRODUCT_AUDIT_FIELDS}


@api_view(['GET', 'POST'])
@permission_classes([IsStaffOrReadOnly])
def product_list_create(request):
    """List products (public, cached) or create a product (staff)"""
    if request.method == 'GET':
        filterset = ProductFilter(request.query_params, queryset=Product.objects.all())
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

        filters_dict = {key: request.query_params.get(key, '') for key in ProductFilter.Meta.fields}
        try:
            cached_data, cache_key = get_cached_products_list(filters_dict)
        except Exception as e:
            logger.warning(f"Cache unavailable, proceeding without cache: {e}")
            cached_data, cache_key = None, None
        if cached_data is not None:
            response = Response(cached_data)
            response['X-Cache'] = 'HIT'
            return response

        data = ProductSerializer(filterset.qs, many=True).data
        if cache_key:
            try:
                cache_products_list(cache_key, data)
            except Exception as e:
                logger.warning(f"Could not cache products list: {e}")
        response = Response(data)
        response['X-Cache'] = 'MISS'
        return response

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save()
        logger.info(f"Product created: id={product.id} name={product.name!r}")
        create_audit_log(request=request, action='create', model_name='Product', object_id=product.id,
                         object_name=product.name, changes=_audit_snapshot(product))
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsStaffOrReadOnly])
def product_detail(request, pk):
    """Retrieve (public), update or delete (staff) a product"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)

    if request.method in ('PUT', 'PATCH'):
        before = _audit_snapshot(product)
        # PUT behaves as a partial update: the back office sends only edited fields
        serializer = ProductSerializer(product, data=request.data, partial=True)
        if serializer.is_valid():
            product = serializer.save()
            after = _audit_snapshot(product)
            create_audit_log(request=request, action='update', model_name='Product', object_id=product.id,
                             object_name=product.name,
                             changes={k: {'old': before[k], 'new': v} for k, v in after.items() if before[k] != v})
            return Response(ProductSerializer(product).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    product_id, product_name = product.id, product.name
    image_urls = {image.get('url') for image in product.images or []}
    if product.image_url:
        image_urls.add(product.image_url)
    product.delete()
    logger.info(f"Product deleted: id={product_id} name={product_name!r}")

    deleted_images = sum(1 for url in image_urls if url and destroy_hosted_image(url))
    create_audit_log(request=request, action='delete', model_name='Product', object_id=product_id,
                     object_name=product_name, changes={'deleted_images': deleted_images})
    return Response({'message': 'Product deleted successfully'})


@api_view(['POST'])
@permission_classes([AllowAny])
def check_availability(request):
    """Current availability fields for the given product ids"""
    product_ids = request.data.get('product_ids') if isinstance(request.data, dict) else None
    if not isinstance(product_ids, list):
        return Response({
            'success': False,
            'message': 'product_ids must be a list of product identifiers'
        }, status=status.HTTP_400_BAD_REQUEST)

    products = load_products(collect_product_ids([{'id': value} for value in product_ids]))
    serializer = ProductAvailabilitySerializer(products.values(), many=True)
    return Response({'success': True, 'products': serializer.data})


@api_view(['POST'])
@permission_classes([AllowAny])
def verify_cart(request):
    """Reconcile a client cart against current inventory"""
    serializer = VerifyCartSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    items = serializer.validated_data['items']
    products = load_products(collect_product_ids(items))
    return Response(reconcile_cart(items, products))
