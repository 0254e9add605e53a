import logging
from decimal import Decimal
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import F
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from storefront.catalog.availability import collect_product_ids, load_products, reconcile_cart
from storefront.catalog.models import Product
from storefront.core.cache_utils import invalidate_products_cache
from storefront.core.permissions import IsStaffOrPublicCreate
from storefront.core.utils import create_audit_log
from .emails import send_order_confirmation
from .filters import OrderFilter
from .models import Order, OrderItem
from .serializers import OrderSerializer, OrderCreateSerializer, OrderStatusSerializer

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
REQUIRED_ORDER_FIELDS = ('customer_name', 'customer_email', 'items')
# Largest value Order.total_amount (max_digits=10, decimal_places=2) can hold
ORDER_TOTAL_LIMIT = Decimal('99999999.99')


def take_stock(product, quantity):
    """Remove `quantity` units of a locked product from sale

    Tracked quantities are decremented with F(); a product whose tracked stock
    reaches 0, or a unique product, is flagged out of stock.
    """
    sold_out = product.is_unique
    if product.tracks_quantity:
        Product.objects.filter(pk=product.pk).update(stock_quantity=F('stock_quantity') - quantity)
        product.refresh_from_db(fields=['stock_quantity'])
        if product.stock_quantity <= 0:
            sold_out = True
    if sold_out:
        Product.objects.filter(pk=product.pk).update(in_stock=False)


def restore_stock(order):
    """Put the units taken at checkout back on sale"""
    for item in order.items.select_related('product'):
        product = item.product
        if product is None:
            continue
        updates = {'in_stock': True}
        if product.tracks_quantity:
            updates['stock_quantity'] = F('stock_quantity') + item.quantity
        Product.objects.filter(pk=product.pk).update(**updates)


def _invalid_order_message(serializer):
    if not isinstance(serializer.initial_data, dict):
        return 'Invalid order data'
    errors = serializer.errors
    for field in REQUIRED_ORDER_FIELDS:
        value = serializer.initial_data.get(field)
        if field in errors and (value is None or value == '' or value == []):
            return 'Missing order information'
    if 'customer_email' in errors:
        return 'Invalid email address'
    return 'Invalid order data'


@api_view(['GET', 'POST'])
@permission_classes([IsStaffOrPublicCreate])
def order_list_create(request):
    """List orders (staff) or place an order at checkout (public)"""
    if request.method == 'GET':
        filterset = OrderFilter(request.query_params, queryset=Order.objects.prefetch_related('items'))
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            page = int(request.query_params.get('page', 1))
            limit = int(request.query_params.get('limit', DEFAULT_PAGE_SIZE))
        except ValueError:
            return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

        paginator = Paginator(filterset.qs, max(limit, 1))
        page_obj = paginator.get_page(page)
        serializer = OrderSerializer(page_obj, many=True)
        return Response({
            'results': serializer.data,
            'count': paginator.count,
            'next': page_obj.next_page_number() if page_obj.has_next() else None,
            'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
            'page': page_obj.number,
            'page_size': max(limit, 1),
            'total_pages': paginator.num_pages,
        })

    # POST: checkout
    serializer = OrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({
            'success': False,
            'message': _invalid_order_message(serializer),
            'errors': serializer.errors
        }, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    items = data['items']

    with transaction.atomic():
        products = load_products(collect_product_ids(items), lock=True)
        availability = reconcile_cart(items, products)

        if not availability['valid']:
            logger.info(f"Checkout rejected for {data['customer_email']}: cart out of date")
            return Response({
                'success': False,
                'message': 'Some items in your cart are no longer available as requested',
                'availability': availability
            }, status=status.HTTP_409_CONFLICT)

        total = Decimal(availability['total'])
        if total > ORDER_TOTAL_LIMIT:
            logger.info(f"Checkout rejected for {data['customer_email']}: total {total} over limit")
            return Response({
                'success': False,
                'message': 'The order total exceeds the maximum allowed amount',
                'availability': availability
            }, status=status.HTTP_409_CONFLICT)

        client_total = data.get('total_amount')
        if client_total is not None and client_total != total:
            logger.info(f"Checkout rejected for {data['customer_email']}: total {client_total} != {total}")
            return Response({
                'success': False,
                'message': 'The order total has changed, please review your cart',
                'availability': availability
            }, status=status.HTTP_409_CONFLICT)

        order = Order.objects.create(
            customer_name=data['customer_name'],
            customer_email=data['customer_email'],
            total_amount=total,
        )
        for line in availability['items']:
            product = products[line['id']]
            OrderItem.objects.create(
                order=order,
                product=product,
                name=line['name'],
                price=Decimal(line['price']),
                quantity=line['quantity'],
                image_url=line['image_url'] or '',
            )
            take_stock(product, line['quantity'])

    # Stock moved through queryset updates, which bypass the cache signals
    invalidate_products_cache()
    logger.info(f"Order #{order.pk} placed by {order.customer_email}: total={order.total_amount}")

    create_audit_log(request=request, action='checkout', model_name='Order', object_id=order.id,
                     object_name=f"Order #{order.id}",
                     changes={'total_amount': str(order.total_amount), 'items': len(availability['items'])})
    send_order_confirmation(order)

    return Response({
        'success': True,
        'message': 'Order placed successfully',
        'order': OrderSerializer(order).data
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def order_detail(request, pk):
    order = get_object_or_404(Order.objects.prefetch_related('items'), pk=pk)
    return Response(OrderSerializer(order).data)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAuthenticated, IsAdminUser])
def order_status_update(request, pk):
    """Move an order to a new status; cancelling restores stock"""
    serializer = OrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_status = serializer.validated_data['status']

    with transaction.atomic():
        order = get_object_or_404(Order.objects.select_for_update(), pk=pk)
        old_status = order.status

        if old_status == new_status:
            return Response(OrderSerializer(order).data)

        if old_status == 'cancelled':
            return Response({
                'error': 'A cancelled order cannot change status'
            }, status=status.HTTP_400_BAD_REQUEST)

        if new_status == 'cancelled':
            restore_stock(order)

        order.status = new_status
        order.save(update_fields=['status', 'updated_at'])

    if new_status == 'cancelled':
        invalidate_products_cache()
    logger.info(f"Order #{order.pk} status: {old_status} -> {new_status}")
    create_audit_log(request=request, action='status_change', model_name='Order', object_id=order.id,
                     object_name=f"Order #{order.id}",
                     changes={'status': {'old': old_status, 'new': new_status}})
    return Response(OrderSerializer(order).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def order_api_test(request):
    return Response({'message': 'Order API is working'})
