import logging
from decimal import Decimal
from django.db.models import Count, Q, Sum
from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.views import TokenRefreshView
from storefront.catalog.models import Product
from storefront.orders.models import Order
from .models import AuditLog
from .serializers import (
    AdminTokenObtainPairSerializer, AdminTokenRefreshSerializer,
    AdminUserSerializer, AuditLogSerializer
)

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 10


def health(request):
    """Plain-text liveness check"""
    return HttpResponse('Backend is running', content_type='text/plain')


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def admin_login(request):
    """Exchange back-office credentials for a JWT pair"""
    serializer = AdminTokenObtainPairSerializer(data=request.data)
    try:
        valid = serializer.is_valid()
    except AuthenticationFailed:
        logger.warning(f"Failed back-office login for username={request.data.get('username')!r}")
        return Response({
            'success': False,
            'message': 'Invalid username or password'
        }, status=status.HTTP_401_UNAUTHORIZED)

    if not valid:
        return Response({
            'success': False,
            'message': 'Username and password are required',
            'errors': serializer.errors
        }, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Back-office login: {serializer.user.get_username()}")
    return Response({
        'success': True,
        'token': serializer.validated_data['access'],
        'refresh': serializer.validated_data['refresh'],
        'message': 'Login successful'
    })


class AdminTokenRefreshView(TokenRefreshView):
    """Refresh an access token, treating deleted users as invalid tokens"""
    serializer_class = AdminTokenRefreshSerializer
    authentication_classes = []


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_dashboard(request):
    """Confirms the caller holds a valid back-office token"""
    return Response({
        'message': 'Access granted to the admin dashboard',
        'user': AdminUserSerializer(request.user).data
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def admin_stats(request):
    """Catalog and order figures for the back-office dashboard"""
    product_counts = Product.objects.aggregate(
        total=Count('id'),
        out_of_stock=Count('id', filter=Q(in_stock=False) | Q(stock_quantity__lte=0)),
    )

    orders_by_status = {choice: 0 for choice, _ in Order.STATUS_CHOICES}
    for row in Order.objects.values('status').annotate(count=Count('id')):
        orders_by_status[row['status']] = row['count']

    revenue = Order.objects.exclude(status='cancelled').aggregate(
        total=Sum('total_amount')
    )['total'] or Decimal('0.00')

    recent = AuditLog.objects.select_related('user')[:RECENT_ACTIVITY_LIMIT]

    return Response({
        'total_products': product_counts['total'],
        'products_out_of_stock': product_counts['out_of_stock'],
        'total_orders': sum(orders_by_status.values()),
        'orders_by_status': orders_by_status,
        'revenue': str(revenue),
        'recent_activity': AuditLogSerializer(recent, many=True).data,
    })
