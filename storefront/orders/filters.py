import django_filters
from .models import Order


class OrderFilter(django_filters.FilterSet):
    """Back-office order filters"""

    status = django_filters.ChoiceFilter(choices=Order.STATUS_CHOICES)
    customer_email = django_filters.CharFilter(field_name='customer_email', lookup_expr='iexact')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Order
        fields = ['status', 'customer_email', 'date_from', 'date_to']
