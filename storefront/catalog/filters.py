import django_filters
from django.db.models import Q
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Storefront product filters using django-filter"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    in_stock = django_filters.BooleanFilter(method='filter_in_stock', label='Available for sale')
    is_unique = django_filters.BooleanFilter(field_name='is_unique')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')

    class Meta:
        model = Product
        fields = ['search', 'in_stock', 'is_unique', 'min_price', 'max_price']

    def filter_search(self, queryset, name, value):
        """Every word must appear in the name or the description"""
        words = value.split() if value else []
        for word in words:
            queryset = queryset.filter(Q(name__icontains=word) | Q(description__icontains=word))
        return queryset

    def filter_in_stock(self, queryset, name, value):
        """Sellable products: flagged in stock and, when tracked, with quantity left"""
        available = Q(in_stock=True) & (Q(stock_quantity__isnull=True) | Q(stock_quantity__gt=0))
        if value is None:
            return queryset
        if value:
            return queryset.filter(available)
        return queryset.exclude(available)
