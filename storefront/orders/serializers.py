from rest_framework import serializers
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'name', 'price', 'quantity', 'image_url', 'line_total']

    def get_line_total(self, obj):
        return str(obj.get_line_total())


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'customer_name', 'customer_email', 'items', 'total_amount',
            'status', 'status_display', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class OrderCreateSerializer(serializers.Serializer):
    """Checkout payload; prices and totals are recomputed server side"""
    customer_name = serializers.CharField(max_length=200)
    customer_email = serializers.EmailField()
    items = serializers.ListField(child=serializers.DictField(), allow_empty=False)
    total_amount = serializers.DecimalField(max_digits=20, decimal_places=10, required=False, allow_null=True)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
