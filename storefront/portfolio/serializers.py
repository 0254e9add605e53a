from rest_framework import serializers
from .models import PortfolioItem


class PortfolioItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = PortfolioItem
        fields = ['id', 'title', 'image_url', 'display_order', 'featured', 'created_at']
        read_only_fields = ['created_at']


class PortfolioReorderSerializer(serializers.Serializer):
    items = serializers.ListField(child=serializers.DictField())
