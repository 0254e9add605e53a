from rest_framework import serializers
from .models import PageContent


class PageContentSerializer(serializers.ModelSerializer):
    class Meta:
        model = PageContent
        fields = ['id', 'page_id', 'title', 'content', 'last_updated']
        read_only_fields = ['id', 'page_id', 'last_updated']
