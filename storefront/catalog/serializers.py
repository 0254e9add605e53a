from rest_framework import serializers
from .models import Product
from .utils import normalize_images, main_image_of


class ProductImageSerializer(serializers.Serializer):
    url = serializers.URLField(max_length=500)
    is_main = serializers.BooleanField(default=False)
    order = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class ProductSerializer(serializers.ModelSerializer):
    images = ProductImageSerializer(many=True, required=False)
    main_image_url = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'price', 'image_url', 'images', 'main_image_url',
            'in_stock', 'is_unique', 'stock_quantity', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {
            'stock_quantity': {'min_value': 0},
        }

    def validate(self, attrs):
        if self.instance is None and not attrs.get('images'):
            raise serializers.ValidationError({'images': 'At least one image is required for the product'})
        if 'images' in attrs and not attrs['images']:
            raise serializers.ValidationError({'images': 'A product must keep at least one image'})
        return attrs

    def _apply_images(self, validated_data):
        """Normalize incoming images and keep image_url pointing at the main one"""
        images = validated_data.pop('images', None)
        if images is not None:
            images = normalize_images(images)
            validated_data['images'] = images
            validated_data['image_url'] = main_image_of(images)
        elif validated_data.get('image_url'):
            validated_data['images'] = [{'url': validated_data['image_url'], 'is_main': True, 'order': 0}]

    def _apply_uniqueness(self, validated_data, instance=None):
        is_unique = validated_data.get('is_unique', instance.is_unique if instance else False)
        if is_unique:
            validated_data['stock_quantity'] = 1

    def create(self, validated_data):
        self._apply_images(validated_data)
        self._apply_uniqueness(validated_data)
        validated_data.setdefault('in_stock', True)
        return Product.objects.create(**validated_data)

    def update(self, instance, validated_data):
        self._apply_images(validated_data)
        if 'is_unique' in validated_data or 'stock_quantity' in validated_data:
            self._apply_uniqueness(validated_data, instance)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        return instance


class ProductAvailabilitySerializer(serializers.ModelSerializer):
    """Availability subset of a product, as returned to cart checks"""
    main_image_url = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'price', 'image_url', 'main_image_url', 'images',
                  'in_stock', 'is_unique', 'stock_quantity']


class VerifyCartSerializer(serializers.Serializer):
    items = serializers.ListField(child=serializers.DictField(), allow_empty=True)
