from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal


class Product(models.Model):
    """Storefront product

    `images` holds the gallery as a list of {"url", "is_main", "order"} entries;
    `image_url` mirrors the main image for clients that only read one URL.
    A null `stock_quantity` means the quantity is not tracked.
    """
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    image_url = models.URLField(max_length=500, blank=True)
    images = models.JSONField(default=list, blank=True)
    in_stock = models.BooleanField(default=True, db_index=True)
    is_unique = models.BooleanField(default=False)
    stock_quantity = models.IntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def main_image_url(self):
        """URL of the main image, falling back to the first image, then the legacy URL"""
        images = self.images or []
        for image in images:
            if image.get('is_main'):
                return image.get('url')
        if images:
            return images[0].get('url')
        return self.image_url or None

    @property
    def tracks_quantity(self):
        return self.stock_quantity is not None

    def is_available(self):
        if not self.in_stock:
            return False
        if self.tracks_quantity and self.stock_quantity <= 0:
            return False
        return True

    class Meta:
        db_table = 'products'
        ordering = ['-created_at', '-id']
