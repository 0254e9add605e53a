from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from storefront.catalog.models import Product


class Order(models.Model):
    """Customer orders captured at checkout"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
    ]

    customer_name = models.CharField(max_length=200)
    customer_email = models.EmailField()
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Order #{self.pk} - {self.customer_name}"

    def get_total(self):
        """Sum of line totals"""
        return sum((item.get_line_total() for item in self.items.all()), Decimal('0.00'))

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at', '-id']


class OrderItem(models.Model):
    """Snapshot of a product line at checkout"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    name = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    image_url = models.URLField(max_length=500, blank=True)

    def get_line_total(self):
        return self.price * self.quantity

    class Meta:
        db_table = 'order_items'
        ordering = ['id']
