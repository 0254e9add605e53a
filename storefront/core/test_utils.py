"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from storefront.catalog.models import Product
from storefront.content.models import PageContent
from storefront.orders.models import Order, OrderItem
from storefront.portfolio.models import PortfolioItem
from decimal import Decimal
import random
import string

User = get_user_model()

CLOUDINARY_TEST_SETTINGS = {
    'CLOUDINARY_CLOUD_NAME': 'demo-cloud',
    'CLOUDINARY_API_KEY': '123456',
    'CLOUDINARY_API_SECRET': 'shh-secret',
    'CLOUDINARY_ROOT_FOLDER': 'projet-personnel',
}


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(username=None, password='testpass123'):
        """Create a back-office (staff) user"""
        return TestDataFactory.create_user(username=username, password=password, is_staff=True)

    @staticmethod
    def image_url(name=None):
        """Delivery URL shaped like the media service's"""
        name = name or TestDataFactory.random_string(8)
        return f'https://res.cloudinary.com/demo-cloud/image/upload/v1700000000/projet-personnel/products/{name}.jpg'

    @staticmethod
    def create_product(name=None, price=None, in_stock=True, is_unique=False, stock_quantity=None, images=None):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if price is None:
            price = Decimal('25.00')
        if images is None:
            images = [{'url': TestDataFactory.image_url(), 'is_main': True, 'order': 0}]
        return Product.objects.create(
            name=name,
            description=f'Test description for {name}',
            price=price,
            image_url=images[0]['url'] if images else '',
            images=images,
            in_stock=in_stock,
            is_unique=is_unique,
            stock_quantity=1 if is_unique else stock_quantity
        )

    @staticmethod
    def create_order(customer_name='Jane Doe', customer_email='jane@test.com', products=None, status='pending'):
        """Create an order with one unit of each product"""
        products = products or []
        order = Order.objects.create(
            customer_name=customer_name,
            customer_email=customer_email,
            total_amount=sum((p.price for p in products), Decimal('0.00')),
            status=status
        )
        for product in products:
            OrderItem.objects.create(
                order=order,
                product=product,
                name=product.name,
                price=product.price,
                quantity=1,
                image_url=product.main_image_url
            )
        return order

    @staticmethod
    def create_page(page_id=None, title='About us', content='Some text'):
        """Create page content"""
        if not page_id:
            page_id = f'page-{TestDataFactory.random_string(6).lower()}'
        return PageContent.objects.create(page_id=page_id, title=title, content=content)

    @staticmethod
    def create_portfolio_item(title=None, display_order=0, featured=False, image_url=None):
        """Create a portfolio item"""
        if not title:
            title = f'Work_{TestDataFactory.random_string(6)}'
        return PortfolioItem.objects.create(
            title=title,
            image_url=image_url or TestDataFactory.image_url(),
            display_order=display_order,
            featured=featured
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
