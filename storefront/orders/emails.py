"""
Order confirmation emails
"""
import logging
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def send_order_confirmation(order):
    """Send the HTML + text confirmation to the customer

    Returns True on success. Failures are logged, never raised, so a mail
    outage cannot fail a checkout that is already committed.
    """
    context = {
        'order': order,
        'items': list(order.items.all()),
        'shop_name': settings.SHOP_NAME,
    }
    try:
        subject = f"{settings.SHOP_NAME} - Order confirmation #{order.pk}"
        text_body = render_to_string('orders/email/order_confirmation.txt', context)
        html_body = render_to_string('orders/email/order_confirmation.html', context)
        message = EmailMultiAlternatives(
            subject=subject,
            body=text_body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[order.customer_email],
        )
        message.attach_alternative(html_body, 'text/html')
        message.send()
    except Exception as e:
        logger.error(f"Order #{order.pk}: confirmation email to {order.customer_email} failed: {str(e)}")
        return False

    logger.info(f"Order #{order.pk}: confirmation email sent to {order.customer_email}")
    return True
