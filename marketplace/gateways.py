"""
Payment provider adapters: SSLCommerz hosted checkout (redirect session plus
validation API) and Stripe card PaymentIntents. Credentials come from Django
settings; every provider failure is raised as GatewayError.
"""
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from decimal import Decimal
from typing import Any, Dict

import stripe
from django.conf import settings

from marketplace.exceptions import GatewayError, ValidationError

logger = logging.getLogger(__name__)

SSLCOMMERZ_HOSTS = {
    True: 'https://sandbox.sslcommerz.com',
    False: 'https://securepay.sslcommerz.com',
}


class BasePaymentGateway:
    """Redirect-based gateway: start a session, later validate the callback."""

    def create_session(self, order, payer: Dict[str, Any], transaction_id: str) -> str:
        """Return the URL the customer is redirected to."""
        raise NotImplementedError

    def validate(self, validation_token: str) -> str:
        """Return the provider's status for a completed session (e.g. 'VALID')."""
        raise NotImplementedError


class SSLCommerzGateway(BasePaymentGateway):

    def __init__(self):
        self.store_id = settings.SSLCOMMERZ_STORE_ID
        self.store_password = settings.SSLCOMMERZ_STORE_PASSWORD
        self.host = SSLCOMMERZ_HOSTS[bool(settings.SSLCOMMERZ_SANDBOX)]
        self.timeout = settings.SSLCOMMERZ_TIMEOUT

    def _callback_url(self, name):
        return f'{settings.PUBLIC_API_URL}/api/payments/{name}/'

    def _request(self, req):
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read().decode('utf-8') or '{}')
        except urllib.error.HTTPError as e:
            raise GatewayError(f'SSLCommerz returned HTTP {e.code}')
        except (urllib.error.URLError, TimeoutError) as e:
            raise GatewayError(f'SSLCommerz unreachable: {e}')
        except ValueError:
            raise GatewayError('SSLCommerz returned an invalid response')

    def create_session(self, order, payer, transaction_id):
        if not (self.store_id and self.store_password):
            raise GatewayError('SSLCommerz is not configured')
        name = payer.get('name') or order.customer_name or order.customer_email
        fields = {
            'store_id': self.store_id,
            'store_passwd': self.store_password,
            'total_amount': str(order.total),
            'currency': settings.PAYMENT_CURRENCY,
            'tran_id': transaction_id,
            'success_url': self._callback_url('success-payment'),
            'fail_url': self._callback_url('fail-payment'),
            'cancel_url': self._callback_url('cancel-payment'),
            'shipping_method': 'Courier',
            'product_name': 'Foods',
            'product_category': 'Food',
            'product_profile': 'general',
            'cus_name': name,
            'cus_email': payer.get('email') or order.customer_email,
            'cus_add1': order.district,
            'cus_city': order.thana,
            'cus_state': order.region,
            'cus_country': 'Bangladesh',
            'cus_phone': order.customer_phone,
            'ship_name': name,
            'ship_add1': order.district,
            'ship_city': order.thana,
            'ship_state': order.region,
            'ship_postcode': '1000',
            'ship_country': 'Bangladesh',
        }
        req = urllib.request.Request(
            f'{self.host}/gwprocess/v4/api.php',
            data=urllib.parse.urlencode(fields).encode('utf-8'),
            headers={'Content-Type': 'application/x-www-form-urlencoded'},
            method='POST',
        )
        data = self._request(req)
        url = data.get('GatewayPageURL')
        if not url:
            reason = data.get('failedreason') or data.get('status') or 'no gateway URL returned'
            raise GatewayError(f'SSLCommerz session failed: {reason}')
        return url

    def validate(self, validation_token):
        if not validation_token:
            return ''
        query = urllib.parse.urlencode({
            'val_id': validation_token,
            'store_id': self.store_id,
            'store_passwd': self.store_password,
            'format': 'json',
        })
        req = urllib.request.Request(
            f'{self.host}/validator/api/validationserverAPI.php?{query}',
            method='GET',
        )
        data = self._request(req)
        return str(data.get('status') or '')


class StripeCardProcessor:
    """Card payments confirmed client-side; the server only creates the intent."""

    def __init__(self):
        self.api_key = settings.STRIPE_SECRET_KEY

    def create_intent(self, amount_minor: int, currency: str = None) -> str:
        """Create a card PaymentIntent for amount_minor and return its client secret."""
        if isinstance(amount_minor, bool):
            raise ValidationError('amount_in_cents must be a positive integer')
        try:
            amount_minor = int(Decimal(str(amount_minor)))
        except (ArithmeticError, ValueError, TypeError):
            raise ValidationError('amount_in_cents must be a positive integer')
        if amount_minor <= 0:
            raise ValidationError('amount_in_cents must be a positive integer')
        if not self.api_key:
            raise GatewayError('Stripe is not configured')
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_minor,
                currency=(currency or settings.PAYMENT_CURRENCY).lower(),
                payment_method_types=['card'],
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.warning('Stripe PaymentIntent failed: %s', e)
            raise GatewayError(getattr(e, 'user_message', None) or str(e))
        return intent.client_secret


def get_gateway():
    """Redirect gateway used for hosted checkout."""
    return SSLCommerzGateway()


def get_card_processor():
    return StripeCardProcessor()
