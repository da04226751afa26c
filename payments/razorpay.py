# payments/razorpay.py
"""
Razorpay REST client (orders, payments, refunds) over httpx.

Amounts are always in minor units (paise for INR).
"""
import hashlib
import hmac
import logging

import httpx
from django.conf import settings

logger = logging.getLogger(__name__)

NOT_CONFIGURED = "Payment service not configured. Please configure Razorpay credentials."


class PaymentError(Exception):
    """A payment request was refused; the message is safe to show the user."""


class PaymentConfigurationError(PaymentError):
    pass


class PaymentVerificationError(PaymentError):
    pass


class RazorpayAPIError(PaymentError):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


def expected_signature(key_secret, order_id, payment_id):
    message = f"{order_id}|{payment_id}".encode('utf-8')
    return hmac.new(key_secret.encode('utf-8'), message, hashlib.sha256).hexdigest()


def signature_matches(key_secret, order_id, payment_id, signature):
    if not signature:
        return False
    return hmac.compare_digest(expected_signature(key_secret, order_id, payment_id), signature)


def webhook_signature_matches(webhook_secret, body, signature):
    """Razorpay signs the raw webhook body with the secret set on the dashboard."""
    if not webhook_secret or not signature:
        return False
    expected = hmac.new(webhook_secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def _error_description(response):
    try:
        error = response.json().get('error') or {}
    except ValueError:
        return response.text
    return error.get('description') or error.get('reason') or response.text


class RazorpayClient:
    def __init__(self, key_id=None, key_secret=None, api_url=None, timeout=None, transport=None):
        self.key_id = settings.RAZORPAY_KEY_ID if key_id is None else key_id
        self.key_secret = settings.RAZORPAY_KEY_SECRET if key_secret is None else key_secret
        self.api_url = (api_url or settings.RAZORPAY_API_URL).rstrip('/')
        self.timeout = timeout or settings.EXTERNAL_API_TIMEOUT
        self.transport = transport

    @property
    def is_configured(self):
        return bool(self.key_id and self.key_secret)

    def ensure_configured(self):
        if not self.is_configured:
            logger.error("[Razorpay] Credentials missing; payment features are disabled.")
            raise PaymentConfigurationError(NOT_CONFIGURED)

    async def _request(self, method, path, action, payload=None):
        self.ensure_configured()
        try:
            async with httpx.AsyncClient(base_url=self.api_url, auth=(self.key_id, self.key_secret),
                                         timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"[Razorpay] Request to {path} failed: {e}", exc_info=True)
            raise RazorpayAPIError(f"Failed to {action}: {e}")

        if not response.is_success:
            description = _error_description(response)
            logger.warning(f"[Razorpay] {method} {path} returned {response.status_code}: {description}")
            raise RazorpayAPIError(f"Failed to {action}: {description}", status_code=response.status_code)
        return response.json()

    async def create_order(self, amount, currency, receipt, notes=None):
        payload = {'amount': amount, 'currency': currency, 'receipt': receipt, 'notes': notes or {}}
        order = await self._request('POST', '/orders', 'create order', payload)
        logger.info(f"[Razorpay] Created order {order['id']} for {amount} {currency}.")
        return order

    async def fetch_order(self, order_id):
        return await self._request('GET', f'/orders/{order_id}', 'fetch order')

    async def fetch_payment(self, payment_id):
        return await self._request('GET', f'/payments/{payment_id}', 'fetch payment')

    async def refund(self, payment_id, amount, notes=None):
        payload = {'amount': amount, 'notes': notes or {}}
        refund = await self._request('POST', f'/payments/{payment_id}/refund', 'process refund', payload)
        logger.info(f"[Razorpay] Refunded {amount} on payment {payment_id} (refund {refund['id']}).")
        return refund

    def verify_signature(self, order_id, payment_id, signature):
        self.ensure_configured()
        return signature_matches(self.key_secret, order_id, payment_id, signature)


def get_razorpay_client():
    return RazorpayClient()
