import hashlib
import hmac
import json

import httpx

from payments.razorpay import RazorpayClient, expected_signature

KEY_ID = 'rzp_test_key'
KEY_SECRET = 'rzp_test_secret'
WEBHOOK_SECRET = 'whsec_test'

NOT_FOUND = {'error': {'code': 'BAD_REQUEST_ERROR', 'description': 'The id provided does not exist'}}


class FakeRazorpayAPI:
    """In-memory stand-in for the Razorpay REST API, used as an httpx transport."""

    def __init__(self):
        self.orders = {}
        self.payments = {}
        self.refunds = []
        self.requests = []
        self.fail_with = None

    def add_order(self, order_id, appointment_id, amount=50000, currency='INR'):
        self.orders[order_id] = {
            'id': order_id,
            'amount': amount,
            'currency': currency,
            'receipt': f'appt_{appointment_id}',
            'notes': {'appointment_id': str(appointment_id)},
            'status': 'created',
        }

    def add_payment(self, payment_id, order_id, amount=50000, status='captured', method='upi'):
        notes = self.orders[order_id]['notes'] if order_id in self.orders else {}
        self.payments[payment_id] = {
            'id': payment_id,
            'order_id': order_id,
            'amount': amount,
            'currency': 'INR',
            'status': status,
            'method': method,
            'notes': dict(notes),
        }

    def __call__(self, request):
        self.requests.append(request)
        if self.fail_with is not None:
            status, error = self.fail_with
            return httpx.Response(status, json={'error': error})

        path = request.url.path.removeprefix('/v1')
        if request.method == 'POST' and path == '/orders':
            body = json.loads(request.content)
            order = dict(body, id=f"order_{len(self.orders) + 1}", status='created')
            self.orders[order['id']] = order
            return httpx.Response(200, json=order)
        if request.method == 'GET' and path.startswith('/orders/'):
            order = self.orders.get(path.split('/')[2])
            if order is None:
                return httpx.Response(400, json=NOT_FOUND)
            return httpx.Response(200, json=order)
        if path.startswith('/payments/'):
            parts = path.split('/')
            payment = self.payments.get(parts[2])
            if payment is None:
                return httpx.Response(400, json=NOT_FOUND)
            if request.method == 'GET' and len(parts) == 3:
                return httpx.Response(200, json=payment)
            if request.method == 'POST' and parts[3:] == ['refund']:
                body = json.loads(request.content)
                refund = dict(body, id=f"rfnd_{len(self.refunds) + 1}", payment_id=payment['id'])
                self.refunds.append(refund)
                return httpx.Response(200, json=refund)
        return httpx.Response(404, json={'error': {'description': 'unsupported'}})

    def client(self, key_id=KEY_ID, key_secret=KEY_SECRET):
        return RazorpayClient(key_id=key_id, key_secret=key_secret, api_url='https://api.razorpay.com/v1',
                              transport=httpx.MockTransport(self))


def checkout_signature(order_id, payment_id, key_secret=KEY_SECRET):
    return expected_signature(key_secret, order_id, payment_id)


def webhook_signature(body, secret=WEBHOOK_SECRET):
    return hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
