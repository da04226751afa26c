# payments/services.py
import logging
import time
from datetime import timedelta

from asgiref.sync import sync_to_async
from django.db import transaction
from django.utils import timezone

from appointments.models import Appointment
from notifications.client import appointment_fields, send_payment_confirmed_notification
from .models import AppointmentPricing, Payment
from .razorpay import PaymentError, PaymentVerificationError, get_razorpay_client

logger = logging.getLogger(__name__)

# Razorpay rejects INR orders below Rs 1.00.
MINIMUM_INR_AMOUNT = 100
DEFAULT_PRICE = {'amount': 50000, 'currency': 'INR'}
SUCCESSFUL_PAYMENT_STATUSES = ('captured', 'authorized')
CURRENCY_SYMBOLS = {'INR': '₹', 'USD': '$', 'EUR': '€', 'GBP': '£'}

# (hours before the appointment, share of the payment refunded), checked in order.
REFUND_SCHEDULE = [
    (24, 1.0),
    (12, 0.5),
    (6, 0.25),
]


def format_amount(amount, currency='INR'):
    major = f"{amount / 100:.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency)
    return f"{symbol}{major}" if symbol else f"{currency} {major}"


def calculate_refund_amount(payment_amount, starts_at, now=None):
    """The earlier the cancellation, the larger the refund; none within 6 hours of the start."""
    remaining = starts_at - (now or timezone.now())
    for hours, share in REFUND_SCHEDULE:
        if remaining > timedelta(hours=hours):
            return int(payment_amount * share)
    return 0


def get_pricing(appt_type, doctor=None):
    prices = AppointmentPricing.objects.filter(appt_type=appt_type, is_active=True)
    price = None
    if doctor is not None:
        price = prices.filter(doctor=doctor).first()
    if price is None:
        price = prices.filter(doctor__isnull=True).first()
    if price is None:
        return dict(DEFAULT_PRICE)
    return {'amount': price.amount, 'currency': price.currency}


def quote_price(appointment):
    """What the patient owes: the amount fixed on the appointment, else the current tariff."""
    if appointment.payment_amount:
        return {'amount': appointment.payment_amount, 'currency': appointment.payment_currency or 'INR'}
    return get_pricing(appointment.appt_type, appointment.doctor_id)


async def create_order(appointment, amount=None, currency=None, client=None):
    """
    Opens a Razorpay order for the appointment's price. The client may echo
    the amount it displayed; a mismatch is refused rather than charged.
    """
    client = client or get_razorpay_client()
    client.ensure_configured()

    if appointment.payment_status == 'paid':
        raise PaymentError("Appointment already paid")

    price = await sync_to_async(quote_price)(appointment)
    if amount is not None and amount != price['amount']:
        logger.warning(
            f"[Payments] Client amount {amount} differs from price {price['amount']} "
            f"for appointment {appointment.pk}."
        )
        raise PaymentError("Payment amount does not match the consultation price")
    if currency is not None and currency != price['currency']:
        raise PaymentError("Payment currency does not match the consultation price")

    amount, currency = price['amount'], price['currency']
    if amount <= 0:
        logger.error(f"[Payments] Invalid amount {amount} for appointment {appointment.pk}.")
        raise PaymentError(f"Invalid payment amount: {amount}")
    if currency == 'INR' and amount < MINIMUM_INR_AMOUNT:
        raise PaymentError(
            f"Payment amount must be at least {format_amount(MINIMUM_INR_AMOUNT)} ({MINIMUM_INR_AMOUNT} paisa). "
            f"Current amount: {format_amount(amount)}"
        )

    order = await client.create_order(
        amount,
        currency,
        receipt=f"appt_{appointment.pk}_{int(time.time() * 1000)}",
        notes={'appointment_id': str(appointment.pk)},
    )
    return {
        'orderId': order['id'],
        'id': order['id'],
        'amount': order['amount'],
        'currency': order['currency'],
        'receipt': order.get('receipt'),
    }


async def _check_payment(appointment, payment, order_id, client):
    """The payment must be successful and made against an order opened for this appointment."""
    if payment.get('status') not in SUCCESSFUL_PAYMENT_STATUSES:
        raise PaymentVerificationError(f"Payment not successful. Status: {payment.get('status')}")
    if payment.get('order_id') != order_id:
        raise PaymentVerificationError("Payment does not belong to this order")

    order = await client.fetch_order(order_id)
    if (order.get('notes') or {}).get('appointment_id') != str(appointment.pk):
        raise PaymentVerificationError("Order does not belong to this appointment")
    if payment.get('amount') != order.get('amount') or payment.get('currency') != order.get('currency'):
        raise PaymentVerificationError("Payment amount does not match the order")


@sync_to_async
def _record_payment(appointment_id, order_id, payment):
    """
    Marks the appointment paid and stores the payment. Returns the
    payment-confirmed notification payload, or None when this payment was
    already recorded.
    """
    with transaction.atomic():
        appointment = (
            Appointment.objects.select_for_update()
            .select_related('patient__profile', 'doctor__profile')
            .get(pk=appointment_id)
        )
        recorded = Payment.objects.filter(razorpay_payment_id=payment['id']).first()
        if recorded is not None and recorded.appointment_id != appointment.pk:
            raise PaymentVerificationError("Payment already recorded for another appointment")
        if appointment.payment_id == payment['id'] and appointment.payment_status != 'pending':
            return None
        if appointment.payment_status not in ('pending', 'failed'):
            raise PaymentVerificationError("Appointment already paid")

        appointment.payment_status = 'paid'
        appointment.payment_id = payment['id']
        appointment.payment_amount = payment['amount']
        appointment.payment_currency = payment['currency']
        appointment.payment_date = timezone.now()
        appointment.save(update_fields=[
            'payment_status', 'payment_id', 'payment_amount', 'payment_currency', 'payment_date', 'updated_at',
        ])
        Payment.objects.update_or_create(
            razorpay_payment_id=payment['id'],
            defaults={
                'appointment': appointment,
                'razorpay_order_id': order_id,
                'amount': payment['amount'],
                'currency': payment['currency'],
                'status': payment['status'],
                'method': payment.get('method') or '',
                'metadata': payment,
            },
        )
    return payment_confirmed_payload(appointment)


def payment_confirmed_payload(appointment):
    payload = appointment_fields(appointment)
    payload.update({
        'amount': appointment.payment_amount,
        'currency': appointment.payment_currency,
        'paymentId': appointment.payment_id,
    })
    return payload


async def _confirm_payment(appointment, payment, order_id, client):
    await _check_payment(appointment, payment, order_id, client)
    notification = await _record_payment(appointment.pk, order_id, payment)
    if notification is None:
        logger.info(f"[Payments] Payment {payment['id']} was already recorded for appointment {appointment.pk}.")
        return
    logger.info(f"[Payments] Appointment {appointment.pk} paid with {payment['id']}.")
    await send_payment_confirmed_notification(notification)


async def verify_payment(appointment, payment_id, order_id, signature, client=None):
    """
    Checks the checkout signature, then the payment and its order at Razorpay,
    and only then marks the appointment paid.
    """
    client = client or get_razorpay_client()
    if not client.verify_signature(order_id, payment_id, signature):
        raise PaymentVerificationError("Invalid payment signature")

    payment = await client.fetch_payment(payment_id)
    await _confirm_payment(appointment, payment, order_id, client)
    return {'success': True, 'payment_id': payment_id}


async def handle_webhook_event(event, client=None):
    """
    Applies a signature-checked Razorpay webhook event. Captured payments are
    recorded against the appointment named in the order notes, with the same
    checks as checkout verification; every other event is acknowledged only.
    """
    if event.get('event') != 'payment.captured':
        logger.info(f"[Payments] Ignoring webhook event '{event.get('event')}'.")
        return False

    payment = ((event.get('payload') or {}).get('payment') or {}).get('entity') or {}
    appointment_id = (payment.get('notes') or {}).get('appointment_id')
    if not payment.get('id') or not appointment_id:
        raise PaymentVerificationError("Webhook payment has no appointment")
    try:
        appointment = await Appointment.objects.aget(pk=appointment_id)
    except (Appointment.DoesNotExist, ValueError):
        raise PaymentVerificationError(f"Webhook names unknown appointment {appointment_id}")

    await _confirm_payment(appointment, payment, payment.get('order_id'), client or get_razorpay_client())
    return True


@sync_to_async
def _record_refund(appointment, refund_id, refund_amount):
    is_full = refund_amount >= (appointment.payment_amount or 0)
    with transaction.atomic():
        appointment.payment_status = 'refunded' if is_full else 'partial_refund'
        appointment.refund_amount = refund_amount
        appointment.refund_id = refund_id
        appointment.save(update_fields=['payment_status', 'refund_amount', 'refund_id', 'updated_at'])
        Payment.objects.filter(razorpay_payment_id=appointment.payment_id).update(status='refunded')


async def process_refund(appointment, amount=None, reason=None, allow_custom_amount=False, client=None, now=None):
    """
    Refunds per REFUND_SCHEDULE. An explicit ``amount`` overrides the schedule
    only when ``allow_custom_amount`` is set (the doctor or an admin asked),
    and never exceeds what was paid.
    """
    client = client or get_razorpay_client()
    client.ensure_configured()

    if not appointment.payment_id:
        raise PaymentError("No payment found for this appointment")
    if appointment.payment_status in ('refunded', 'partial_refund'):
        raise PaymentError("Refund already processed")

    paid = appointment.payment_amount or 0
    if amount is None:
        refund_amount = calculate_refund_amount(paid, appointment.starts_at, now)
        if refund_amount <= 0:
            raise PaymentError("No refund available based on cancellation timing")
    else:
        if not allow_custom_amount:
            raise PaymentError("Only the doctor can set a refund amount")
        if amount <= 0:
            raise PaymentError(f"Invalid refund amount: {amount}")
        if amount > paid:
            paid_display = format_amount(paid, appointment.payment_currency or 'INR')
            raise PaymentError(f"Refund amount exceeds the amount paid ({paid_display})")
        refund_amount = amount

    refund = await client.refund(
        appointment.payment_id,
        refund_amount,
        notes={'reason': reason or 'Appointment cancelled', 'appointment_id': str(appointment.pk)},
    )
    await _record_refund(appointment, refund['id'], refund_amount)
    return {'success': True, 'refund_id': refund['id'], 'refund_amount': refund_amount}
