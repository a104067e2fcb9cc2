"""
Payment reconciliation: SSLCommerz gateway sessions and their callbacks, Stripe
card intents, and directly recorded payments.

An order is marked paid by one guarded update (payment_status unpaid -> paid);
the update count is the only double-payment check.
"""
import logging
from uuid import uuid4

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from marketplace import notify
from marketplace.constants import GATEWAY_METHOD_SSLCOMMERZ, VALID_GATEWAY_STATUS
from marketplace.exceptions import Conflict, Forbidden, GatewayError, NotFound, ValidationError
from marketplace.gateways import get_card_processor, get_gateway
from marketplace.models import (
    Order,
    OrderStatus,
    Payment,
    PaymentRecordStatus,
    PaymentStatus,
)
from marketplace.tracking import push_order_update
from marketplace.utils import normalize_email, parse_decimal

logger = logging.getLogger(__name__)


def tracking_redirect_url():
    return settings.ORDER_TRACKING_URL


def _check_payer(caller, order):
    if caller is not None and not caller.is_admin and order.customer_email.lower() != caller.email:
        raise Forbidden('Order not in your scope')


def _mark_order_paid(order_id, now):
    """Guarded unpaid -> paid flip. Returns True if this call made the order paid."""
    return bool(
        Order.objects.filter(pk=order_id, payment_status=PaymentStatus.UNPAID)
        .exclude(status=OrderStatus.CANCELLED)
        .update(payment_status=PaymentStatus.PAID, paid_at=now, updated_at=now)
    )


def _after_payment(order_id, payment):
    order = Order.objects.get(pk=order_id)
    logger.info('Order %s paid (%s %s)', order.id, payment.method, payment.transaction_id)
    push_order_update(order)
    notify.fan_out('paid', order.id, {'customer': order.customer_email})
    return order


# --- Gateway sessions ---


def initiate_gateway_session(caller, order_id, payer=None):
    """
    Persist a pending Payment for order_id and open a gateway session for it.
    Returns the URL the customer is redirected to. The pending Payment is
    removed again if the gateway refuses the session.
    """
    try:
        order = Order.objects.get(pk=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFound('Order not found')
    _check_payer(caller, order)
    if order.payment_status == PaymentStatus.PAID:
        raise Conflict('Order is already paid')
    if order.status == OrderStatus.CANCELLED:
        raise Conflict('Cancelled orders cannot be paid')
    payer = payer or {}
    payment = Payment.objects.create(
        order=order,
        email=normalize_email(payer.get('email')) or order.customer_email,
        name=(payer.get('name') or order.customer_name or '').strip(),
        amount=order.total,
        method=GATEWAY_METHOD_SSLCOMMERZ,
        transaction_id=uuid4().hex,
        status=PaymentRecordStatus.PENDING,
    )
    try:
        url = get_gateway().create_session(order, payer, payment.transaction_id)
    except GatewayError:
        payment.delete()
        logger.warning('Gateway session refused for order %s', order.id)
        raise
    logger.info('Gateway session %s opened for order %s', payment.transaction_id, order.id)
    return url


def _pending_payment(transaction_id):
    if not transaction_id:
        raise ValidationError('tran_id required')
    try:
        return Payment.objects.select_related('order').get(
            transaction_id=transaction_id, status=PaymentRecordStatus.PENDING
        )
    except Payment.DoesNotExist:
        raise NotFound('Payment not found')


def on_gateway_success(transaction_id, validation_token):
    """
    Success callback: validate with the gateway. VALID marks the Payment done
    and, unless the order was cancelled or paid meanwhile, the order paid; any
    other status deletes the pending Payment. A failed validation call raises
    GatewayError and keeps the Payment for a retry.
    Returns the redirect destination.
    """
    payment = _pending_payment(transaction_id)
    status = get_gateway().validate(validation_token)
    if status != VALID_GATEWAY_STATUS:
        logger.warning(
            'Gateway validation for %s returned %r; discarding payment',
            transaction_id, status,
        )
        payment.delete()
        return tracking_redirect_url()

    now = timezone.now()
    with transaction.atomic():
        order_paid = _mark_order_paid(payment.order_id, now)
        # Money was captured either way; the attempt never stays pending.
        Payment.objects.filter(pk=payment.pk).update(
            status=PaymentRecordStatus.DONE, paid_at=now
        )
    if not order_paid:
        logger.warning(
            'Gateway payment %s captured for order %s, which is cancelled or '
            'already paid; needs manual refund',
            transaction_id, payment.order_id,
        )
        return tracking_redirect_url()
    _after_payment(payment.order_id, payment)
    return tracking_redirect_url()


def _discard_pending(transaction_id, outcome):
    deleted, _ = Payment.objects.filter(
        transaction_id=transaction_id, status=PaymentRecordStatus.PENDING
    ).delete()
    logger.info('Gateway %s for %s; %s pending payment(s) removed', outcome, transaction_id, deleted)
    return tracking_redirect_url()


def on_gateway_failure(transaction_id):
    return _discard_pending(transaction_id, 'failure')


def on_gateway_cancel(transaction_id):
    return _discard_pending(transaction_id, 'cancel')


# --- Direct (card) payments ---


def create_direct_payment_intent(amount_minor, currency=None):
    """Client secret for a card payment of amount_minor (smallest currency unit)."""
    return get_card_processor().create_intent(amount_minor, currency)


def record_direct_payment(caller, order_id, email, amount, method, transaction_id):
    """
    Record a payment confirmed by the client (card). Marks the order paid and
    stores a done Payment. Conflict if the order is already paid or cancelled.
    """
    if not transaction_id:
        raise ValidationError('transaction_id required')
    if not method:
        raise ValidationError('method required')
    amount = parse_decimal(amount, 'amount')
    try:
        order = Order.objects.get(pk=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFound('Order not found')
    _check_payer(caller, order)
    if Payment.objects.filter(transaction_id=transaction_id).exists():
        raise Conflict('Transaction already recorded')

    now = timezone.now()
    with transaction.atomic():
        if not _mark_order_paid(order.pk, now):
            raise Conflict('Order not found or already paid')
        payment = Payment.objects.create(
            order=order,
            email=normalize_email(email) or order.customer_email,
            name=order.customer_name,
            amount=amount,
            method=method,
            transaction_id=transaction_id,
            status=PaymentRecordStatus.DONE,
            paid_at=now,
        )
    _after_payment(order.pk, payment)
    return payment
