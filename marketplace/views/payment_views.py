"""
Payments: SSLCommerz session start and its success/fail/cancel callbacks,
Stripe card intents, and recording a client-confirmed payment.
Gateway callbacks are form POSTs from SSLCommerz and carry no bearer token.
"""
import logging

from django.http import HttpResponseRedirect, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from marketplace import payments
from marketplace.exceptions import MarketplaceError
from marketplace.permissions import role_required
from marketplace.utils import iso, json_body, service_errors

logger = logging.getLogger(__name__)


def _payment_to_dict(p):
    return {
        'id': p.id,
        'order_id': p.order_id,
        'email': p.email,
        'name': p.name,
        'amount': str(p.amount),
        'method': p.method,
        'transaction_id': p.transaction_id,
        'status': p.status,
        'created_at': iso(p.created_at),
        'paid_at': iso(p.paid_at),
    }


def _callback_field(request, name):
    return (request.POST.get(name) or request.GET.get(name) or '').strip()


@csrf_exempt
@require_http_methods(['POST'])
@role_required()
@service_errors
@json_body
def create_ssl_payment(request):
    """POST /api/payments/create-ssl-payment/ {"order_id", optional "name", "email"} -> {"url"}."""
    body = request.json
    order_id = body.get('order_id')
    if not order_id:
        return JsonResponse({'error': 'order_id required'}, status=400)
    payer = {'name': body.get('name') or '', 'email': body.get('email') or ''}
    url = payments.initiate_gateway_session(request.caller, order_id, payer)
    return JsonResponse({'url': url})


@csrf_exempt
@require_http_methods(['POST'])
@role_required()
@service_errors
@json_body
def create_payment_intent(request):
    """POST /api/payments/create-payment-intent/ {"amount_in_cents", optional "currency"}."""
    body = request.json
    secret = payments.create_direct_payment_intent(
        body.get('amount_in_cents'), body.get('currency') or None
    )
    return JsonResponse({'client_secret': secret})


@csrf_exempt
@require_http_methods(['POST'])
@role_required()
@service_errors
@json_body
def record_payment(request):
    """POST /api/payments/ {"order_id", "email", "amount", "method", "transaction_id"}."""
    body = request.json
    payment = payments.record_direct_payment(
        request.caller,
        body.get('order_id'),
        body.get('email'),
        body.get('amount'),
        (body.get('method') or '').strip(),
        (body.get('transaction_id') or '').strip(),
    )
    return JsonResponse(_payment_to_dict(payment), status=201)


def _redirect_after(handler, *args):
    """Run a callback handler and redirect to order tracking; errors still redirect."""
    try:
        url = handler(*args)
    except MarketplaceError as e:
        logger.warning('Gateway callback %s failed: %s', handler.__name__, e.message)
        if e.status_code >= 500:
            return JsonResponse({'error': e.message}, status=e.status_code)
        url = payments.tracking_redirect_url()
    return HttpResponseRedirect(url)


@csrf_exempt
@require_http_methods(['POST', 'GET'])
def success_payment(request):
    """SSLCommerz success callback: tran_id + val_id."""
    return _redirect_after(
        payments.on_gateway_success,
        _callback_field(request, 'tran_id'),
        _callback_field(request, 'val_id'),
    )


@csrf_exempt
@require_http_methods(['POST', 'GET'])
def fail_payment(request):
    return _redirect_after(payments.on_gateway_failure, _callback_field(request, 'tran_id'))


@csrf_exempt
@require_http_methods(['POST', 'GET'])
def cancel_payment(request):
    return _redirect_after(payments.on_gateway_cancel, _callback_field(request, 'tran_id'))
