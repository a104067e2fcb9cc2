"""Orders: checkout, list, detail, cancel, assign, rider status updates, cashout, receipt."""
from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from marketplace import services
from marketplace.models import OrderStatus, PaymentRecordStatus, PaymentStatus, Role
from marketplace.permissions import admin_required, role_required, rider_required
from marketplace.utils import iso, json_body, parse_page, service_errors


def order_to_dict(o, include_items=True):
    d = {
        'id': o.id,
        'customer': {
            'name': o.customer_name,
            'email': o.customer_email,
            'phone': o.customer_phone,
            'address': {
                'district': o.district,
                'thana': o.thana,
                'region': o.region,
            },
        },
        'total': str(o.total),
        'delivery_charge': str(o.delivery_charge),
        'status': o.status,
        'payment_status': o.payment_status,
        'cashout_status': o.cashout_status,
        'assigned_rider_id': o.assigned_rider_id,
        'assigned_rider_name': o.assigned_rider_name or None,
        'assigned_rider_email': o.assigned_rider_email or None,
        'placed_at': iso(o.placed_at),
        'assigned_at': iso(o.assigned_at),
        'picked_at': iso(o.picked_at),
        'delivered_at': iso(o.delivered_at),
        'cancelled_at': iso(o.cancelled_at),
        'paid_at': iso(o.paid_at),
        'cashed_out_at': iso(o.cashed_out_at),
    }
    if include_items:
        d['items'] = [
            {
                'id': i.id,
                'food_id': i.food_id,
                'name': i.food_name,
                'price': str(i.price),
                'quantity': i.quantity,
            }
            for i in o.items.all()
        ]
    return d


def _paginated(request, qs):
    page, limit = parse_page(request)
    total = qs.count()
    start = (page - 1) * limit
    results = [order_to_dict(o) for o in qs[start:start + limit]]
    return {'orders': results, 'total': total, 'page': page, 'limit': limit}


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@role_required()
@service_errors
@json_body
def order_list_create(request):
    """
    GET /api/orders/?status=&payment_status=&page=&limit= - caller's orders (admin: all).
    POST /api/orders/ - place an order.
    """
    if request.method == 'POST':
        order = services.place_order(request.caller, request.json)
        return JsonResponse(order_to_dict(order), status=201)
    status = request.GET.get('status') or None
    if status and status not in OrderStatus.values:
        return JsonResponse({'error': 'Invalid status'}, status=400)
    payment_status = request.GET.get('payment_status') or None
    if payment_status and payment_status not in PaymentStatus.values:
        return JsonResponse({'error': 'Invalid payment_status'}, status=400)
    qs = services.orders_for(request.caller, status=status, payment_status=payment_status)
    return JsonResponse(_paginated(request, qs))


@csrf_exempt
@require_http_methods(['GET', 'PATCH'])
@role_required()
@service_errors
@json_body
def order_detail(request, pk):
    """
    GET /api/orders/<id>/ - visible to its customer, its rider, or an admin.
    PATCH /api/orders/<id>/ {"status": "cancelled"} - cancel.
    """
    if request.method == 'PATCH':
        if request.json.get('status') != OrderStatus.CANCELLED:
            return JsonResponse({'error': 'Only status "cancelled" can be set here'}, status=400)
        order = services.cancel_order(request.caller, pk)
        return JsonResponse(order_to_dict(order))
    order = services.get_order_for(request.caller, pk)
    return JsonResponse(order_to_dict(order))


@csrf_exempt
@require_http_methods(['PATCH'])
@admin_required
@service_errors
@json_body
def order_assign(request, pk):
    """PATCH /api/orders/<id>/assign/ {"rider_id", optional "rider_name", "rider_email"}."""
    body = request.json
    rider_id = body.get('rider_id')
    if not rider_id:
        return JsonResponse({'error': 'rider_id required'}, status=400)
    order = services.assign_rider(
        request.caller,
        pk,
        rider_id,
        rider_name=body.get('rider_name'),
        rider_email=body.get('rider_email'),
    )
    return JsonResponse(order_to_dict(order))


@csrf_exempt
@require_http_methods(['PATCH'])
@rider_required
@service_errors
@json_body
def order_status_update(request, pk):
    """PATCH /api/orders/<id>/status/ {"status": "picked" | "delivered"} - assigned rider only."""
    order = services.update_delivery_status(request.caller, pk, request.json.get('status'))
    return JsonResponse(order_to_dict(order))


@csrf_exempt
@require_http_methods(['PATCH'])
@rider_required
@service_errors
def order_cashout(request, pk):
    """PATCH /api/orders/<id>/cashout/ - assigned rider cashes out a delivered order, once."""
    order = services.cashout(request.caller, pk)
    return JsonResponse(order_to_dict(order))


@role_required(Role.CUSTOMER, Role.ADMIN, Role.RIDER)
@require_http_methods(['GET'])
@service_errors
def order_receipt(request, pk):
    """GET /api/orders/<id>/receipt/ - PDF receipt for a paid order."""
    order = services.get_order_for(request.caller, pk)
    if order.payment_status != PaymentStatus.PAID:
        return JsonResponse({'error': 'Receipt is available after payment'}, status=400)
    payment = order.payments.filter(status=PaymentRecordStatus.DONE).first()
    from marketplace.receipt_pdf import order_receipt_pdf_bytes
    pdf_bytes = order_receipt_pdf_bytes(order, payment)
    resp = HttpResponse(pdf_bytes, content_type='application/pdf')
    resp['Content-Disposition'] = f'attachment; filename="order-{order.id}-receipt.pdf"'
    return resp
