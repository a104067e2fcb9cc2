"""Rider applications, approval, and the rider's own order queues."""
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from marketplace import services
from marketplace.models import OrderStatus, Rider, RiderStatus, Role, WorkStatus
from marketplace.permissions import admin_required, role_required, rider_required
from marketplace.utils import iso, json_body, service_errors
from marketplace.views.order_views import order_to_dict


def rider_to_dict(r):
    return {
        'id': r.id,
        'user_id': r.user_id,
        'name': r.name,
        'email': r.email,
        'phone': r.phone,
        'age': r.age,
        'district': r.district,
        'thana': r.thana,
        'region': r.region,
        'vehicle': r.vehicle,
        'status': r.status,
        'work_status': r.work_status,
        'applied_at': iso(r.applied_at),
        'active_at': iso(r.active_at),
    }


@csrf_exempt
@require_http_methods(['POST'])
@role_required(Role.CUSTOMER)
@service_errors
@json_body
def rider_apply(request):
    """POST /api/riders/ - customer applies to ride; one application per email."""
    rider = services.apply_as_rider(request.caller, request.json)
    return JsonResponse(rider_to_dict(rider), status=201)


@admin_required
@require_http_methods(['GET'])
def rider_available_list(request):
    """GET /api/riders/available/?thana= - active riders free for a new assignment."""
    qs = Rider.objects.filter(status=RiderStatus.ACTIVE, work_status=WorkStatus.AVAILABLE)
    thana = (request.GET.get('thana') or '').strip()
    if thana:
        qs = qs.filter(thana__iexact=thana)
    return JsonResponse({'riders': [rider_to_dict(r) for r in qs]})


@admin_required
@require_http_methods(['GET'])
def rider_pending_list(request):
    """GET /api/riders/pending/ - applications awaiting approval, oldest first."""
    qs = Rider.objects.filter(status=RiderStatus.PENDING).order_by('applied_at')
    return JsonResponse({'riders': [rider_to_dict(r) for r in qs]})


@rider_required
@require_http_methods(['GET'])
def rider_orders(request):
    """GET /api/riders/orders/ - caller's orders still to pick up or deliver."""
    qs = services.orders_for(request.caller).filter(
        status__in=(OrderStatus.ASSIGNED, OrderStatus.PICKED)
    )
    return JsonResponse({'orders': [order_to_dict(o) for o in qs]})


@rider_required
@require_http_methods(['GET'])
def rider_completed_orders(request):
    """GET /api/riders/completed-orders/ - caller's delivered orders."""
    qs = services.orders_for(request.caller, status=OrderStatus.DELIVERED)
    return JsonResponse({'orders': [order_to_dict(o) for o in qs]})


@csrf_exempt
@require_http_methods(['PATCH'])
@admin_required
@service_errors
@json_body
def rider_status_update(request, pk):
    """PATCH /api/riders/<id>/status/ {"status": "active"} - approve an application."""
    status = request.json.get('status') or RiderStatus.ACTIVE
    rider = services.set_rider_status(request.caller, pk, status)
    return JsonResponse(rider_to_dict(rider))


@csrf_exempt
@require_http_methods(['DELETE'])
@admin_required
@service_errors
def rider_delete(request, pk):
    """DELETE /api/riders/<id>/ - drop a pending application."""
    services.delete_rider_application(request.caller, pk)
    return JsonResponse({'success': True})
