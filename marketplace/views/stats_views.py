"""Dashboard stats per role."""
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from marketplace import stats
from marketplace.models import Role
from marketplace.permissions import admin_required, role_required, rider_required


@role_required(Role.CUSTOMER, Role.ADMIN)
@require_http_methods(['GET'])
def customer_stats(request):
    """GET /api/stats/customer/ - caller's orders; admins may pass ?email=."""
    email = request.caller.email
    if request.caller.is_admin and request.GET.get('email'):
        email = request.GET['email'].strip().lower()
    return JsonResponse(stats.customer_stats(email))


@rider_required
@require_http_methods(['GET'])
def rider_stats(request):
    """GET /api/stats/rider/ - caller's deliveries and earnings."""
    return JsonResponse(stats.rider_stats(request.caller.email))


@admin_required
@require_http_methods(['GET'])
def admin_stats(request):
    return JsonResponse(stats.admin_stats())
