"""Notification inbox: direct notifications for the caller plus every broadcast."""
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from marketplace import notify
from marketplace.permissions import role_required
from marketplace.utils import iso, parse_page


def _notification_to_dict(n, is_read):
    return {
        'id': n.id,
        'type': n.type,
        'message': n.message,
        'related_id': n.related_id or None,
        'is_read': is_read,
        'created_at': iso(n.created_at),
    }


@role_required()
@require_http_methods(['GET'])
def notification_list(request):
    """GET /api/notifications/?page=&limit= -> {notifications, total, unread}."""
    page, limit = parse_page(request)
    entries = notify.notifications_for(request.caller.email)
    unread = sum(1 for _, is_read in entries if not is_read)
    start = (page - 1) * limit
    results = [_notification_to_dict(n, r) for n, r in entries[start:start + limit]]
    return JsonResponse({
        'notifications': results,
        'total': len(entries),
        'unread': unread,
        'page': page,
        'limit': limit,
    })


@csrf_exempt
@require_http_methods(['PATCH'])
@role_required()
def notification_read_all(request):
    """PATCH /api/notifications/read-all/ - mark everything read for the caller."""
    direct_updated, broadcast_updated = notify.mark_all_read(request.caller.email)
    return JsonResponse({
        'direct_updated': direct_updated,
        'broadcast_updated': broadcast_updated,
    })
