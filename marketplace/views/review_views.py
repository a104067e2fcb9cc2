"""Food reviews: public list per food, signed-in users post."""
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from marketplace import services
from marketplace.permissions import role_required
from marketplace.utils import iso, json_body, parse_page, service_errors


def review_to_dict(r):
    return {
        'id': r.id,
        'food_id': r.food_id,
        'user_name': r.user_name,
        'user_photo': r.user_photo or None,
        'rating': r.rating,
        'comment': r.comment,
        'images': r.images,
        'posted_at': iso(r.posted_at),
    }


def _review_list(request):
    food_id = (request.GET.get('food_id') or '').strip()
    if not food_id.isdigit():
        return JsonResponse({'error': 'food_id is required'}, status=400)
    qs = services.reviews_for_food(int(food_id))
    page, limit = parse_page(request, default_limit=3)
    start = (page - 1) * limit
    return JsonResponse({
        'reviews': [review_to_dict(r) for r in qs[start:start + limit]],
        'total': qs.count(),
        'page': page,
        'limit': limit,
    })


@role_required()
@service_errors
@json_body
def _review_create(request):
    review = services.add_review(request.caller, request.json, user=request.user)
    return JsonResponse(review_to_dict(review), status=201)


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def review_list_create(request):
    """GET /api/reviews/?food_id=&page=&limit= (public, newest first). POST /api/reviews/ (signed in)."""
    if request.method == 'POST':
        return _review_create(request)
    return _review_list(request)
