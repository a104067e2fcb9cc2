"""Food catalog: public list and detail; admin create, update (both broadcast) and delete."""
from django.db.models import Q
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from marketplace import services
from marketplace.models import Food
from marketplace.permissions import admin_required
from marketplace.utils import iso, json_body, model_to_dict, parse_page, service_errors


def food_to_dict(f):
    d = model_to_dict(f, fields=['name', 'category', 'description', 'price', 'discount', 'image', 'added_by'])
    d['added_at'] = iso(f.added_at)
    d['updated_at'] = iso(f.updated_at)
    return d


def _food_list(request):
    qs = Food.objects.all()
    search = (request.GET.get('search') or '').strip()
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(description__icontains=search))
    category = (request.GET.get('category') or '').strip()
    if category:
        qs = qs.filter(category__iexact=category)
    page, limit = parse_page(request)
    total = qs.count()
    start = (page - 1) * limit
    return JsonResponse({
        'foods': [food_to_dict(f) for f in qs[start:start + limit]],
        'total': total,
        'page': page,
        'limit': limit,
    })


@admin_required
@service_errors
@json_body
def _food_create(request):
    food = services.create_food(request.caller, request.json, added_by=request.user)
    return JsonResponse(food_to_dict(food), status=201)


@csrf_exempt
@require_http_methods(['GET', 'POST'])
def food_list_create(request):
    """GET /api/foods/?search=&category= (public). POST /api/foods/ (admin)."""
    if request.method == 'POST':
        return _food_create(request)
    return _food_list(request)


@admin_required
@service_errors
@json_body
def _food_update(request, pk):
    food = services.update_food(request.caller, pk, request.json)
    return JsonResponse(food_to_dict(food))


@admin_required
@service_errors
def _food_delete(request, pk):
    services.delete_food(request.caller, pk)
    return JsonResponse({'success': True})


@csrf_exempt
@require_http_methods(['GET', 'PATCH', 'DELETE'])
def food_detail(request, pk):
    """GET /api/foods/<id>/ (public). PATCH and DELETE /api/foods/<id>/ (admin)."""
    if request.method == 'PATCH':
        return _food_update(request, pk)
    if request.method == 'DELETE':
        return _food_delete(request, pk)
    food = Food.objects.filter(pk=pk).first()
    if food is None:
        return JsonResponse({'error': 'Food not found'}, status=404)
    return JsonResponse(food_to_dict(food))
