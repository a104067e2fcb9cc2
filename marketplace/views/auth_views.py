"""
Function-based auth views: login, logout, register, me.
Login is by email and password; the response carries a DRF token that clients
send back as "Authorization: Bearer <key>".
"""
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods
from rest_framework.authtoken.models import Token

from marketplace.models import Role, User
from marketplace.permissions import get_role, role_required
from marketplace.utils import iso, json_body, normalize_email

LOGIN_ERROR_MSG = 'Invalid email or password.'


def _user_to_dict(user):
    if not user:
        return None
    role = get_role(user)
    return {
        'id': user.id,
        'name': user.name or user.username,
        'email': user.email,
        'phone': user.phone or '',
        'role': str(role) if role else None,
        'is_active': user.is_active,
        'created_at': iso(user.created_at),
    }


@csrf_exempt
@require_http_methods(['POST'])
@json_body
def login(request):
    """POST JSON { "email", "password" }. Returns { "token", "user" } or 401."""
    email = normalize_email(request.json.get('email'))
    password = request.json.get('password') or ''
    if not email:
        return JsonResponse({'error': 'email required'}, status=400)
    if not password:
        return JsonResponse({'error': 'password required'}, status=400)
    user = User.objects.filter(email__iexact=email).first()
    if not user or not user.check_password(password):
        return JsonResponse({'error': LOGIN_ERROR_MSG}, status=401)
    if not user.is_active:
        return JsonResponse({'error': 'Account disabled'}, status=403)
    token, _ = Token.objects.get_or_create(user=user)
    return JsonResponse({'token': token.key, 'user': _user_to_dict(user)})


@csrf_exempt
@require_http_methods(['POST'])
def logout(request):
    """Invalidate the bearer token (delete it)."""
    auth_header = request.META.get('HTTP_AUTHORIZATION')
    if auth_header and auth_header.startswith('Bearer '):
        Token.objects.filter(key=auth_header[7:].strip()).delete()
    return JsonResponse({'success': True})


@csrf_exempt
@require_http_methods(['POST'])
@json_body
def register(request):
    """POST JSON { "name", "email", "password", optional "phone" }. New accounts are customers."""
    body = request.json
    email = normalize_email(body.get('email'))
    password = body.get('password') or ''
    name = (body.get('name') or '').strip()
    if not email or not password:
        return JsonResponse({'error': 'email and password required'}, status=400)
    if len(password) < 6:
        return JsonResponse({'error': 'Password must be at least 6 characters'}, status=400)
    if User.objects.filter(email__iexact=email).exists():
        return JsonResponse({'error': 'User already exists'}, status=409)
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=email,
                email=email,
                password=password,
                name=name,
                phone=(body.get('phone') or '').strip(),
                role=Role.CUSTOMER,
            )
            token = Token.objects.create(user=user)
    except IntegrityError:
        return JsonResponse({'error': 'User already exists'}, status=409)
    return JsonResponse({'token': token.key, 'user': _user_to_dict(user)}, status=201)


@role_required()
@require_http_methods(['GET'])
def me(request):
    """GET /api/auth/me/ - current user with resolved role."""
    return JsonResponse(_user_to_dict(request.user))
