"""
Shared helpers for API views: token auth, JSON bodies, error mapping, serialization.
"""
import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from functools import wraps

from django.forms.models import model_to_dict as _model_to_dict
from django.http import JsonResponse

from marketplace.exceptions import MarketplaceError, ValidationError


def _serialize_value(v):
    if v is None:
        return None
    if isinstance(v, Decimal):
        return str(v)
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    if hasattr(v, 'pk'):
        return v.pk
    return v


def model_to_dict(instance, fields=None, exclude=None):
    """
    Return a dict of the model instance with snake_case keys and serializable values.
    FK become ids, Decimals become strings, dates become isoformat. Non-editable
    timestamp fields are included when listed in fields.
    """
    if instance is None:
        return None
    raw = _model_to_dict(instance, fields=fields, exclude=exclude)
    raw['id'] = instance.pk
    for name in fields or ():
        if name not in raw and hasattr(instance, name):
            raw[name] = getattr(instance, name)
    return {k: _serialize_value(v) for k, v in raw.items()}


def iso(dt):
    return dt.isoformat() if dt else None


def normalize_email(value):
    return (value or '').strip().lower()


def parse_decimal(value, field, allow_negative=False):
    """Decimal from a JSON value; ValidationError naming field when invalid."""
    if value in (None, ''):
        raise ValidationError(f'{field} required')
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'Invalid {field}')
    if not d.is_finite() or (d < 0 and not allow_negative):
        raise ValidationError(f'Invalid {field}')
    return d


def parse_page(request, default_limit=10, max_limit=100):
    """Return (page, limit) from ?page=&limit=, clamped to sane values."""
    try:
        page = max(1, int(request.GET.get('page', 1)))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = max(1, min(max_limit, int(request.GET.get('limit', default_limit))))
    except (TypeError, ValueError):
        limit = default_limit
    return page, limit


def json_body(view_func):
    """Decorator: parse request.body as JSON into request.json; 400 on malformed input."""
    @wraps(view_func)
    def wrapped(request, *args, **kwargs):
        try:
            body = json.loads(request.body) if request.body else {}
        except (json.JSONDecodeError, UnicodeDecodeError):
            return JsonResponse({'error': 'Invalid JSON'}, status=400)
        if not isinstance(body, dict):
            return JsonResponse({'error': 'Invalid JSON'}, status=400)
        request.json = body
        return view_func(request, *args, **kwargs)
    return wrapped


def service_errors(view_func):
    """Decorator: turn MarketplaceError raised by services into a JSON error response."""
    @wraps(view_func)
    def wrapped(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except MarketplaceError as e:
            return JsonResponse({'error': e.message}, status=e.status_code)
    return wrapped


def auth_required(view_func):
    """Decorator: set request.user from Authorization Bearer token (DRF Token only). Return 401 if invalid."""
    from rest_framework.authtoken.models import Token

    @wraps(view_func)
    def wrapped(request, *args, **kwargs):
        auth_header = request.META.get('HTTP_AUTHORIZATION')
        if not auth_header or not auth_header.startswith('Bearer '):
            return JsonResponse({'error': 'Authentication required'}, status=401)
        key = auth_header[7:].strip()
        try:
            token = Token.objects.select_related('user').get(key=key)
        except Token.DoesNotExist:
            return JsonResponse({'error': 'Invalid token'}, status=401)
        if not token.user.is_active:
            return JsonResponse({'error': 'Account disabled'}, status=403)
        request.user = token.user
        return view_func(request, *args, **kwargs)
    return wrapped
