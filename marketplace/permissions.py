"""
Role gate for the marketplace API.

Each authenticated user resolves to a Caller(user_id, email, role) with role in
customer / admin / rider; superusers count as admin. Views declare allowed roles
with role_required; services receive the Caller and check capability again with
caller.require() so they stay usable outside HTTP.
"""
from dataclasses import dataclass
from functools import wraps

from django.http import JsonResponse

from marketplace.exceptions import Forbidden
from marketplace.models import Role
from marketplace.utils import auth_required


@dataclass(frozen=True)
class Caller:
    user_id: int
    email: str
    role: str

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    @property
    def is_rider(self):
        return self.role == Role.RIDER

    @property
    def is_customer(self):
        return self.role == Role.CUSTOMER

    def require(self, *roles):
        """Raise Forbidden unless this caller holds one of roles."""
        if self.role not in roles:
            allowed = ' or '.join(str(Role(r).label) for r in roles)
            raise Forbidden(f'{allowed} access required')
        return self


def get_role(user):
    """Return the marketplace role for user: admin, rider or customer. None if anonymous."""
    if not user or not getattr(user, 'is_authenticated', False):
        return None
    if getattr(user, 'is_superuser', False):
        return Role.ADMIN
    role = getattr(user, 'role', '') or Role.CUSTOMER
    return Role(role)


def resolve_caller(user):
    role = get_role(user)
    if role is None:
        return None
    return Caller(user_id=user.pk, email=(user.email or '').lower(), role=role)


def role_required(*roles):
    """
    Decorator: authenticate with the bearer token, then require one of roles.
    Sets request.caller. With no roles, any authenticated user passes.
    """
    def decorator(view_func):
        @auth_required
        @wraps(view_func)
        def wrapped(request, *args, **kwargs):
            caller = resolve_caller(request.user)
            if caller is None:
                return JsonResponse({'error': 'Authentication required'}, status=401)
            if roles and caller.role not in roles:
                allowed = ' or '.join(str(Role(r).label) for r in roles)
                return JsonResponse({'error': f'{allowed} access required'}, status=403)
            request.caller = caller
            return view_func(request, *args, **kwargs)
        return wrapped
    return decorator


admin_required = role_required(Role.ADMIN)
rider_required = role_required(Role.RIDER)
customer_required = role_required(Role.CUSTOMER)
