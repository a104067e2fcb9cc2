"""
Shared fixtures: one user per role with a bearer token, a small menu, an
active rider, and helpers to place orders and build callers.
"""
from decimal import Decimal

import pytest
from rest_framework.authtoken.models import Token

from marketplace import services
from marketplace.models import Food, Rider, RiderStatus, Role, User, WorkStatus
from marketplace.permissions import resolve_caller

ADMIN_EMAIL = 'admin@samskitchen.local'


def make_user(email, role=Role.CUSTOMER, password='secret123', **extra):
    return User.objects.create_user(
        username=email, email=email, password=password, role=role, **extra
    )


def auth(user):
    """Client kwargs carrying user's bearer token."""
    token, _ = Token.objects.get_or_create(user=user)
    return {'HTTP_AUTHORIZATION': f'Bearer {token.key}'}


def checkout_data(email, foods, total='500', delivery_charge='0'):
    return {
        'customer': {
            'name': 'Rahim',
            'email': email,
            'phone': '01700000000',
            'address': {'district': 'Dhaka', 'thana': 'Mirpur', 'region': 'Dhaka'},
        },
        'items': [{'food_id': f.id, 'quantity': 1} for f in foods],
        'total': total,
        'delivery_charge': delivery_charge,
    }


@pytest.fixture
def customer_user(db):
    return make_user('rahim@example.com', name='Rahim')


@pytest.fixture
def other_customer_user(db):
    return make_user('karim@example.com', name='Karim')


@pytest.fixture
def admin_user(db):
    return make_user('boss@samskitchen.local', role=Role.ADMIN, name='Boss')


@pytest.fixture
def rider_user(db):
    return make_user('rider@example.com', role=Role.RIDER, name='Jamal')


@pytest.fixture
def rider(rider_user):
    return Rider.objects.create(
        user=rider_user,
        name='Jamal',
        email=rider_user.email,
        phone='01800000000',
        district='Dhaka',
        thana='Mirpur',
        region='Dhaka',
        vehicle='bicycle',
        status=RiderStatus.ACTIVE,
        work_status=WorkStatus.AVAILABLE,
    )


@pytest.fixture
def customer(customer_user):
    return resolve_caller(customer_user)


@pytest.fixture
def admin(admin_user):
    return resolve_caller(admin_user)


@pytest.fixture
def rider_caller(rider_user):
    return resolve_caller(rider_user)


@pytest.fixture
def foods(db):
    return [
        Food.objects.create(name='Kacchi Biryani', category='Rice', price=Decimal('350')),
        Food.objects.create(name='Borhani', category='Drinks', price=Decimal('150')),
    ]


@pytest.fixture
def order(customer, foods):
    """Two-item order for 500, not yet assigned."""
    return services.place_order(customer, checkout_data(customer.email, foods))


@pytest.fixture
def assigned_order(order, admin, rider):
    return services.assign_rider(admin, order.id, rider.id)


@pytest.fixture
def picked_order(assigned_order, rider_caller):
    return services.mark_picked(rider_caller, assigned_order.id)


@pytest.fixture
def delivered_order(picked_order, rider_caller):
    return services.mark_delivered(rider_caller, picked_order.id)
