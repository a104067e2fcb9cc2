"""Order state machine, rider coupling and the notifications each transition writes."""
from decimal import Decimal
from unittest.mock import patch

import pytest

from marketplace import services
from marketplace.exceptions import (
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from marketplace.models import (
    CashoutStatus,
    Notification,
    Order,
    OrderStatus,
    PaymentStatus,
    Rider,
    RiderStatus,
    WorkStatus,
)
from marketplace.permissions import resolve_caller
from tests.conftest import ADMIN_EMAIL, checkout_data, make_user


def notified(email, related_id):
    return list(
        Notification.objects.filter(email=email, related_id=str(related_id))
        .order_by('id')
        .values_list('message', flat=True)
    )


@pytest.mark.django_db
class TestPlaceOrder:

    def test_new_order_starts_unassigned_and_unpaid(self, order):
        assert order.status == OrderStatus.NOT_ASSIGNED
        assert order.payment_status == PaymentStatus.UNPAID
        assert order.cashout_status == CashoutStatus.PENDING
        assert order.total == Decimal('500')
        assert order.items.count() == 2
        assert order.assigned_rider_id is None

    def test_notifies_customer_and_admin(self, order):
        assert notified('rahim@example.com', order.id) == ['Your order is placed successfully.']
        assert notified(ADMIN_EMAIL, order.id) == ['New order is placed.']

    def test_items_snapshot_food_name_and_price(self, order, foods):
        item = order.items.get(food=foods[0])
        assert item.food_name == 'Kacchi Biryani'
        assert item.price == Decimal('350')

    def test_empty_items_rejected_without_creating_order(self, customer, foods):
        data = checkout_data(customer.email, foods)
        data['items'] = []
        with pytest.raises(ValidationError):
            services.place_order(customer, data)
        assert Order.objects.count() == 0

    def test_missing_address_rejected(self, customer, foods):
        data = checkout_data(customer.email, foods)
        data['customer']['address'] = {}
        with pytest.raises(ValidationError):
            services.place_order(customer, data)
        assert Order.objects.count() == 0

    def test_unknown_food_rejected(self, customer, foods):
        data = checkout_data(customer.email, foods)
        data['items'].append({'food_id': 9999, 'quantity': 1})
        with pytest.raises(ValidationError):
            services.place_order(customer, data)
        assert Order.objects.count() == 0

    def test_non_numeric_quantity_rejected(self, customer, foods):
        data = checkout_data(customer.email, foods)
        data['items'][0]['quantity'] = 'two'
        with pytest.raises(ValidationError):
            services.place_order(customer, data)

    def test_customer_cannot_order_for_someone_else(self, customer, foods):
        with pytest.raises(Forbidden):
            services.place_order(customer, checkout_data('karim@example.com', foods))

    def test_notification_failure_does_not_undo_order(self, customer, foods):
        with patch('marketplace.notify.notify_direct', return_value=None):
            order = services.place_order(customer, checkout_data(customer.email, foods))
        assert Order.objects.filter(pk=order.pk).exists()


@pytest.mark.django_db
class TestAssignRider:

    def test_assign_couples_rider_work_status(self, assigned_order, rider):
        rider.refresh_from_db()
        assert assigned_order.status == OrderStatus.ASSIGNED
        assert assigned_order.assigned_rider_id == rider.id
        assert assigned_order.assigned_rider_email == rider.email
        assert assigned_order.assigned_at is not None
        assert rider.work_status == WorkStatus.IN_DELIVERY

    def test_assign_notifies_customer_admin_and_rider(self, assigned_order, rider):
        assert notified('rahim@example.com', assigned_order.id)[-1] == (
            'Your order is assigned to rider: Jamal.'
        )
        assert 'You assigned rider to a order successfully.' in notified(ADMIN_EMAIL, assigned_order.id)
        assert notified(rider.email, assigned_order.id) == [
            'You are assigned for a order. Go to the outlet and pick the order.'
        ]

    def test_requires_admin(self, order, rider, customer):
        with pytest.raises(Forbidden):
            services.assign_rider(customer, order.id, rider.id)

    def test_assigning_twice_fails(self, assigned_order, admin, rider):
        with pytest.raises(InvalidTransition):
            services.assign_rider(admin, assigned_order.id, rider.id)

    def test_missing_order_or_rider(self, order, admin, rider):
        with pytest.raises(NotFound):
            services.assign_rider(admin, 9999, rider.id)
        with pytest.raises(NotFound):
            services.assign_rider(admin, order.id, 9999)

    def test_pending_rider_cannot_be_assigned(self, order, admin, rider):
        Rider.objects.filter(pk=rider.pk).update(status=RiderStatus.PENDING)
        with pytest.raises(Conflict):
            services.assign_rider(admin, order.id, rider.id)
        order.refresh_from_db()
        assert order.status == OrderStatus.NOT_ASSIGNED

    def test_busy_rider_rolls_back_assignment(self, assigned_order, admin, rider, customer, foods):
        second = services.place_order(customer, checkout_data(customer.email, foods))
        with pytest.raises(Conflict):
            services.assign_rider(admin, second.id, rider.id)
        second.refresh_from_db()
        assert second.status == OrderStatus.NOT_ASSIGNED
        assert second.assigned_rider_id is None

    def test_rider_email_must_match(self, order, admin, rider):
        with pytest.raises(ValidationError):
            services.assign_rider(admin, order.id, rider.id, rider_email='someone@else.com')


@pytest.mark.django_db
class TestPickupAndDelivery:

    def test_full_delivery_scenario(self, order, admin, rider, rider_caller):
        services.assign_rider(admin, order.id, rider.id)
        assert len(notified('rahim@example.com', order.id)) == 2
        picked = services.mark_picked(rider_caller, order.id)
        assert picked.status == OrderStatus.PICKED
        assert picked.picked_at is not None
        before = Notification.objects.count()
        delivered = services.mark_delivered(rider_caller, order.id)
        rider.refresh_from_db()
        assert delivered.status == OrderStatus.DELIVERED
        assert delivered.delivered_at is not None
        assert rider.work_status == WorkStatus.AVAILABLE
        assert Notification.objects.count() - before == 3
        assert not Order.objects.filter(
            assigned_rider=rider, status__in=(OrderStatus.ASSIGNED, OrderStatus.PICKED)
        ).exists()

    def test_only_assigned_rider_can_pick(self, assigned_order, db):
        stranger = resolve_caller(make_user('other.rider@example.com', role='rider'))
        with pytest.raises(Forbidden):
            services.mark_picked(stranger, assigned_order.id)

    def test_customer_cannot_pick(self, assigned_order, customer):
        with pytest.raises(Forbidden):
            services.mark_picked(customer, assigned_order.id)

    def test_cannot_deliver_before_pickup(self, assigned_order, rider_caller):
        with pytest.raises(InvalidTransition):
            services.mark_delivered(rider_caller, assigned_order.id)

    def test_cannot_pick_twice(self, picked_order, rider_caller):
        with pytest.raises(InvalidTransition):
            services.mark_picked(rider_caller, picked_order.id)

    def test_delivered_never_moves_back(self, delivered_order, rider_caller):
        with pytest.raises(InvalidTransition):
            services.mark_picked(rider_caller, delivered_order.id)
        with pytest.raises(InvalidTransition):
            services.mark_delivered(rider_caller, delivered_order.id)

    def test_deliver_requires_rider_in_delivery(self, picked_order, rider, rider_caller):
        Rider.objects.filter(pk=rider.pk).update(work_status=WorkStatus.AVAILABLE)
        with pytest.raises(InvalidTransition):
            services.mark_delivered(rider_caller, picked_order.id)
        picked_order.refresh_from_db()
        assert picked_order.status == OrderStatus.PICKED

    def test_update_delivery_status_dispatch(self, assigned_order, rider_caller):
        order = services.update_delivery_status(rider_caller, assigned_order.id, 'picked')
        assert order.status == OrderStatus.PICKED
        order = services.update_delivery_status(rider_caller, assigned_order.id, 'delivered')
        assert order.status == OrderStatus.DELIVERED
        with pytest.raises(ValidationError):
            services.update_delivery_status(rider_caller, assigned_order.id, 'cancelled')


@pytest.mark.django_db
class TestCancel:

    def test_customer_cancels_unassigned_order(self, order, customer):
        cancelled = services.cancel_order(customer, order.id)
        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert notified(ADMIN_EMAIL, order.id)[-1] == 'Order cancelled.'

    def test_cancel_assigned_frees_rider(self, assigned_order, customer, rider):
        cancelled = services.cancel_order(customer, assigned_order.id)
        rider.refresh_from_db()
        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.assigned_rider_id is None
        assert cancelled.assigned_rider_email == ''
        assert rider.work_status == WorkStatus.AVAILABLE

    def test_picked_order_cannot_be_cancelled(self, picked_order, admin):
        with pytest.raises(InvalidTransition):
            services.cancel_order(admin, picked_order.id)

    def test_cancelled_is_terminal(self, order, customer, admin, rider):
        services.cancel_order(customer, order.id)
        with pytest.raises(InvalidTransition):
            services.cancel_order(customer, order.id)
        with pytest.raises(InvalidTransition):
            services.assign_rider(admin, order.id, rider.id)

    def test_other_customer_cannot_cancel(self, order, other_customer_user):
        with pytest.raises(Forbidden):
            services.cancel_order(resolve_caller(other_customer_user), order.id)


@pytest.mark.django_db
class TestCashout:

    def test_cashout_once(self, delivered_order, rider_caller, rider):
        order = services.cashout(rider_caller, delivered_order.id)
        assert order.cashout_status == CashoutStatus.CASHED_OUT
        assert order.cashed_out_at is not None
        assert notified(rider.email, order.id)[-1] == 'You cashout your earnings for a order.'
        assert notified(ADMIN_EMAIL, order.id)[-1] == (
            'Rider cashout his earnings. Rider name: Jamal. Rider email: rider@example.com.'
        )
        with pytest.raises(Conflict):
            services.cashout(rider_caller, delivered_order.id)

    def test_cashout_requires_delivery(self, picked_order, rider_caller):
        with pytest.raises(InvalidTransition):
            services.cashout(rider_caller, picked_order.id)


@pytest.mark.django_db
class TestOrderVisibility:

    def test_orders_for_each_role(self, assigned_order, customer, admin, rider_caller, other_customer_user):
        assert list(services.orders_for(customer)) == [assigned_order]
        assert list(services.orders_for(rider_caller)) == [assigned_order]
        assert list(services.orders_for(admin)) == [assigned_order]
        assert list(services.orders_for(resolve_caller(other_customer_user))) == []

    def test_get_order_for_out_of_scope(self, order, other_customer_user):
        with pytest.raises(Forbidden):
            services.get_order_for(resolve_caller(other_customer_user), order.id)
