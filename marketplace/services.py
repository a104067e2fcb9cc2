"""
Order lifecycle and rider coupling.

Every order transition is one guarded update: the row is matched on its current
status and the update count tells whether the transition happened. Writes that
must move together (order + rider work status) share one transaction.
Notifications and tracking pushes run after commit and never fail a transition.

    not_assigned --assign--> assigned --pickup--> picked --deliver--> delivered
    not_assigned / assigned --cancel--> cancelled
"""
import logging

from django.db import transaction
from django.db.models import ProtectedError
from django.utils import timezone

from marketplace import notify
from marketplace.constants import FOOD_DISCOUNT_MESSAGE, NEW_FOOD_MESSAGE
from marketplace.exceptions import (
    Conflict,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from marketplace.models import (
    ACTIVE_DELIVERY_STATUSES,
    CashoutStatus,
    Food,
    Order,
    OrderItem,
    OrderStatus,
    Review,
    Rider,
    RiderStatus,
    Role,
    User,
    WorkStatus,
)
from marketplace.tracking import push_order_update
from marketplace.utils import normalize_email, parse_decimal

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (OrderStatus.NOT_ASSIGNED, OrderStatus.ASSIGNED)


# --- Lookups ---


def get_order(order_id):
    try:
        return Order.objects.select_related('assigned_rider').get(pk=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFound('Order not found')


def get_rider(rider_id):
    try:
        return Rider.objects.get(pk=rider_id)
    except (Rider.DoesNotExist, ValueError, TypeError):
        raise NotFound('Rider not found')


def can_view_order(caller, order):
    if caller.is_admin:
        return True
    if caller.is_rider and order.assigned_rider_email.lower() == caller.email:
        return True
    return order.customer_email.lower() == caller.email


def get_order_for(caller, order_id):
    """Order visible to caller: its customer, its assigned rider, or an admin."""
    order = get_order(order_id)
    if not can_view_order(caller, order):
        raise Forbidden('Order not in your scope')
    return order


def orders_for(caller, status=None, payment_status=None):
    """Customer: own orders. Rider: orders assigned to them. Admin: all."""
    qs = Order.objects.prefetch_related('items')
    if caller.is_rider:
        qs = qs.filter(assigned_rider_email__iexact=caller.email)
    elif not caller.is_admin:
        qs = qs.filter(customer_email__iexact=caller.email)
    if status:
        qs = qs.filter(status=status)
    if payment_status:
        qs = qs.filter(payment_status=payment_status)
    return qs.order_by('-placed_at')


def _require_assigned_rider(order, caller):
    if not order.assigned_rider_email or order.assigned_rider_email.lower() != caller.email:
        raise Forbidden('Only the assigned rider can update this order')


def _after_transition(order_id, event, **context):
    """Reload the order, push it to tracking subscribers and notify its participants."""
    order = Order.objects.get(pk=order_id)
    logger.info('Order %s %s', order.id, event)
    push_order_update(order)
    participants = {'customer': order.customer_email}
    rider_email = context.pop('rider_email', None) or order.assigned_rider_email
    if rider_email:
        participants['rider'] = rider_email
    notify.fan_out(
        event,
        order.id,
        participants,
        rider_name=context.pop('rider_name', None) or order.assigned_rider_name,
        rider_email=rider_email or '',
        **context,
    )
    return order


# --- Checkout ---


def _parse_items(items):
    """[(food, quantity)] from [{'food_id', 'quantity'}]; ValidationError on bad lines."""
    lines = []
    for it in items:
        if not isinstance(it, dict):
            raise ValidationError('Invalid order item')
        try:
            food_id = int(it.get('food_id') or it.get('food') or 0)
            quantity = int(it.get('quantity', 1))
        except (TypeError, ValueError):
            raise ValidationError('Invalid order item')
        if food_id < 1 or quantity < 1:
            raise ValidationError('Each item needs a food_id and a positive quantity')
        lines.append((food_id, quantity))
    foods = Food.objects.in_bulk([f for f, _ in lines])
    parsed = []
    for food_id, quantity in lines:
        food = foods.get(food_id)
        if food is None:
            raise ValidationError(f'Unknown food {food_id}')
        parsed.append((food, quantity))
    return parsed


def place_order(caller, data):
    """
    Create an order from checkout data:
    {customer: {name, email, phone, address: {district, thana, region}},
     items: [{food_id, quantity}], total, delivery_charge}.
    Starts not_assigned / unpaid; notifies the customer and the admin.
    """
    customer = data.get('customer')
    items = data.get('items')
    if not isinstance(customer, dict) or not isinstance(items, list) or not items:
        raise ValidationError('Invalid order data')
    email = normalize_email(customer.get('email')) or caller.email
    if caller.is_customer and email != caller.email:
        raise Forbidden('Customers can only order for themselves')
    address = customer.get('address') or {}
    if not isinstance(address, dict):
        raise ValidationError('Invalid customer address')
    phone = (customer.get('phone') or '').strip()
    district = (address.get('district') or '').strip()
    thana = (address.get('thana') or '').strip()
    region = (address.get('region') or '').strip()
    if not (email and phone and district and thana and region):
        raise ValidationError('Customer email, phone and address are required')
    total = parse_decimal(data.get('total'), 'total')
    delivery_charge = parse_decimal(data.get('delivery_charge', 0), 'delivery_charge')
    lines = _parse_items(items)

    with transaction.atomic():
        order = Order.objects.create(
            customer=User.objects.filter(email__iexact=email).first(),
            customer_name=(customer.get('name') or '').strip(),
            customer_email=email,
            customer_phone=phone,
            district=district,
            thana=thana,
            region=region,
            total=total,
            delivery_charge=delivery_charge,
        )
        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                food=food,
                food_name=food.name,
                price=food.price,
                quantity=quantity,
            )
            for food, quantity in lines
        ])
    return _after_transition(order.id, 'placed')


# --- Transitions ---


def cancel_order(caller, order_id):
    """not_assigned|assigned -> cancelled. Frees the rider when one was assigned."""
    order = get_order(order_id)
    if not (caller.is_admin or order.customer_email.lower() == caller.email):
        raise Forbidden('Only the customer or an admin can cancel this order')
    if order.status not in CANCELLABLE_STATUSES:
        raise InvalidTransition(f'Cannot cancel an order that is {order.status}')
    now = timezone.now()
    with transaction.atomic():
        updated = Order.objects.filter(
            pk=order.pk,
            status=order.status,
            assigned_rider_id=order.assigned_rider_id,
        ).update(
            status=OrderStatus.CANCELLED,
            cancelled_at=now,
            assigned_rider=None,
            assigned_rider_name='',
            assigned_rider_email='',
            updated_at=now,
        )
        if not updated:
            raise InvalidTransition('Order status changed; reload and try again')
        if order.assigned_rider_id:
            Rider.objects.filter(
                pk=order.assigned_rider_id, work_status=WorkStatus.IN_DELIVERY
            ).update(work_status=WorkStatus.AVAILABLE, updated_at=now)
    return _after_transition(order.pk, 'cancelled')


def assign_rider(caller, order_id, rider_id, rider_name=None, rider_email=None):
    """Admin: not_assigned -> assigned; the rider goes in_delivery in the same transaction."""
    caller.require(Role.ADMIN)
    order = get_order(order_id)
    rider = get_rider(rider_id)
    if rider_email and normalize_email(rider_email) != rider.email.lower():
        raise ValidationError('Rider email does not match the rider')
    if order.status != OrderStatus.NOT_ASSIGNED:
        raise InvalidTransition(f'Cannot assign a rider to an order that is {order.status}')
    if rider.status != RiderStatus.ACTIVE:
        raise Conflict('Rider is not active')
    now = timezone.now()
    with transaction.atomic():
        updated = Order.objects.filter(
            pk=order.pk, status=OrderStatus.NOT_ASSIGNED
        ).update(
            status=OrderStatus.ASSIGNED,
            assigned_rider=rider,
            assigned_rider_name=rider_name or rider.name,
            assigned_rider_email=rider.email.lower(),
            assigned_at=now,
            updated_at=now,
        )
        if not updated:
            raise InvalidTransition('Order is no longer awaiting a rider')
        taken = Rider.objects.filter(
            pk=rider.pk, status=RiderStatus.ACTIVE, work_status=WorkStatus.AVAILABLE
        ).update(work_status=WorkStatus.IN_DELIVERY, updated_at=now)
        if not taken:
            raise Conflict('Rider is already on a delivery')
    return _after_transition(order.pk, 'assigned')


def mark_picked(caller, order_id):
    """Assigned rider: assigned -> picked."""
    caller.require(Role.RIDER)
    order = get_order(order_id)
    _require_assigned_rider(order, caller)
    if order.status != OrderStatus.ASSIGNED:
        raise InvalidTransition(f'Cannot pick up an order that is {order.status}')
    now = timezone.now()
    updated = Order.objects.filter(
        pk=order.pk, status=OrderStatus.ASSIGNED, assigned_rider_email=order.assigned_rider_email
    ).update(status=OrderStatus.PICKED, picked_at=now, updated_at=now)
    if not updated:
        raise InvalidTransition('Order status changed; reload and try again')
    return _after_transition(order.pk, 'picked')


def mark_delivered(caller, order_id):
    """Assigned rider: picked -> delivered; the rider becomes available again."""
    caller.require(Role.RIDER)
    order = get_order(order_id)
    _require_assigned_rider(order, caller)
    if order.status != OrderStatus.PICKED:
        raise InvalidTransition(f'Cannot deliver an order that is {order.status}')
    now = timezone.now()
    with transaction.atomic():
        rider = (
            Rider.objects.select_for_update()
            .filter(pk=order.assigned_rider_id)
            .first()
        )
        if rider is None or rider.work_status != WorkStatus.IN_DELIVERY:
            raise InvalidTransition('Rider is not on a delivery')
        updated = Order.objects.filter(
            pk=order.pk, status=OrderStatus.PICKED, assigned_rider_email=order.assigned_rider_email
        ).update(status=OrderStatus.DELIVERED, delivered_at=now, updated_at=now)
        if not updated:
            raise InvalidTransition('Order status changed; reload and try again')
        Rider.objects.filter(pk=rider.pk).update(
            work_status=WorkStatus.AVAILABLE, updated_at=now
        )
    return _after_transition(order.pk, 'delivered')


def update_delivery_status(caller, order_id, status):
    """Rider status endpoint: dispatch to pickup or delivery."""
    if status == OrderStatus.PICKED:
        return mark_picked(caller, order_id)
    if status == OrderStatus.DELIVERED:
        return mark_delivered(caller, order_id)
    raise ValidationError('status must be picked or delivered')


def cashout(caller, order_id):
    """Assigned rider: pending -> cashed_out, once, on a delivered order."""
    caller.require(Role.RIDER)
    order = get_order(order_id)
    _require_assigned_rider(order, caller)
    if order.status != OrderStatus.DELIVERED:
        raise InvalidTransition('Only delivered orders can be cashed out')
    now = timezone.now()
    updated = Order.objects.filter(
        pk=order.pk,
        status=OrderStatus.DELIVERED,
        cashout_status=CashoutStatus.PENDING,
        assigned_rider_email=order.assigned_rider_email,
    ).update(cashout_status=CashoutStatus.CASHED_OUT, cashed_out_at=now, updated_at=now)
    if not updated:
        raise Conflict('Order is already cashed out')
    return _after_transition(order.pk, 'cashed_out')


# --- Riders ---


def expected_work_status(rider):
    """in_delivery iff an order assigned to rider is assigned or picked."""
    busy = Order.objects.filter(
        assigned_rider=rider, status__in=ACTIVE_DELIVERY_STATUSES
    ).exists()
    return WorkStatus.IN_DELIVERY if busy else WorkStatus.AVAILABLE


def reconcile_rider_work_status(rider):
    """Recompute work_status from active assignments. Returns the resulting status."""
    target = expected_work_status(rider)
    if rider.work_status != target:
        Rider.objects.filter(pk=rider.pk).update(work_status=target, updated_at=timezone.now())
        logger.warning(
            'Rider %s work status %s did not match assignments; set to %s',
            rider.pk, rider.work_status, target,
        )
        rider.work_status = target
    return target


def apply_as_rider(caller, data):
    """Customer applies to become a rider; one application per email."""
    caller.require(Role.CUSTOMER)
    if Rider.objects.filter(email__iexact=caller.email).exists():
        raise Conflict('You have already applied.')
    name = (data.get('name') or '').strip()
    phone = (data.get('phone') or '').strip()
    if not name or not phone:
        raise ValidationError('name and phone required')
    age = data.get('age')
    try:
        age = int(age) if age not in (None, '') else None
    except (TypeError, ValueError):
        raise ValidationError('Invalid age')
    rider = Rider.objects.create(
        user_id=caller.user_id,
        name=name,
        email=caller.email,
        phone=phone,
        age=age,
        district=(data.get('district') or '').strip(),
        thana=(data.get('thana') or '').strip(),
        region=(data.get('region') or '').strip(),
        vehicle=(data.get('vehicle') or '').strip(),
    )
    logger.info('Rider application %s from %s', rider.pk, rider.email)
    return rider


def set_rider_status(caller, rider_id, status=RiderStatus.ACTIVE):
    """
    Admin approval. Activating stamps active_at, derives work status from
    assignments, promotes the linked user to the rider role and notifies the rider.
    """
    caller.require(Role.ADMIN)
    if status not in RiderStatus.values:
        raise ValidationError('Invalid rider status')
    rider = get_rider(rider_id)
    was_active = rider.status == RiderStatus.ACTIVE
    now = timezone.now()
    with transaction.atomic():
        fields = {'status': status, 'updated_at': now}
        if status == RiderStatus.ACTIVE and not was_active:
            fields['active_at'] = now
        Rider.objects.filter(pk=rider.pk).update(**fields)
        if status == RiderStatus.ACTIVE:
            user = rider.user or User.objects.filter(email__iexact=rider.email).first()
            if user is not None:
                if user.role == Role.CUSTOMER:
                    user.role = Role.RIDER
                    user.save(update_fields=['role', 'updated_at'])
                if rider.user_id is None:
                    Rider.objects.filter(pk=rider.pk).update(user=user)
        rider.refresh_from_db()
        reconcile_rider_work_status(rider)
    logger.info('Rider %s status set to %s', rider.pk, status)
    if status == RiderStatus.ACTIVE and not was_active:
        notify.fan_out('rider_approved', rider.pk, {'rider': rider.email})
    return rider


def delete_rider_application(caller, rider_id):
    """Admin removes a rider application that has not been approved."""
    caller.require(Role.ADMIN)
    rider = get_rider(rider_id)
    if rider.status != RiderStatus.PENDING:
        raise Conflict('Only pending applications can be deleted')
    rider.delete()


# --- Catalog broadcasts ---


def create_food(caller, data, added_by=None):
    """Admin adds a food item; everyone gets a broadcast about it."""
    caller.require(Role.ADMIN)
    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError('name required')
    food = Food.objects.create(
        name=name,
        category=(data.get('category') or '').strip(),
        description=(data.get('description') or '').strip(),
        price=parse_decimal(data.get('price'), 'price'),
        discount=parse_decimal(data.get('discount', 0), 'discount'),
        image=(data.get('image') or '').strip(),
        added_by=added_by,
    )
    notify.broadcast(NEW_FOOD_MESSAGE.format(name=food.name), food.pk)
    logger.info('Food %s added', food.pk)
    return food


def update_food(caller, food_id, data):
    """Admin edits a food item; a larger discount is broadcast."""
    caller.require(Role.ADMIN)
    try:
        food = Food.objects.get(pk=food_id)
    except Food.DoesNotExist:
        raise NotFound('Food not found')
    old_discount = food.discount
    for field in ('name', 'category', 'description', 'image'):
        if field in data:
            setattr(food, field, (data.get(field) or '').strip())
    if not food.name:
        raise ValidationError('name required')
    if 'price' in data:
        food.price = parse_decimal(data.get('price'), 'price')
    if 'discount' in data:
        food.discount = parse_decimal(data.get('discount'), 'discount')
    food.save()
    if food.discount > old_discount:
        notify.broadcast(FOOD_DISCOUNT_MESSAGE.format(name=food.name), food.pk)
    return food


def delete_food(caller, food_id):
    """Admin removes a food item. Foods that appear on an order are kept."""
    caller.require(Role.ADMIN)
    try:
        food = Food.objects.get(pk=food_id)
    except Food.DoesNotExist:
        raise NotFound('Food not found')
    try:
        food.delete()
    except ProtectedError:
        raise Conflict('Food is referenced by orders and cannot be deleted')
    logger.info('Food %s deleted', food_id)


# --- Reviews ---


def reviews_for_food(food_id):
    return Review.objects.filter(food_id=food_id)


def add_review(caller, data, user=None):
    """
    Any signed-in user reviews a food item. Needs food_id, rating (1-5) and
    comment; the reviewer's display name defaults to the account name.
    """
    try:
        food_id = int(data.get('food_id') or 0)
    except (TypeError, ValueError):
        food_id = 0
    comment = (data.get('comment') or '').strip()
    if not food_id or data.get('rating') in (None, '') or not comment:
        raise ValidationError('food_id, rating and comment are required')
    try:
        rating = int(data.get('rating'))
    except (TypeError, ValueError):
        raise ValidationError('Invalid rating')
    if not 1 <= rating <= 5:
        raise ValidationError('rating must be between 1 and 5')
    images = data.get('images') or []
    if not isinstance(images, list) or not all(isinstance(i, str) for i in images):
        raise ValidationError('images must be a list of URLs')
    food = Food.objects.filter(pk=food_id).first()
    if food is None:
        raise NotFound('Food not found')
    review = Review.objects.create(
        food=food,
        user=user,
        user_name=(data.get('user_name') or getattr(user, 'name', '') or '').strip(),
        user_photo=(data.get('user_photo') or '').strip(),
        rating=rating,
        comment=comment,
        images=images,
    )
    logger.info('Review %s added for food %s by %s', review.pk, food.pk, caller.email)
    return review
