"""Dashboard numbers for customers, riders and admins."""
from decimal import Decimal

from django.db.models import Count, Sum

from marketplace.constants import DEFAULT_EARNING_MULTI_ITEM, DEFAULT_EARNING_SINGLE_ITEM
from marketplace.models import (
    CashoutStatus,
    Food,
    Order,
    OrderStatus,
    PaymentStatus,
    Rider,
    RiderStatus,
    User,
)


def rider_earning(order, item_count=None):
    """Delivery charge, or the flat rate by item count when the order carries none."""
    if order.delivery_charge:
        return order.delivery_charge
    if item_count is None:
        item_count = order.items.count()
    return DEFAULT_EARNING_MULTI_ITEM if item_count > 1 else DEFAULT_EARNING_SINGLE_ITEM


def _earnings(qs):
    total = Decimal('0')
    for order in qs.annotate(item_count=Count('items')):
        total += rider_earning(order, order.item_count)
    return total


def _paid_total(qs):
    return qs.filter(payment_status=PaymentStatus.PAID).aggregate(s=Sum('total'))['s'] or Decimal('0')


def customer_stats(email):
    qs = Order.objects.filter(customer_email__iexact=email)
    return {
        'total_orders': qs.count(),
        'total_spent': str(_paid_total(qs)),
        'processing_orders': qs.filter(status=OrderStatus.NOT_ASSIGNED).count(),
        'dispatched_orders': qs.filter(status=OrderStatus.PICKED).count(),
        'completed_orders': qs.filter(status=OrderStatus.DELIVERED).count(),
        'cancelled_orders': qs.filter(status=OrderStatus.CANCELLED).count(),
    }


def rider_stats(email):
    qs = Order.objects.filter(assigned_rider_email__iexact=email)
    delivered = qs.filter(status=OrderStatus.DELIVERED)
    return {
        'total_orders': qs.count(),
        'pending_orders': qs.filter(status=OrderStatus.ASSIGNED).count(),
        'picked_orders': qs.filter(status=OrderStatus.PICKED).count(),
        'completed_orders': delivered.count(),
        'total_earnings': str(_earnings(delivered)),
        'cashout_money': str(_earnings(delivered.filter(cashout_status=CashoutStatus.CASHED_OUT))),
        'pending_cashout': str(_earnings(delivered.filter(cashout_status=CashoutStatus.PENDING))),
    }


def admin_stats():
    orders = Order.objects.all()
    return {
        'total_users': User.objects.count(),
        'total_riders': Rider.objects.filter(status=RiderStatus.ACTIVE).count(),
        'pending_riders': Rider.objects.filter(status=RiderStatus.PENDING).count(),
        'total_foods': Food.objects.count(),
        'total_orders': orders.count(),
        'total_payments': str(_paid_total(orders)),
        'processing_orders': orders.filter(status=OrderStatus.NOT_ASSIGNED).count(),
        'dispatched_orders': orders.filter(status=OrderStatus.PICKED).count(),
        'completed_orders': orders.filter(status=OrderStatus.DELIVERED).count(),
        'cancelled_orders': orders.filter(status=OrderStatus.CANCELLED).count(),
    }
