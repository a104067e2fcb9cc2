"""Notification texts and earning rules shared by services and stats."""
from decimal import Decimal

# Event kind -> participant -> message. '{rider_name}' etc. are filled from context.
ORDER_EVENT_MESSAGES = {
    'placed': {
        'customer': 'Your order is placed successfully.',
        'admin': 'New order is placed.',
    },
    'cancelled': {
        'customer': 'Your order is cancelled.',
        'admin': 'Order cancelled.',
    },
    'assigned': {
        'customer': 'Your order is assigned to rider: {rider_name}.',
        'admin': 'You assigned rider to a order successfully.',
        'rider': 'You are assigned for a order. Go to the outlet and pick the order.',
    },
    'picked': {
        'customer': 'Your order is picked by the rider.',
        'admin': 'A order is picked by a rider.',
        'rider': 'You picked a order.',
    },
    'delivered': {
        'customer': 'Your order is delivered.',
        'admin': 'A order is delivered by a rider.',
        'rider': 'You Delivered a order.',
    },
    'cashed_out': {
        'rider': 'You cashout your earnings for a order.',
        'admin': (
            'Rider cashout his earnings. Rider name: {rider_name}. '
            'Rider email: {rider_email}.'
        ),
    },
    'paid': {
        'customer': (
            'Your payment is successfully done. Go to my orders and you can '
            'download your reciept.'
        ),
        'admin': 'Get payment successfully.',
    },
    'rider_approved': {
        'rider': 'Your rider application is approved. You can now receive orders.',
    },
}

NEW_FOOD_MESSAGE = 'New food item: {name}.'
FOOD_DISCOUNT_MESSAGE = 'Discount added on food item: {name}.'

# Rider earning per delivered order when the order carries no delivery charge.
DEFAULT_EARNING_SINGLE_ITEM = Decimal('30')
DEFAULT_EARNING_MULTI_ITEM = Decimal('50')

GATEWAY_METHOD_SSLCOMMERZ = 'sslcommerz'
VALID_GATEWAY_STATUS = 'VALID'
