"""Live order tracking over websockets."""
import logging

logger = logging.getLogger(__name__)


def tracking_group(order_id):
    return f'order_tracking_{order_id}'


def order_tracking_payload(order):
    return {
        'order_id': order.id,
        'status': order.status,
        'payment_status': order.payment_status,
        'cashout_status': order.cashout_status,
        'assigned_rider_name': order.assigned_rider_name or None,
    }


def push_order_update(order):
    """Push the order's current state to its tracking group. Failures are logged, not raised."""
    try:
        from asgiref.sync import async_to_sync
        from channels.layers import get_channel_layer
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return
        async_to_sync(channel_layer.group_send)(
            tracking_group(order.id),
            {'type': 'tracking.update', 'payload': order_tracking_payload(order)},
        )
    except Exception:
        logger.exception('Tracking push failed for order %s', order.id)
