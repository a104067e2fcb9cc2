"""
WebSocket consumer for live order tracking. Clients subscribe by order id; the
server pushes status changes as the order moves through its lifecycle.
"""
import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from rest_framework.authtoken.models import Token

from marketplace.models import Order
from marketplace.permissions import resolve_caller
from marketplace.tracking import tracking_group

logger = logging.getLogger(__name__)


def can_track_order(order_id, caller):
    """The order's customer, its assigned rider, or an admin may follow it."""
    if caller is None:
        return False
    try:
        order = Order.objects.get(pk=order_id)
    except Order.DoesNotExist:
        return False
    if caller.is_admin:
        return True
    if caller.is_rider:
        return order.assigned_rider_email.lower() == caller.email
    return order.customer_email.lower() == caller.email


@database_sync_to_async
def authenticate_and_check_access(order_id, token_key):
    """Resolve token to a caller and check it can follow this order. Returns (ok, error)."""
    try:
        token = Token.objects.select_related('user').get(key=token_key)
    except Token.DoesNotExist:
        return False, 'Invalid token'
    if not can_track_order(order_id, resolve_caller(token.user)):
        return False, 'Forbidden'
    return True, None


class OrderTrackingConsumer(AsyncJsonWebsocketConsumer):
    """URL: /ws/orders/<order_id>/?token=..."""

    async def connect(self):
        self.order_id = self.scope['url_route']['kwargs'].get('order_id')
        params = parse_qs(self.scope.get('query_string', b'').decode())
        token = (params.get('token') or [''])[0]
        if not token:
            await self.close(code=4001)
            return
        ok, err = await authenticate_and_check_access(int(self.order_id), token)
        if not ok:
            logger.info('Tracking subscription to order %s refused: %s', self.order_id, err)
            await self.close(code=4003)
            return
        self.group_name = tracking_group(self.order_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def tracking_update(self, event):
        await self.send_json(event.get('payload', {}))
