"""
Notification fan-out.

Order, payment and rider transitions call fan_out() after their state write has
committed. Each insert runs in its own savepoint and failures are logged, never
raised: a lost notification must not undo the transition that caused it.
"""
import logging

from django.conf import settings
from django.db import DatabaseError, transaction

from marketplace.constants import ORDER_EVENT_MESSAGES
from marketplace.models import BroadcastRead, Notification, NotificationType
from marketplace.utils import normalize_email

logger = logging.getLogger(__name__)


def get_admin_recipient():
    """Email that receives admin-facing notifications (settings.ADMIN_NOTIFICATION_EMAIL)."""
    return normalize_email(settings.ADMIN_NOTIFICATION_EMAIL)


def notify_direct(email, message, related_id=''):
    """Insert one unread direct notification. Returns it, or None if the write failed."""
    email = normalize_email(email)
    if not email:
        logger.warning('Skipping direct notification without recipient: %s', message)
        return None
    try:
        with transaction.atomic():
            return Notification.objects.create(
                type=NotificationType.DIRECT,
                email=email,
                is_read=False,
                message=message,
                related_id=str(related_id or ''),
            )
    except DatabaseError:
        logger.exception('Failed to write notification for %s (related %s)', email, related_id)
        return None


def broadcast(message, related_id=''):
    """Insert one broadcast notification with an empty read-by set."""
    try:
        with transaction.atomic():
            return Notification.objects.create(
                type=NotificationType.BROADCAST,
                message=message,
                related_id=str(related_id or ''),
            )
    except DatabaseError:
        logger.exception('Failed to write broadcast notification (related %s)', related_id)
        return None


def fan_out(event, related_id, participants, **context):
    """
    Write one direct notification per participant for event.
    participants: {'customer': email, 'admin': email, 'rider': email}; the 'admin'
    key defaults to the configured admin recipient. Only participants that have
    a message for this event are notified. Returns the created notifications.
    """
    messages = ORDER_EVENT_MESSAGES[event]
    recipients = dict(participants)
    if 'admin' in messages:
        recipients.setdefault('admin', get_admin_recipient())
    created = []
    for participant, template in messages.items():
        email = recipients.get(participant)
        if not email:
            continue
        n = notify_direct(email, template.format(**context), related_id)
        if n is not None:
            created.append(n)
    return created


def is_read_for(notification, email, read_ids=None):
    """Read state as seen by email: flag for direct, read-by membership for broadcast."""
    if notification.type == NotificationType.DIRECT:
        return notification.is_read
    if read_ids is not None:
        return notification.id in read_ids
    return notification.reads.filter(email=normalize_email(email)).exists()


def notifications_for(email):
    """
    All notifications visible to email (its direct ones plus every broadcast),
    newest first, as (notification, is_read) pairs.
    """
    email = normalize_email(email)
    qs = Notification.objects.filter(
        type=NotificationType.DIRECT, email=email
    ) | Notification.objects.filter(type=NotificationType.BROADCAST)
    read_ids = set(
        BroadcastRead.objects.filter(email=email).values_list('notification_id', flat=True)
    )
    return [
        (n, is_read_for(n, email, read_ids))
        for n in qs.order_by('-created_at', '-id')
    ]


def mark_all_read(email):
    """
    Mark every unread direct notification of email as read and add email to the
    read-by set of every broadcast. Idempotent. Returns (direct_updated, broadcast_updated).
    """
    email = normalize_email(email)
    with transaction.atomic():
        direct_updated = Notification.objects.filter(
            type=NotificationType.DIRECT, email=email, is_read=False
        ).update(is_read=True)
        unread_broadcasts = Notification.objects.filter(
            type=NotificationType.BROADCAST
        ).exclude(reads__email=email).values_list('id', flat=True)
        broadcast_updated = 0
        for nid in list(unread_broadcasts):
            # A concurrent read-all may insert the row first; only count our own.
            _, created = BroadcastRead.objects.get_or_create(notification_id=nid, email=email)
            broadcast_updated += created
    return direct_updated, broadcast_updated
