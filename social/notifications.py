"""
Notification fan-out.

Notifications are written synchronously as a side effect of another
action. Creation failures are logged and swallowed so the triggering
action still succeeds.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from .models import Notification, User

logger = logging.getLogger(__name__)

BUCKET_TODAY = 'today'
BUCKET_YESTERDAY = 'yesterday'
BUCKET_THIS_WEEK = 'this_week'
BUCKET_EARLIER = 'earlier'


def actor_snapshot(user):
    """Display fields of the acting user, frozen at notification time"""
    return {
        "_id": user.pk,
        "full_name": user.full_name or "User",
        "avatar": user.profile_picture or None,
        "username": user.username or None,
    }


def notify(recipient_id, actor, notification_type, data=None):
    """
    Create a notification for recipient_id about something actor did.

    actor may be a User or a user id. Returns the Notification, or None
    when nothing was written (self-action, unknown actor, or failure).
    """
    actor_id = actor.pk if isinstance(actor, User) else actor
    if str(recipient_id) == str(actor_id):
        return None

    try:
        if not isinstance(actor, User):
            actor = User.objects.filter(pk=actor_id).first()
            if actor is None:
                logger.warning(f"Skipping {notification_type} notification: actor {actor_id} not found")
                return None

        notification = Notification.objects.create(
            user_id=recipient_id,
            actor=actor_snapshot(actor),
            type=notification_type,
            data=data or {},
        )
        logger.info(f"Notified {recipient_id} of {notification_type} by {actor_id}")
        return notification
    except Exception:
        logger.exception(f"Failed to create {notification_type} notification for {recipient_id}")
        return None


def mark_read(user_id, notification_id):
    """
    Mark one of the user's notifications as read.

    Notifications owned by someone else (or missing ones) are left alone
    and reported exactly like a success, so existence never leaks.
    """
    Notification.objects.filter(pk=notification_id, user_id=user_id).update(read=True)


def list_notifications(user_id, limit=None):
    limit = limit or getattr(settings, 'PINGUP_NOTIFICATION_LIMIT', 50)
    return list(Notification.objects.filter(user_id=user_id).order_by('-created_at', '-id')[:limit])


def bucket_for(created_at, now=None, tz=None):
    """
    Calendar bucket of a timestamp relative to now in the viewer's timezone.

    "this_week" means within the last seven calendar days (excluding today
    and yesterday), not the ISO week.
    """
    tz = tz or timezone.get_current_timezone()
    now = now or timezone.now()
    today = timezone.localtime(now, tz).date()
    day = timezone.localtime(created_at, tz).date()

    if day >= today:
        return BUCKET_TODAY
    if day == today - timedelta(days=1):
        return BUCKET_YESTERDAY
    if day > today - timedelta(days=7):
        return BUCKET_THIS_WEEK
    return BUCKET_EARLIER


def serialize_notification(notification, now=None, tz=None):
    return {
        "_id": notification.pk,
        "user": notification.user_id,
        "actor": notification.actor,
        "type": notification.type,
        "data": notification.data,
        "read": notification.read,
        "createdAt": notification.created_at.isoformat(),
        "bucket": bucket_for(notification.created_at, now, tz),
    }
