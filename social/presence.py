"""
Presence tracking.

touch() records activity and must never fail the calling request;
the online flag itself is derived at read time (see models.is_online).
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from .models import User, is_online

logger = logging.getLogger(__name__)

__all__ = ['touch', 'is_online', 'presence_snapshot']


def _throttle_key(user_id):
    return f"presence_touch_{user_id}"


def touch(user_id, now=None):
    """
    Record "now" as the user's last activity.

    Writes are throttled through the cache so a burst of polling requests
    costs one UPDATE per throttle interval. Returns True when a write
    happened.
    """
    now = now or timezone.now()
    throttle = getattr(settings, 'PINGUP_PRESENCE_THROTTLE_SECONDS', 30)
    key = _throttle_key(user_id)

    try:
        last_update = cache.get(key)
        if last_update and (now - last_update) < timedelta(seconds=throttle):
            return False

        # Only the presence column; never a full-row save
        User.objects.filter(pk=user_id).update(last_active_at=now)
        cache.set(key, now, throttle)
        return True
    except Exception:
        logger.warning(f"Failed to update last_active_at for user {user_id}", exc_info=True)
        return False


def presence_snapshot(user, now=None):
    """Public profile fields of a user plus the derived isOnline flag"""
    if user is None:
        return None
    return {
        "_id": user.pk,
        "full_name": user.full_name,
        "username": user.username,
        "profile_picture": user.profile_picture,
        "bio": user.bio,
        "isOnline": is_online(user.last_active_at, now),
    }
