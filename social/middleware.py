"""
================================================================================
PINGUP - CUSTOM MIDDLEWARE
================================================================================

@file        middleware.py
@description Identity resolution, timezone activation and presence tracking
@version     1.0.0

MODULE PURPOSE
================================================================================
1. IdentityMiddleware
   - Resolves the caller's AuthContext (bearer token or admin session)
   - Stores it on request.auth for the API views

2. TimezoneMiddleware
   - Activates the user's timezone so notification buckets follow the
     viewer's calendar days
   - Falls back to UTC for anonymous users or invalid timezones

3. PresenceMiddleware
   - Records activity for every authenticated request
   - Throttled through the cache, never breaks the request

ORDERING
================================================================================
IdentityMiddleware must run after AuthenticationMiddleware (session
fallback) and before the other two, which read request.auth.

ERROR HANDLING
================================================================================
All three fail open: an unresolvable token yields an anonymous request,
a bad timezone falls back to UTC, a failed presence write is logged and
ignored.

================================================================================
"""

import logging

import pytz
from django.utils import timezone

from . import identity, presence
from .models import User

logger = logging.getLogger(__name__)


# ============================================================================
# IDENTITY MIDDLEWARE
# ============================================================================

class IdentityMiddleware:
    """
    Attach the caller's AuthContext as request.auth.

    request.auth is None when no valid identity was presented; views
    decorated with identity.auth_required answer those with 401.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.auth = identity.resolve(request)
        return self.get_response(request)


# ============================================================================
# TIMEZONE MIDDLEWARE
# ============================================================================

class TimezoneMiddleware:
    """
    Activate user-specific timezone for date bucketing.

    Error Handling:
        - pytz.UnknownTimeZoneError: Invalid timezone string -> Use UTC
        - Missing user row: Use UTC
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        auth = getattr(request, 'auth', None)
        tz_name = None
        if auth is not None:
            tz_name = User.objects.filter(pk=auth.user_id).values_list('timezone', flat=True).first()

        try:
            timezone.activate(pytz.timezone(tz_name) if tz_name else pytz.UTC)
        except pytz.UnknownTimeZoneError:
            timezone.activate(pytz.UTC)

        try:
            return self.get_response(request)
        finally:
            timezone.deactivate()


# ============================================================================
# PRESENCE TRACKING MIDDLEWARE
# ============================================================================

class PresenceMiddleware:
    """
    Update the caller's last_active_at with cache-based write throttling.

    Caching Strategy:
        Key: "presence_touch_{user_id}"
        TTL: PINGUP_PRESENCE_THROTTLE_SECONDS (30 seconds by default)

    With a two-minute online window and a 30 second throttle, a polling
    client (unread counts every ~15s) stays online with at most two
    writes per minute.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        auth = getattr(request, 'auth', None)
        if auth is not None:
            # touch() swallows and logs its own failures
            presence.touch(auth.user_id)
        return self.get_response(request)
