"""
================================================================================
PINGUP - URL CONFIGURATION
================================================================================
@file        urls.py
@description JSON API routing for the social graph, messaging and notifications
@version     1.0.0

URL STRUCTURE OVERVIEW
================================================================================
1. User & Social Graph (/api/user/...)
2. Messaging (/api/message/..., /api/messages/unread-counts)
3. Notifications (/api/notifications/...)
4. Identity provider events (/api/identity/events)

NAMING CONVENTIONS
================================================================================
URL names use underscore_case: <resource>_<action>.

SECURITY CONSIDERATIONS
================================================================================
- Every view requires a resolved identity (identity.auth_required),
  except the provider event hook, which verifies a signed body instead
- Ownership is checked in the core services, not in the URLconf
================================================================================
"""
from django.urls import path

from . import views

urlpatterns = [
    # ========================================================================
    # SECTION 1: USER & SOCIAL GRAPH
    # ========================================================================
    path("api/user/data", views.user_data, name="user_data"),
    path("api/user/update", views.update_user, name="user_update"),
    path("api/user/discover", views.discover, name="user_discover"),
    path("api/user/profile", views.profile, name="user_profile"),
    path("api/user/follow", views.follow, name="user_follow"),
    path("api/user/unfollow", views.unfollow, name="user_unfollow"),
    path("api/user/connect", views.connect, name="user_connect"),
    path("api/user/accept", views.accept, name="user_accept"),
    path("api/user/connections", views.connections, name="user_connections"),
    path("api/user/recent-messages", views.recent_messages, name="user_recent_messages"),

    # ========================================================================
    # SECTION 2: MESSAGING
    # ========================================================================
    path("api/message/send", views.send_message, name="message_send"),
    path(
        "api/message/conversation/<str:user_id>",
        views.conversation,
        name="message_conversation"
    ),  # Ascending by time, ?since=<messageId> for polling
    path("api/message/delete", views.delete_message, name="message_delete"),
    path("api/message/seen", views.mark_seen, name="message_seen"),
    path("api/messages/unread-counts", views.unread_counts, name="message_unread_counts"),

    # ========================================================================
    # SECTION 3: NOTIFICATIONS
    # ========================================================================
    path("api/notifications", views.notification_list, name="notification_list"),
    path(
        "api/notifications/<int:notification_id>/read",
        views.notification_read,
        name="notification_read"
    ),  # No-op when the notification belongs to someone else

    # ========================================================================
    # SECTION 4: IDENTITY PROVIDER EVENTS
    # ========================================================================
    path("api/identity/events", views.identity_events, name="identity_events"),  # Signed, no user identity
]
