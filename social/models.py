"""
================================================================================
PINGUP - DATABASE MODELS
================================================================================

@file        models.py
@description Django ORM models for the social graph, messaging and notifications
@version     1.0.0

MODULE PURPOSE
================================================================================
This module defines the durable state of the PingUp core:
- User model (extended from AbstractUser, externally issued string id)
- Social graph (Follow edges, symmetric connections, ConnectionRequest)
- Direct messages with reply references and seen flags
- Notifications with a frozen actor snapshot

DATABASE STRUCTURE
================================================================================
1. User & Identity
   - User (AbstractUser extension, primary key = identity provider id)

2. Social Graph
   - Follow (one row per follower -> followed edge)
   - User.connections (symmetric self many-to-many)
   - ConnectionRequest (one row per unordered pair)

3. Messaging
   - Message (direct message between two users)

4. Notifications
   - Notification (denormalized activity alert)

MODEL RELATIONSHIPS
================================================================================
User (1) ──────> (N) Message (sent_messages / received_messages)
User (1) ──────> (N) Notification
User (N) <─────> (N) User (Follow, connections, ConnectionRequest)
Message (1) ────> (N) Message (replies, no database constraint)

CONSISTENCY NOTES
================================================================================
- A follow relationship is a single Follow row, so "A follows B" and
  "B lists A as follower" can never disagree.
- connections is symmetrical: adding B to A.connections writes both rows
  in one statement.
- ConnectionRequest.pair_key is unique, so two concurrent "connect"
  actions on the same pair cannot both create a request.
- Message.reply_to has no database constraint: deleting the original
  leaves the reply pointing at a missing row, which readers tolerate.

================================================================================
"""

from datetime import timedelta

import pytz
from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone as dj_timezone

# ============================================================================
# CONSTANTS & CHOICES
# ============================================================================

"""
Timezone choices for user preference selection.
Uses all available timezones from pytz library.
"""
TIMEZONE_CHOICES = [(tz, tz) for tz in pytz.all_timezones]

DEFAULT_BIO = "Hey there! I am using PingUp."


def pair_key(user_a_id, user_b_id):
    """Order-independent key for an unordered pair of user ids."""
    low, high = sorted([str(user_a_id), str(user_b_id)])
    return f"{low}|{high}"


def is_online(last_active_at, now=None):
    """
    Derive the transient online flag from a last-activity timestamp.

    A user is online when last_active_at is set and no older than the
    configured window (two minutes by default). Never persisted.
    """
    if last_active_at is None:
        return False
    now = now or dj_timezone.now()
    window = timedelta(seconds=getattr(settings, 'PINGUP_ONLINE_WINDOW_SECONDS', 120))
    return now - last_active_at <= window


# ============================================================================
# SECTION 1: USER & IDENTITY
# ============================================================================

class User(AbstractUser):
    """
    Extended User model keyed by the identity provider's user id.

    Attributes:
        id (CharField): Opaque stable id issued by the identity provider
        full_name (CharField): Display name
        profile_picture (URLField): Avatar URL from the media service
        cover_photo (URLField): Cover image URL from the media service
        bio (TextField): Profile biography
        location (CharField): Free-form location
        timezone (CharField): Preferred timezone for calendar bucketing
        last_active_at (DateTimeField): Presence timestamp (nullable)
        connections (ManyToManyField): Accepted mutual connections

    Properties:
        is_online: True if active within the presence window

    Related Names:
        followers: Follow rows where this user is followed
        following: Follow rows where this user is the follower
        sent_messages / received_messages: Message rows
        sent_connection_requests / received_connection_requests
        notifications: Notification rows addressed to this user
    """

    id = models.CharField(
        primary_key=True,
        max_length=64,
        help_text="Stable user id issued by the identity provider"
    )

    # --- Profile Information ---
    full_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Display name"
    )
    profile_picture = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="Avatar URL"
    )
    cover_photo = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="Cover photo URL"
    )
    bio = models.TextField(
        max_length=500,
        blank=True,
        default=DEFAULT_BIO,
        help_text="Profile biography or description"
    )
    location = models.CharField(
        max_length=120,
        blank=True,
        default="",
        help_text="Free-form location"
    )
    timezone = models.CharField(
        max_length=100,
        choices=TIMEZONE_CHOICES,
        default='UTC',
        help_text="User's preferred timezone for display"
    )

    # --- Presence ---
    last_active_at = models.DateTimeField(
        null=True,
        blank=True,
        default=None,
        help_text="Last activity timestamp for online status"
    )

    # --- Social Graph ---
    connections = models.ManyToManyField(
        'self',
        symmetrical=True,
        blank=True,
        help_text="Accepted mutual connections"
    )

    @property
    def is_online(self):
        return is_online(self.last_active_at)

    def __str__(self):
        return self.username or self.id


# ============================================================================
# SECTION 2: SOCIAL GRAPH
# ============================================================================

class Follow(models.Model):
    """
    One-way follow edge.

    User A can follow User B without B following back. The same row is
    read as A.following and B.followers.

    Example:
        Follow.objects.create(follower=user_a, followed=user_b)
    """

    follower = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='following',
        help_text="User who is following"
    )
    followed = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='followers',
        help_text="User being followed"
    )
    created_at = models.DateTimeField(
        default=dj_timezone.now,
        help_text="When the follow happened"
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['follower', 'followed'], name='unique_follow_edge'),
        ]

    def __str__(self):
        return f"{self.follower_id} -> {self.followed_id}"


class ConnectionRequest(models.Model):
    """
    Pending or accepted proposal of a mutual connection.

    Transitions pending -> accepted only, by the recipient. At most one
    row exists per unordered pair, enforced by pair_key.
    """

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
    ]

    from_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sent_connection_requests',
        help_text="User who asked to connect"
    )
    to_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='received_connection_requests',
        help_text="User who may accept"
    )
    pair_key = models.CharField(
        max_length=140,
        unique=True,
        editable=False,
        help_text="Sorted 'a|b' key of the two user ids"
    )
    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
    )
    created_at = models.DateTimeField(
        default=dj_timezone.now,
        db_index=True,
        help_text="Creation timestamp (rate limit window)"
    )

    class Meta:
        indexes = [
            models.Index(fields=['from_user', 'created_at'], name='social_conn_from_us_6c1b2e_idx'),
            models.Index(fields=['to_user', 'status'], name='social_conn_to_user_3f9a41_idx'),
        ]

    def save(self, *args, **kwargs):
        self.pair_key = pair_key(self.from_user_id, self.to_user_id)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.from_user_id} -> {self.to_user_id} ({self.status})"


# ============================================================================
# SECTION 3: MESSAGING
# ============================================================================

class Message(models.Model):
    """
    Direct message between two users.

    Immutable after creation except for the seen flag. Conversation order
    is the auto-increment id, assigned by the database at insert time;
    created_at is only displayed, since app-server clocks can disagree.
    """

    TYPE_TEXT = 'text'
    TYPE_IMAGE = 'image'
    TYPE_CHOICES = [
        (TYPE_TEXT, 'Text'),
        (TYPE_IMAGE, 'Image'),
    ]

    from_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sent_messages',
        help_text="User who sent this message"
    )
    to_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='received_messages',
        help_text="User this message is addressed to"
    )
    text = models.TextField(
        blank=True,
        default="",
        help_text="Message text content"
    )
    message_type = models.CharField(
        max_length=10,
        choices=TYPE_CHOICES,
        default=TYPE_TEXT,
    )
    media_url = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="Image URL (only for image messages)"
    )
    seen = models.BooleanField(
        default=False,
        help_text="Read receipt flag"
    )
    reply_to = models.ForeignKey(
        'self',
        null=True,
        blank=True,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='replies',
        help_text="Message this one replies to (may dangle after deletion)"
    )
    created_at = models.DateTimeField(
        default=dj_timezone.now,
        db_index=True,
        help_text="Send time shown to users"
    )

    class Meta:
        ordering = ['id']
        indexes = [
            models.Index(fields=['to_user', 'seen'], name='social_mess_to_user_8d2c07_idx'),
            models.Index(fields=['from_user', 'to_user', 'created_at'], name='social_mess_from_us_b41e93_idx'),
        ]

    def __str__(self):
        return f"{self.from_user_id} to {self.to_user_id}: {self.text[:30]}"


# ============================================================================
# SECTION 4: NOTIFICATIONS
# ============================================================================

class Notification(models.Model):
    """
    Activity notification with a frozen actor snapshot.

    actor holds {"_id", "full_name", "avatar", "username"} as they were
    when the notification was created; it is not joined live.
    """

    TYPE_FOLLOW = 'follow'
    TYPE_COMMENT = 'comment'
    TYPE_LIKE = 'like'
    TYPE_SHARE = 'share'
    TYPE_CHOICES = [
        (TYPE_FOLLOW, 'Follow'),
        (TYPE_COMMENT, 'Comment'),
        (TYPE_LIKE, 'Like'),
        (TYPE_SHARE, 'Share'),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications',
        help_text="User receiving this notification"
    )
    actor = models.JSONField(
        default=dict,
        help_text="Snapshot of the acting user's display fields"
    )
    type = models.CharField(
        max_length=10,
        choices=TYPE_CHOICES,
        default=TYPE_COMMENT,
    )
    data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Opaque payload, e.g. {postId, commentId, text}"
    )
    read = models.BooleanField(
        default=False,
        help_text="Whether notification has been read"
    )
    created_at = models.DateTimeField(
        default=dj_timezone.now,
        db_index=True,
    )

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.type} for {self.user_id}"
