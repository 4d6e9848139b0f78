"""
Social graph store: follow edges, connection requests, mutual connections.

Every write is scoped to one user pair and runs inside a single
transaction, so a reader never sees only half of a two-sided change.
Expected states (already following, request pending, already connected)
come back as an Outcome, never as an exception.
"""
import logging
from collections import namedtuple
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from . import notifications, scheduler
from .errors import InvalidArgument, NotFound, RateLimited
from .models import ConnectionRequest, Follow, Notification, User, pair_key
from .presence import presence_snapshot

logger = logging.getLogger(__name__)

Outcome = namedtuple('Outcome', ['success', 'message'])

PROFILE_FIELDS = ('full_name', 'bio', 'location')


def get_user(user_id, message="User not found"):
    try:
        return User.objects.get(pk=user_id)
    except User.DoesNotExist:
        raise NotFound(message)


def _require_target(actor_id, target_id, verb):
    if not target_id:
        raise InvalidArgument("Target id required")
    if str(target_id) == str(actor_id):
        raise InvalidArgument(f"Cannot {verb} yourself")


# ============================================================================
# FOLLOW / UNFOLLOW
# ============================================================================

def follow(actor_id, target_id):
    _require_target(actor_id, target_id, "follow")
    actor = get_user(actor_id)
    target = get_user(target_id, "Target user not found")

    try:
        with transaction.atomic():
            Follow.objects.create(follower=actor, followed=target)
    except IntegrityError:
        # The unique edge constraint decides, also under concurrent follows
        return Outcome(True, "You are already following this user")

    logger.info(f"User {actor.pk} followed user {target.pk}")
    notifications.notify(target.pk, actor, Notification.TYPE_FOLLOW)
    return Outcome(True, "Now you are following this user")


def unfollow(actor_id, target_id):
    if not target_id:
        raise InvalidArgument("Target id required")
    # Nobody follows themselves, so unfollowing yourself is a no-op
    deleted, _ = Follow.objects.filter(follower_id=actor_id, followed_id=target_id).delete()
    if deleted:
        logger.info(f"User {actor_id} unfollowed user {target_id}")
    return Outcome(True, "You are no longer following this user")


def followers_of(user_id):
    return User.objects.filter(following__followed_id=user_id)


def following_of(user_id):
    return User.objects.filter(followers__follower_id=user_id)


# ============================================================================
# CONNECTIONS
# ============================================================================

def request_connection(actor_id, target_id, now=None):
    """
    Ask target_id for a mutual connection.

    Raises RateLimited once the actor created the configured number of
    requests inside the rolling window.
    """
    _require_target(actor_id, target_id, "connect with")
    now = now or timezone.now()
    limit = getattr(settings, 'PINGUP_CONNECTION_REQUEST_LIMIT', 20)
    window = timedelta(hours=getattr(settings, 'PINGUP_CONNECTION_REQUEST_WINDOW_HOURS', 24))

    get_user(target_id, "Target user not found")

    with transaction.atomic():
        # Serializes concurrent requests by the same actor
        actor = User.objects.select_for_update().filter(pk=actor_id).first()
        if actor is None:
            raise NotFound("User not found")

        recent = ConnectionRequest.objects.filter(
            from_user_id=actor_id,
            created_at__gt=now - window,
        ).count()
        if recent >= limit:
            raise RateLimited(
                f"You have sent more than {limit} connection requests in the last 24 hours"
            )

        try:
            with transaction.atomic():
                request = ConnectionRequest.objects.create(
                    from_user_id=actor_id,
                    to_user_id=target_id,
                    created_at=now,
                )
        except IntegrityError:
            # The pair already has a request, from either side
            existing = ConnectionRequest.objects.filter(pair_key=pair_key(actor_id, target_id)).first()
            if existing is None:
                raise
            return _existing_request_outcome(existing)

    logger.info(f"User {actor_id} requested a connection with {target_id}")
    scheduler.schedule(scheduler.CONNECTION_REQUESTED, {"request_id": request.pk})
    return Outcome(True, "Connection request sent successfully")


def _existing_request_outcome(request):
    if request.status == ConnectionRequest.STATUS_ACCEPTED:
        return Outcome(True, "You are already connected with this user")
    return Outcome(True, "Connection request pending")


def accept_connection(accepter_id, requester_id):
    if not requester_id:
        raise InvalidArgument("Target id required")

    with transaction.atomic():
        request = (
            ConnectionRequest.objects.select_for_update()
            .filter(from_user_id=requester_id, to_user_id=accepter_id)
            .first()
        )
        if request is None:
            return Outcome(False, "Connection request not found")
        if request.status == ConnectionRequest.STATUS_ACCEPTED:
            return Outcome(True, "You are already connected with this user")

        accepter = get_user(accepter_id)
        get_user(requester_id, "Target user not found")

        # Symmetric m2m: one add() writes both directions
        accepter.connections.add(requester_id)
        request.status = ConnectionRequest.STATUS_ACCEPTED
        request.save(update_fields=['status'])

    logger.info(f"User {accepter_id} accepted connection from {requester_id}")
    return Outcome(True, "Connection accepted successfully")


def pending_requesters(user_id):
    return User.objects.filter(
        sent_connection_requests__to_user_id=user_id,
        sent_connection_requests__status=ConnectionRequest.STATUS_PENDING,
    )


def list_connections(user_id, now=None):
    """Followers, following, connections and pending requesters, each with isOnline"""
    user = get_user(user_id)
    now = now or timezone.now()

    def shape(queryset):
        return [presence_snapshot(u, now) for u in queryset.order_by('username')]

    return {
        "followers": shape(followers_of(user.pk)),
        "following": shape(following_of(user.pk)),
        "connections": shape(user.connections.all()),
        "pendingConnections": shape(pending_requesters(user.pk)),
    }


# ============================================================================
# PROFILE
# ============================================================================

def serialize_user(user, now=None):
    data = presence_snapshot(user, now)
    data.update({
        "email": user.email,
        "cover_photo": user.cover_photo,
        "location": user.location,
        "timezone": user.timezone,
        "followers": list(user.followers.values_list('follower_id', flat=True)),
        "following": list(user.following.values_list('followed_id', flat=True)),
        "connections": list(user.connections.values_list('pk', flat=True)),
    })
    return data


def get_user_data(user_id):
    return serialize_user(get_user(user_id))


def get_profile(viewer_id, profile_id, now=None):
    """
    Public view of another user's profile.

    Carries relationship counts and the viewer's own relationship to the
    profile owner; e-mail stays private.
    """
    if not profile_id:
        raise InvalidArgument("profileId required")
    user = get_user(profile_id, "Profile not found")

    data = presence_snapshot(user, now)
    data.update({
        "cover_photo": user.cover_photo,
        "location": user.location,
        "followers_count": user.followers.count(),
        "following_count": user.following.count(),
        "connections_count": user.connections.count(),
        "isFollowing": Follow.objects.filter(follower_id=viewer_id, followed_id=user.pk).exists(),
        "isConnected": user.connections.filter(pk=viewer_id).exists(),
    })
    return data


def discover_users(viewer_id, query, now=None):
    """
    Case-insensitive search over username, e-mail, full name and location.

    A blank or non-string query finds nobody; the viewer is never listed.
    """
    if not isinstance(query, str) or not query.strip():
        return []
    query = query.strip()

    matches = (
        User.objects.filter(
            Q(username__icontains=query)
            | Q(email__icontains=query)
            | Q(full_name__icontains=query)
            | Q(location__icontains=query)
        )
        .exclude(pk=viewer_id)
        .order_by('username')
    )
    results = []
    for user in matches:
        data = presence_snapshot(user, now)
        data["location"] = user.location
        results.append(data)
    return results


def update_profile(user_id, username=None, profile_picture=None, cover_photo=None, **fields):
    """
    Update the caller's profile.

    A requested username that already belongs to someone else is ignored
    and the previous one kept; the remaining fields are still applied.
    """
    user = get_user(user_id)
    update_fields = []

    username = (username or "").strip()
    if username and username != user.username:
        if User.objects.filter(username__iexact=username).exclude(pk=user.pk).exists():
            logger.info(f"Username {username!r} taken, keeping {user.username!r} for {user.pk}")
        else:
            user.username = username
            update_fields.append('username')

    for name in PROFILE_FIELDS:
        value = fields.get(name)
        if value is not None:
            setattr(user, name, value)
            update_fields.append(name)

    if profile_picture:
        user.profile_picture = profile_picture
        update_fields.append('profile_picture')
    if cover_photo:
        user.cover_photo = cover_photo
        update_fields.append('cover_photo')

    if update_fields:
        user.save(update_fields=update_fields)
    return user


# ============================================================================
# REPAIR
# ============================================================================

def reconcile_graph():
    """
    Restore connection symmetry.

    Adds missing reverse rows of the connections table and the connection
    pair of every accepted request. Returns the number of pairs repaired.
    """
    through = User.connections.through
    repaired = 0

    edges = set(through.objects.values_list('from_user_id', 'to_user_id'))
    for a, b in sorted(edges):
        if (b, a) not in edges:
            with transaction.atomic():
                through.objects.get_or_create(from_user_id=b, to_user_id=a)
            edges.add((b, a))
            repaired += 1
            logger.warning(f"Repaired missing connection {b} -> {a}")

    accepted = ConnectionRequest.objects.filter(status=ConnectionRequest.STATUS_ACCEPTED)
    for a, b in accepted.values_list('from_user_id', 'to_user_id'):
        if (a, b) not in edges or (b, a) not in edges:
            with transaction.atomic():
                User.objects.get(pk=a).connections.add(b)
            edges.update({(a, b), (b, a)})
            repaired += 1
            logger.warning(f"Repaired connection for accepted request {a} <-> {b}")

    return repaired
