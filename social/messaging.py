"""
Messaging store: direct messages, conversations, unread counts.

Conversation order is the store-assigned id, ascending; created_at is the
display timestamp and never decides order. Unread counts are aggregated
from the seen flags on every call, never cached.
"""
import logging

from django.db.models import Count, Max, Q
from django.utils import timezone

from .errors import Forbidden, InvalidArgument, NotFound
from .models import Message, User

logger = logging.getLogger(__name__)

REPLY_UNAVAILABLE = "Original message unavailable"


def as_id(value, message):
    """Coerce a client-supplied message id, rejecting malformed ones"""
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(message)


def pair_filter(user_a_id, user_b_id):
    return (
        Q(from_user_id=user_a_id, to_user_id=user_b_id) |
        Q(from_user_id=user_b_id, to_user_id=user_a_id)
    )


def send(from_id, to_id, text="", media_url="", reply_to_id=None):
    """
    Store a new message and return it.

    A reply must point at an existing message of the same pair; anything
    else is rejected with NotFound.
    """
    text = (text or "").strip()
    media_url = media_url or ""

    if not to_id:
        raise InvalidArgument("Invalid users")
    if str(to_id) == str(from_id):
        raise InvalidArgument("Cannot message yourself")
    if not text and not media_url:
        raise InvalidArgument("Message text or image required")
    if not User.objects.filter(pk=to_id).exists():
        raise NotFound("Recipient not found")

    reply_to = None
    if reply_to_id:
        reply_to_id = as_id(reply_to_id, "Invalid reply reference")
        reply_to = Message.objects.filter(pair_filter(from_id, to_id), pk=reply_to_id).first()
        if reply_to is None:
            raise NotFound("Replied message not found in this conversation")

    message = Message.objects.create(
        from_user_id=from_id,
        to_user_id=to_id,
        text=text,
        message_type=Message.TYPE_IMAGE if media_url else Message.TYPE_TEXT,
        media_url=media_url,
        reply_to=reply_to,
        created_at=timezone.now(),
    )
    logger.info(f"Message {message.pk} sent from {from_id} to {to_id}")
    return message


def list_conversation(viewer_id, peer_id, since_id=None):
    """Messages of the pair in conversation order, optionally after since_id"""
    if not peer_id:
        raise InvalidArgument("Invalid user ids")

    messages = Message.objects.filter(pair_filter(viewer_id, peer_id))

    if since_id:
        # Ids only grow, so a poll never skips a message stored after since_id
        messages = messages.filter(id__gt=as_id(since_id, "Invalid since id"))

    return list(messages.order_by('id'))


def delete_message(requester_id, message_id):
    if not message_id:
        raise InvalidArgument("Message id required")
    message_id = as_id(message_id, "Invalid message id")

    message = Message.objects.filter(pk=message_id).first()
    if message is None:
        raise NotFound("Message not found")
    if str(message.from_user_id) != str(requester_id):
        raise Forbidden("Not allowed to delete")

    # Replies keep their reply_to id and render it as unavailable
    message.delete()
    logger.info(f"Message {message_id} deleted by {requester_id}")


def mark_seen(viewer_id, peer_id):
    """Read receipt: flag every unseen message from peer to viewer as seen"""
    if not peer_id:
        raise InvalidArgument("Target id required")
    return Message.objects.filter(from_user_id=peer_id, to_user_id=viewer_id, seen=False).update(seen=True)


def unread_counts(viewer_id):
    """[{peerId, count}] for every peer with unseen messages; zero counts are omitted"""
    rows = (
        Message.objects.filter(to_user_id=viewer_id, seen=False)
        .values('from_user_id')
        .annotate(count=Count('id'))
        .order_by('from_user_id')
    )
    return [{"peerId": row['from_user_id'], "count": row['count']} for row in rows]


def recent_messages(viewer_id):
    """Latest message with every peer, newest conversation first, with unread counts"""
    involved = Message.objects.filter(Q(from_user_id=viewer_id) | Q(to_user_id=viewer_id))

    latest_ids = []
    for peer_field, other_field in (('to_user_id', 'from_user_id'), ('from_user_id', 'to_user_id')):
        latest_ids.extend(
            involved.filter(**{other_field: viewer_id})
            .order_by()
            .values(peer_field)
            .annotate(last_id=Max('id'))
            .values_list('last_id', flat=True)
        )

    latest_by_peer = {}
    for message in Message.objects.filter(pk__in=latest_ids).select_related('from_user', 'to_user'):
        peer_id = message.to_user_id if message.from_user_id == viewer_id else message.from_user_id
        current = latest_by_peer.get(peer_id)
        if current is None or message.pk > current.pk:
            latest_by_peer[peer_id] = message

    unread = {item['peerId']: item['count'] for item in unread_counts(viewer_id)}
    ordered = sorted(latest_by_peer.items(), key=lambda kv: kv[1].pk, reverse=True)
    return [(peer_id, message, unread.get(peer_id, 0)) for peer_id, message in ordered]


# ============================================================================
# SERIALIZATION
# ============================================================================

def _reply_snapshot(reply_id, replies):
    original = replies.get(reply_id)
    if original is None:
        return {"_id": reply_id, "unavailable": True, "text": REPLY_UNAVAILABLE}
    return {
        "_id": original.pk,
        "from_user_id": original.from_user_id,
        "text": original.text,
        "message_type": original.message_type,
        "media_url": original.media_url,
        "createdAt": original.created_at.isoformat(),
    }


def serialize_messages(messages):
    """
    JSON-ready dicts for messages with their replyTo resolved.

    Replied-to messages are fetched in one query; ids that no longer exist
    render as an "unavailable" placeholder.
    """
    reply_ids = {m.reply_to_id for m in messages if m.reply_to_id}
    replies = Message.objects.in_bulk(reply_ids) if reply_ids else {}

    result = []
    for m in messages:
        result.append({
            "_id": m.pk,
            "from_user_id": m.from_user_id,
            "to_user_id": m.to_user_id,
            "text": m.text,
            "message_type": m.message_type,
            "media_url": m.media_url,
            "seen": m.seen,
            "replyTo": _reply_snapshot(m.reply_to_id, replies) if m.reply_to_id else None,
            "createdAt": m.created_at.isoformat(),
        })
    return result


def serialize_message(message):
    return serialize_messages([message])[0]
