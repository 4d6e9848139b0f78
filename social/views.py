import json
import logging
from functools import wraps

from django.db import DatabaseError
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from . import accounts, graph, messaging, notifications, scheduler
from .errors import InvalidArgument, PingUpError, Unavailable
from .forms import ProfileUpdateForm, SendMessageForm, first_error
from .identity import auth_required, verify_provider_event
from .media import upload_image
from .presence import presence_snapshot


# Logger
logger = logging.getLogger(__name__)


def api_view(view_func):
    """Turn core errors into {success: false, message} with the mapped status"""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except PingUpError as e:
            return JsonResponse({"success": False, "message": e.message}, status=e.status)
        except DatabaseError:
            logger.exception(f"{request.method} {request.path} storage error")
            err = Unavailable()
            return JsonResponse({"success": False, "message": err.message}, status=err.status)
    return wrapper


def _payload(request):
    if request.content_type == 'application/json':
        try:
            data = json.loads(request.body or b'{}')
        except ValueError:
            raise InvalidArgument("Malformed JSON body")
        if not isinstance(data, dict):
            raise InvalidArgument("Malformed JSON body")
        return data
    return request.POST


def _outcome_response(outcome):
    return JsonResponse({"success": outcome.success, "message": outcome.message})


# ============================================================================
# USER & SOCIAL GRAPH
# ============================================================================

@require_GET
@auth_required
@api_view
def user_data(request):
    return JsonResponse({"success": True, "user": graph.get_user_data(request.auth.user_id)})


@csrf_exempt
@require_POST
@auth_required
@api_view
def update_user(request):
    form = ProfileUpdateForm(request.POST, request.FILES)
    if not form.is_valid():
        raise InvalidArgument(first_error(form))

    fields = {
        name: form.cleaned_data[name]
        for name in graph.PROFILE_FIELDS
        if name in request.POST
    }
    profile = form.cleaned_data.get('profile')
    cover = form.cleaned_data.get('cover')

    user = graph.update_profile(
        request.auth.user_id,
        username=form.cleaned_data.get('username'),
        profile_picture=upload_image(profile, 'profile_pics') if profile else None,
        cover_photo=upload_image(cover, 'cover_photos') if cover else None,
        **fields
    )
    return JsonResponse({
        "success": True,
        "user": graph.serialize_user(user),
        "message": "Profile updated successfully",
    })


@csrf_exempt
@require_POST
@auth_required
@api_view
def follow(request):
    target_id = _payload(request).get('id')
    return _outcome_response(graph.follow(request.auth.user_id, target_id))


@csrf_exempt
@require_POST
@auth_required
@api_view
def unfollow(request):
    target_id = _payload(request).get('id')
    return _outcome_response(graph.unfollow(request.auth.user_id, target_id))


@csrf_exempt
@require_POST
@auth_required
@api_view
def connect(request):
    target_id = _payload(request).get('id')
    return _outcome_response(graph.request_connection(request.auth.user_id, target_id))


@csrf_exempt
@require_POST
@auth_required
@api_view
def accept(request):
    requester_id = _payload(request).get('id')
    return _outcome_response(graph.accept_connection(request.auth.user_id, requester_id))


@csrf_exempt
@require_POST
@auth_required
@api_view
def discover(request):
    users = graph.discover_users(request.auth.user_id, _payload(request).get('input'))
    return JsonResponse({"success": True, "users": users})


@csrf_exempt
@require_POST
@auth_required
@api_view
def profile(request):
    profile_id = _payload(request).get('profileId')
    return JsonResponse({"success": True, "profile": graph.get_profile(request.auth.user_id, profile_id)})


@require_GET
@auth_required
@api_view
def connections(request):
    payload = graph.list_connections(request.auth.user_id)
    return JsonResponse({"success": True, **payload})


@require_GET
@auth_required
@api_view
def recent_messages(request):
    now = timezone.now()
    items = []
    for peer_id, message, unread in messaging.recent_messages(request.auth.user_id):
        peer = message.to_user if message.to_user_id == peer_id else message.from_user
        data = messaging.serialize_message(message)
        data.update({
            "peer": presence_snapshot(peer, now),
            "unreadCount": unread,
        })
        items.append(data)
    return JsonResponse({"success": True, "messages": items})


# ============================================================================
# MESSAGING
# ============================================================================

@csrf_exempt
@require_POST
@auth_required
@api_view
def send_message(request):
    form = SendMessageForm(request.POST, request.FILES)
    if not form.is_valid():
        raise InvalidArgument(first_error(form))

    image = form.cleaned_data.get('image')
    message = messaging.send(
        request.auth.user_id,
        form.cleaned_data['to_user_id'],
        text=form.cleaned_data.get('text', ''),
        media_url=upload_image(image, 'message_media') if image else '',
        reply_to_id=form.cleaned_data.get('replyTo'),
    )
    return JsonResponse({"success": True, "message": messaging.serialize_message(message)})


@require_GET
@auth_required
@api_view
def conversation(request, user_id):
    msgs = messaging.list_conversation(
        request.auth.user_id,
        user_id,
        since_id=request.GET.get('since') or None,
    )
    return JsonResponse({"success": True, "messages": messaging.serialize_messages(msgs)})


@csrf_exempt
@require_POST
@auth_required
@api_view
def delete_message(request):
    messaging.delete_message(request.auth.user_id, _payload(request).get('id'))
    return JsonResponse({"success": True, "message": "Message deleted"})


@csrf_exempt
@require_POST
@auth_required
@api_view
def mark_seen(request):
    updated = messaging.mark_seen(request.auth.user_id, _payload(request).get('id'))
    return JsonResponse({"success": True, "updated": updated})


@require_GET
@auth_required
@api_view
def unread_counts(request):
    return JsonResponse({"success": True, "items": messaging.unread_counts(request.auth.user_id)})


# ============================================================================
# NOTIFICATIONS
# ============================================================================

@require_GET
@auth_required
@api_view
def notification_list(request):
    now = timezone.now()
    notifs = notifications.list_notifications(request.auth.user_id)
    return JsonResponse({
        "success": True,
        "notifications": [notifications.serialize_notification(n, now) for n in notifs],
    })


@csrf_exempt
@require_POST
@auth_required
@api_view
def notification_read(request, notification_id):
    notifications.mark_read(request.auth.user_id, notification_id)
    return JsonResponse({"success": True})


# ============================================================================
# IDENTITY PROVIDER EVENTS
# ============================================================================

PROVIDER_EVENTS = {
    'user.created': scheduler.USER_CREATED,
    'user.updated': scheduler.USER_UPDATED,
    'user.deleted': scheduler.USER_DELETED,
}


@csrf_exempt
@require_POST
@api_view
def identity_events(request):
    """
    Receive signed user lifecycle events and queue the matching sync task.

    Answers 503 when the task could not be queued so the provider
    redelivers the event later.
    """
    event = verify_provider_event(request.body)
    kind = str(event.get('type', '')).replace('clerk/', '', 1)
    if kind not in PROVIDER_EVENTS:
        raise InvalidArgument(f"Unsupported event type {event.get('type')!r}")

    fields = accounts.user_fields_from_event(event.get('data'))
    if kind == 'user.deleted':
        payload = {"user_id": fields["user_id"]}
    else:
        payload = fields

    if not scheduler.schedule(PROVIDER_EVENTS[kind], payload):
        raise Unavailable("Could not queue event, retry later")

    logger.info(f"Queued {kind} for user {fields['user_id']}")
    return JsonResponse({"success": True})
