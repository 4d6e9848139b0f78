import jwt
import pytest
from django.conf import settings
from django.test import Client

from social import accounts, graph, messaging, notifications, scheduler, tasks
from social.errors import InvalidArgument
from social.models import ConnectionRequest, Follow, Message, Notification, User

pytestmark = pytest.mark.django_db


def test_provision_user_creates_account():
    user = accounts.provision_user("ext_123", "jane.doe@example.com", "Jane", "Doe", "https://img.example.com/j.png")

    assert user.pk == "ext_123"
    assert user.username == "jane.doe"
    assert user.full_name == "Jane Doe"
    assert user.profile_picture == "https://img.example.com/j.png"
    assert user.has_usable_password() is False


def test_provision_user_is_idempotent():
    first = accounts.provision_user("ext_123", "jane@example.com", "Jane")
    second = accounts.provision_user("ext_123", "other@example.com", "Other")

    assert first.pk == second.pk
    assert second.email == "jane@example.com"
    assert User.objects.count() == 1


def test_username_collision_gets_suffix(alice):
    user = accounts.provision_user("ext_9", "alice@elsewhere.org")

    assert user.username != "alice"
    assert user.username.startswith("alice")
    assert user.username[len("alice"):].isdigit()


def test_sync_user(alice):
    assert accounts.sync_user(alice.pk, "new@example.com", "Alice", "Kingsleigh") is True

    alice.refresh_from_db()
    assert alice.email == "new@example.com"
    assert alice.full_name == "Alice Kingsleigh"
    assert accounts.sync_user("ext_missing", "x@example.com") is False


def test_delete_user_cascades(alice, bob, carol):
    graph.follow(alice.pk, bob.pk)
    graph.follow(bob.pk, alice.pk)
    graph.request_connection(alice.pk, carol.pk)
    graph.request_connection(bob.pk, alice.pk)
    graph.accept_connection(alice.pk, bob.pk)
    messaging.send(alice.pk, bob.pk, text="bye")
    notifications.notify(carol.pk, alice, Notification.TYPE_LIKE)

    assert accounts.delete_user(alice.pk) is True

    assert not Follow.objects.exists()
    assert not ConnectionRequest.objects.exists()
    assert not Message.objects.exists()
    assert not bob.connections.exists()
    assert not Notification.objects.filter(user_id=alice.pk).exists()
    # Notifications alice triggered for others keep their snapshot
    assert Notification.objects.get(user=carol).actor["username"] == "alice"
    assert accounts.delete_user(alice.pk) is False


def test_identity_sync_tasks():
    created = tasks.sync_user_created("ext_42", "sam@example.com", "Sam", "Vimes")
    assert created == {"success": True, "userId": "ext_42"}

    updated = tasks.sync_user_updated("ext_42", "sam@watch.example.com", "Sam", "Vimes")
    assert updated == {"success": True, "userId": "ext_42"}
    assert User.objects.get(pk="ext_42").email == "sam@watch.example.com"

    deleted = tasks.sync_user_deleted.delay("ext_42")
    assert deleted.get() == {"success": True, "userId": "ext_42"}
    assert not User.objects.exists()


# ============================================================================
# IDENTITY PROVIDER EVENTS
# ============================================================================

def signed_event(event_type, data, secret=None):
    payload = {"type": event_type, "data": data}
    return jwt.encode(payload, secret or settings.PINGUP_WEBHOOK_SECRET, algorithm='HS256')


def post_event(body):
    return Client().post('/api/identity/events', body, content_type='application/jose')


SAM = {
    "id": "ext_sam",
    "first_name": "Sam",
    "last_name": "Vimes",
    "image_url": "https://img.example.com/sam.png",
    "email_addresses": [{"email_address": "sam@watch.example.com"}],
}


def test_user_fields_from_event():
    assert accounts.user_fields_from_event(SAM) == {
        "user_id": "ext_sam",
        "email": "sam@watch.example.com",
        "first_name": "Sam",
        "last_name": "Vimes",
        "image_url": "https://img.example.com/sam.png",
    }
    assert accounts.user_fields_from_event({"id": 7})["email"] == ""
    with pytest.raises(InvalidArgument):
        accounts.user_fields_from_event({"first_name": "Nobody"})


def test_created_event_provisions_a_user_who_can_then_sign_in(make_token):
    response = post_event(signed_event("user.created", SAM))

    assert response.status_code == 200
    assert response.json() == {"success": True}
    user = User.objects.get(pk="ext_sam")
    assert user.username == "sam"
    assert user.full_name == "Sam Vimes"

    token = make_token("ext_sam")
    me = Client(HTTP_AUTHORIZATION=f"Bearer {token}").get('/api/user/data')
    assert me.status_code == 200
    assert me.json()["user"]["_id"] == "ext_sam"


def test_updated_and_deleted_events():
    post_event(signed_event("clerk/user.created", SAM))

    changed = dict(SAM, last_name="Vimes-Ramkin")
    assert post_event(signed_event("user.updated", changed)).status_code == 200
    assert User.objects.get(pk="ext_sam").full_name == "Sam Vimes-Ramkin"

    assert post_event(signed_event("user.deleted", {"id": "ext_sam"})).status_code == 200
    assert not User.objects.filter(pk="ext_sam").exists()


def test_forged_event_is_rejected():
    forged = signed_event("user.created", SAM, secret="not-the-provider-secret-0123456789abcdef")

    response = post_event(forged)

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid event signature"}
    assert not User.objects.exists()
    assert post_event("not a token").status_code == 401


def test_unknown_event_type_is_bad_request():
    response = post_event(signed_event("session.created", SAM))

    assert response.status_code == 400
    assert not User.objects.exists()


def test_event_is_retried_when_queueing_fails(monkeypatch):
    monkeypatch.setattr(scheduler, 'schedule', lambda event, payload, delay=None: False)

    response = post_event(signed_event("user.created", SAM))

    assert response.status_code == 503
    assert not User.objects.exists()
