from datetime import timedelta

import pytest
from django.db import DatabaseError
from django.utils import timezone

from social import presence
from social.models import User


@pytest.mark.parametrize("age, online", [
    (timedelta(seconds=0), True),
    (timedelta(seconds=119), True),
    (timedelta(seconds=120), True),
    (timedelta(seconds=121), False),
    (timedelta(days=1), False),
])
def test_is_online_window(age, online):
    now = timezone.now()
    assert presence.is_online(now - age, now) is online


def test_never_active_is_offline():
    assert presence.is_online(None) is False


def test_online_window_follows_settings(settings):
    settings.PINGUP_ONLINE_WINDOW_SECONDS = 10
    now = timezone.now()

    assert presence.is_online(now - timedelta(seconds=11), now) is False


@pytest.mark.django_db
def test_touch_records_activity_and_throttles(alice):
    now = timezone.now()

    assert presence.touch(alice.pk, now) is True
    alice.refresh_from_db()
    assert alice.last_active_at == now
    assert alice.is_online is True

    assert presence.touch(alice.pk, now + timedelta(seconds=10)) is False
    alice.refresh_from_db()
    assert alice.last_active_at == now

    later = now + timedelta(seconds=31)
    assert presence.touch(alice.pk, later) is True
    alice.refresh_from_db()
    assert alice.last_active_at == later


@pytest.mark.django_db
def test_touch_only_writes_presence_column(alice):
    User.objects.filter(pk=alice.pk).update(bio="changed elsewhere")

    presence.touch(alice.pk)

    alice.refresh_from_db()
    assert alice.bio == "changed elsewhere"
    assert alice.last_active_at is not None


def test_touch_failure_is_swallowed(monkeypatch):
    class BrokenManager:
        def filter(self, **kwargs):
            raise DatabaseError("database is down")

    class BrokenUser:
        objects = BrokenManager()

    monkeypatch.setattr(presence, 'User', BrokenUser)

    assert presence.touch("user_alice") is False


@pytest.mark.django_db
def test_presence_snapshot(alice):
    now = timezone.now()
    alice.last_active_at = now - timedelta(minutes=5)

    snapshot = presence.presence_snapshot(alice, now)

    assert snapshot == {
        "_id": alice.pk,
        "full_name": "Alice Liddell",
        "username": "alice",
        "profile_picture": "",
        "bio": alice.bio,
        "isOnline": False,
    }
    assert presence.presence_snapshot(None) is None


@pytest.mark.django_db
def test_authenticated_request_touches_presence(alice, api_client):
    response = api_client(alice).get('/api/user/data')

    assert response.status_code == 200
    assert response.json()["user"]["isOnline"] is True
    alice.refresh_from_db()
    assert alice.last_active_at is not None
