from datetime import timedelta

import pytest
from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from django.test import Client

from social import identity
from social.models import Follow


@pytest.mark.parametrize("claims, expected", [
    ({"sub": "user_1"}, "user_1"),
    ({"userId": "user_2"}, "user_2"),
    ({"id": 42}, "42"),
    ({"_id": "user_3"}, "user_3"),
    ({"userId": "second", "sub": "first"}, "first"),
    ({"email": "x@example.com"}, None),
])
def test_user_id_from_claims(claims, expected):
    assert identity.user_id_from_claims(claims) == expected


@pytest.mark.parametrize("claim", ["sub", "userId", "_id"])
def test_resolve_bearer_token(rf, make_token, claim):
    request = rf.get('/', HTTP_AUTHORIZATION=f"Bearer {make_token('user_alice', claim=claim)}")

    assert identity.resolve(request) == identity.AuthContext("user_alice")


def test_resolve_rejects_bad_tokens(rf, make_token):
    expired = make_token('user_alice', expires_in=timedelta(seconds=-30))
    forged = make_token('user_alice', secret='not-the-server-secret-at-all-0123456789')

    for header in (
        f"Bearer {expired}",
        f"Bearer {forged}",
        "Bearer not-a-jwt",
        "Bearer ",
        f"Basic {make_token('user_alice')}",
    ):
        assert identity.resolve(rf.get('/', HTTP_AUTHORIZATION=header)) is None


@pytest.mark.django_db
def test_resolve_falls_back_to_session_user(rf, alice):
    request = rf.get('/')
    request.user = alice

    assert identity.resolve(request) == identity.AuthContext(alice.pk, via_session=True)


@pytest.mark.django_db
def test_bearer_header_wins_over_session(rf, alice):
    request = rf.get('/', HTTP_AUTHORIZATION="Bearer broken")
    request.user = alice

    assert identity.resolve(request) is None


def test_resolve_anonymous(rf):
    request = rf.get('/')
    assert identity.resolve(request) is None

    request.user = AnonymousUser()
    assert identity.resolve(request) is None


@pytest.mark.django_db
@pytest.mark.parametrize("method, path", [
    ("get", "/api/user/data"),
    ("get", "/api/user/connections"),
    ("get", "/api/messages/unread-counts"),
    ("get", "/api/notifications"),
    ("post", "/api/user/follow"),
    ("post", "/api/message/send"),
    ("post", "/api/notifications/1/read"),
])
def test_api_requires_identity(method, path):
    response = getattr(Client(), method)(path)

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Unauthorized"}


@pytest.mark.django_db
def test_expired_token_is_unauthenticated(alice, make_token):
    token = make_token(alice.pk, expires_in=timedelta(minutes=-5))

    response = Client(HTTP_AUTHORIZATION=f"Bearer {token}").get('/api/user/data')

    assert response.status_code == 401
    alice.refresh_from_db()
    assert alice.last_active_at is None


# ============================================================================
# CSRF FOR SESSION CALLERS
# ============================================================================

@pytest.mark.django_db
def test_session_post_without_csrf_token_is_rejected(alice, bob):
    client = Client(enforce_csrf_checks=True)
    client.force_login(alice)

    response = client.post('/api/user/follow', {'id': bob.pk})

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "CSRF verification failed"}
    assert not Follow.objects.exists()


@pytest.mark.django_db
def test_session_post_with_csrf_token_is_accepted(alice, bob):
    client = Client(enforce_csrf_checks=True)
    client.force_login(alice)
    secret = "a" * 32
    client.cookies[settings.CSRF_COOKIE_NAME] = secret

    response = client.post('/api/user/follow', {'id': bob.pk}, HTTP_X_CSRFTOKEN=secret)

    assert response.status_code == 200
    assert Follow.objects.filter(follower=alice, followed=bob).exists()


@pytest.mark.django_db
def test_session_reads_skip_csrf(alice):
    client = Client(enforce_csrf_checks=True)
    client.force_login(alice)

    assert client.get('/api/user/data').status_code == 200


@pytest.mark.django_db
def test_bearer_post_is_not_csrf_checked(alice, bob, make_token):
    client = Client(enforce_csrf_checks=True, HTTP_AUTHORIZATION=f"Bearer {make_token(alice.pk)}")

    response = client.post('/api/user/follow', {'id': bob.pk})

    assert response.status_code == 200
    assert Follow.objects.filter(follower=alice, followed=bob).exists()
