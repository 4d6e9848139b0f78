import itertools
import io
from datetime import datetime, timedelta, timezone as dt_timezone

import jwt
import pytest
from django.conf import settings
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import Client
from PIL import Image

from pingup import celery_app
from social.models import User


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def eager_celery(settings):
    """Run scheduled tasks inline; countdowns are ignored in eager mode"""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    # Reading a key loads the CELERY_* settings first, so the update below sticks
    previous = celery_app.conf.task_always_eager
    celery_app.conf.update(task_always_eager=True)
    yield
    celery_app.conf.update(task_always_eager=previous)


@pytest.fixture(autouse=True)
def local_media(settings, tmp_path, monkeypatch):
    monkeypatch.delenv('CLOUDINARY_CLOUD_NAME', raising=False)
    settings.MEDIA_ROOT = str(tmp_path)
    settings.PINGUP_MEDIA_BASE_URL = ''


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(user_id=None, **fields):
        user_id = user_id or f"user_{next(counter)}"
        fields.setdefault('username', user_id)
        fields.setdefault('email', f"{user_id}@example.com")
        return User.objects.create(id=user_id, **fields)

    return _make


@pytest.fixture
def alice(make_user):
    return make_user('user_alice', username='alice', full_name='Alice Liddell')


@pytest.fixture
def bob(make_user):
    return make_user('user_bob', username='bob', full_name='Bob Marley')


@pytest.fixture
def carol(make_user):
    return make_user('user_carol', username='carol', full_name='Carol Danvers')


@pytest.fixture
def make_token():
    def _token(user_id, claim='sub', expires_in=timedelta(hours=1), secret=None):
        payload = {
            claim: user_id,
            'exp': datetime.now(dt_timezone.utc) + expires_in,
        }
        return jwt.encode(payload, secret or settings.PINGUP_JWT_SECRET, algorithm='HS256')

    return _token


@pytest.fixture
def api_client(make_token):
    """Test client that sends a signed bearer token for the given user"""
    def _client(user):
        return Client(HTTP_AUTHORIZATION=f"Bearer {make_token(user.pk)}")

    return _client


@pytest.fixture
def png_file():
    def _png(name='pic.png'):
        buf = io.BytesIO()
        Image.new('RGB', (4, 4), color=(200, 30, 30)).save(buf, format='PNG')
        return SimpleUploadedFile(name, buf.getvalue(), content_type='image/png')

    return _png
