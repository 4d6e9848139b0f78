"""
User lifecycle driven by identity-provider events.

Users are created on first sign-in, refreshed when the provider reports
a profile change and removed when the provider deletes the account.
"""
import logging
import random

from django.db import IntegrityError, transaction

from .errors import InvalidArgument
from .models import User

logger = logging.getLogger(__name__)


def username_from_email(email):
    """Base username for a new account; a random suffix is added on collision"""
    base = (email or "").split('@')[0].strip() or "user"
    if not User.objects.filter(username=base).exists():
        return base
    for _ in range(10):
        candidate = f"{base}{random.randint(0, 9999)}"
        if not User.objects.filter(username=candidate).exists():
            return candidate
    return f"{base}{random.randint(10000, 99999999)}"


def _full_name(first_name, last_name):
    return " ".join(part for part in (first_name, last_name) if part).strip()


def provision_user(user_id, email, first_name="", last_name="", image_url=""):
    """Create the user on first sign-in; returns the existing row if already there"""
    existing = User.objects.filter(pk=user_id).first()
    if existing is not None:
        return existing

    try:
        with transaction.atomic():
            user = User.objects.create(
                id=user_id,
                email=email,
                username=username_from_email(email),
                full_name=_full_name(first_name, last_name),
                profile_picture=image_url or "",
            )
    except IntegrityError:
        # Either the same event was delivered twice or the username raced
        user = User.objects.filter(pk=user_id).first()
        if user is None:
            raise
        return user

    user.set_unusable_password()
    user.save(update_fields=['password'])
    logger.info(f"Provisioned user {user.pk} as {user.username}")
    return user


def sync_user(user_id, email, first_name="", last_name="", image_url=""):
    """Apply provider-side profile changes; unknown users are ignored"""
    updated = User.objects.filter(pk=user_id).update(
        email=email,
        full_name=_full_name(first_name, last_name),
        profile_picture=image_url or "",
    )
    if not updated:
        logger.warning(f"Identity update for unknown user {user_id}")
    return bool(updated)


def delete_user(user_id):
    """
    Remove a user and everything addressed to or owned by them.

    Follow edges, connection rows, requests, messages and notifications
    cascade with the user row; notifications they triggered for others
    keep their frozen actor snapshot.
    """
    deleted, _ = User.objects.filter(pk=user_id).delete()
    if deleted:
        logger.info(f"Deleted user {user_id}")
    return bool(deleted)


def user_fields_from_event(data):
    """
    Keyword arguments for the sync tasks from a provider user payload.

    The payload carries {id, first_name, last_name, image_url,
    email_addresses: [{email_address}]}; the first address is the primary one.
    """
    if not isinstance(data, dict) or not data.get('id'):
        raise InvalidArgument("Event data must carry a user id")

    addresses = data.get('email_addresses') or []
    email = ""
    if addresses and isinstance(addresses[0], dict):
        email = addresses[0].get('email_address') or ""

    return {
        "user_id": str(data['id']),
        "email": email,
        "first_name": data.get('first_name') or "",
        "last_name": data.get('last_name') or "",
        "image_url": data.get('image_url') or "",
    }
