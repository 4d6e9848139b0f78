"""Celery tasks for PingUp delayed jobs and identity-provider events"""
import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

from . import accounts, scheduler
from .models import ConnectionRequest

logger = logging.getLogger(__name__)


def _pending_request(request_id):
    return (
        ConnectionRequest.objects.select_related('from_user', 'to_user')
        .filter(pk=request_id, status=ConnectionRequest.STATUS_PENDING)
        .first()
    )


def _mail_recipient(request, subject):
    sender = request.from_user
    recipient = request.to_user
    if not recipient.email:
        logger.info(f"No e-mail for {recipient.pk}, skipping connection request mail")
        return False

    name = sender.full_name or sender.username
    body = (
        f"Hi {recipient.full_name or recipient.username},\n\n"
        f"{name} (@{sender.username}) wants to connect with you on PingUp.\n"
        f"Open your connections page to accept the request.\n"
    )
    send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [recipient.email], fail_silently=False)
    return True


@shared_task
def send_connection_request_email(request_id):
    """Tell the recipient about a new request and queue a reminder"""
    request = _pending_request(request_id)
    if request is None:
        return f"Connection request {request_id} is no longer pending"

    _mail_recipient(request, f"New connection request from {request.from_user.username}")

    delay = timedelta(hours=getattr(settings, 'PINGUP_CONNECTION_REMINDER_HOURS', 24))
    scheduler.schedule(
        scheduler.CONNECTION_REMINDER,
        {"request_id": request_id},
        delay=int(delay.total_seconds()),
    )
    return f"Connection request {request_id} announced"


@shared_task
def send_connection_request_reminder(request_id):
    """Remind the recipient only if the request is still pending"""
    request = _pending_request(request_id)
    if request is None:
        return f"Connection request {request_id} already handled"

    _mail_recipient(request, f"Reminder: {request.from_user.username} is waiting for your reply")
    return f"Reminder sent for connection request {request_id}"


@shared_task
def sync_user_created(user_id, email, first_name="", last_name="", image_url=""):
    user = accounts.provision_user(user_id, email, first_name, last_name, image_url)
    return {"success": True, "userId": user.pk}


@shared_task
def sync_user_updated(user_id, email, first_name="", last_name="", image_url=""):
    return {"success": accounts.sync_user(user_id, email, first_name, last_name, image_url), "userId": user_id}


@shared_task
def sync_user_deleted(user_id):
    return {"success": accounts.delete_user(user_id), "userId": user_id}
