"""
Fire-and-forget event emission to the delayed job runner (Celery).

Delivery is at-most-once and best effort: a broker outage is logged and
never fails the action that emitted the event.
"""
import logging

logger = logging.getLogger(__name__)

CONNECTION_REQUESTED = 'connection.requested'
CONNECTION_REMINDER = 'connection.reminder'
USER_CREATED = 'user.created'
USER_UPDATED = 'user.updated'
USER_DELETED = 'user.deleted'


def _event_tasks():
    from . import tasks

    return {
        CONNECTION_REQUESTED: tasks.send_connection_request_email,
        CONNECTION_REMINDER: tasks.send_connection_request_reminder,
        USER_CREATED: tasks.sync_user_created,
        USER_UPDATED: tasks.sync_user_updated,
        USER_DELETED: tasks.sync_user_deleted,
    }


def schedule(event, payload, delay=None):
    """
    Enqueue the task registered for event with payload as keyword args.

    delay is in seconds. Returns True when the task was handed to the
    broker (or run eagerly), False otherwise.
    """
    task = _event_tasks().get(event)
    if task is None:
        logger.warning(f"No task registered for event {event}")
        return False

    try:
        task.apply_async(kwargs=payload, countdown=delay)
        return True
    except Exception as e:
        logger.warning(f"Failed to schedule {event}: {e}")
        return False
