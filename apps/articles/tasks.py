"""
Celery tasks for editorial notifications.

Notifications are queued only after the workflow transaction commits, so a
rolled-back transition never notifies anybody.
"""

import logging

from celery import shared_task
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from django.db import transaction

from apps.core.metrics import increment_notification
from apps.core.middleware import celery_request_id_headers

logger = logging.getLogger(__name__)

ARTICLE_SUBMITTED = 'article_submitted'
ARTICLE_REVIEWED = 'article_reviewed'
ARTICLE_PUBLISHED = 'article_published'


@shared_task(bind=True, ignore_result=True)
def send_editorial_notification(
    self,
    notification_type: str,
    article_id: int,
    recipient_id: int,
    message: str,
):
    """
    Deliver one notification.

    Always logged; emailed as well when EDITORIAL_NOTIFY_EMAIL is on and the
    recipient has an address. Failures are logged and counted, never retried.
    """
    logger.info(
        "Notification %s for article %s to user %s: %s",
        notification_type, article_id, recipient_id, message,
    )

    if not getattr(settings, 'EDITORIAL_NOTIFY_EMAIL', False):
        increment_notification(notification_type, 'logged')
        return {"type": notification_type, "article_id": article_id, "status": "logged"}

    User = get_user_model()
    email = (
        User.objects.filter(pk=recipient_id)
        .values_list('email', flat=True)
        .first()
    )
    if not email:
        logger.warning("User %s has no email; notification only logged", recipient_id)
        increment_notification(notification_type, 'logged')
        return {"type": notification_type, "article_id": article_id, "status": "logged"}

    try:
        send_mail(
            subject=f"[SafraReport] {notification_type.replace('_', ' ').capitalize()}",
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[email],
        )
    except Exception as exc:
        logger.error("Notification email to user %s failed: %s", recipient_id, exc)
        increment_notification(notification_type, 'error')
        raise

    increment_notification(notification_type, 'emailed')
    return {"type": notification_type, "article_id": article_id, "status": "emailed"}


def queue_notification(notification_type, article_id, recipient_id, message):
    """
    Queue a notification to be sent once the current transaction commits.

    No-op when EDITORIAL_NOTIFICATIONS_ENABLED is off.
    """
    if not getattr(settings, 'EDITORIAL_NOTIFICATIONS_ENABLED', True):
        return

    # Captured now, while the request context is still set
    headers = celery_request_id_headers()
    kwargs = {
        'notification_type': notification_type,
        'article_id': article_id,
        'recipient_id': recipient_id,
        'message': message,
    }

    def enqueue():
        # Runs after the transition committed; a broker failure must not fail the request
        try:
            send_editorial_notification.apply_async(kwargs=kwargs, headers=headers)
        except Exception:
            logger.exception(
                "Could not queue %s notification for article %s to user %s",
                notification_type, article_id, recipient_id,
            )
            increment_notification(notification_type, 'error')

    transaction.on_commit(enqueue)
