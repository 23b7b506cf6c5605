"""Celery tasks for transactional e-mail."""

import structlog
from celery import shared_task

from modules.core.exceptions import UpstreamError
from modules.core.middleware import bind_correlation_id
from modules.notifications.senders import get_sender

logger = structlog.get_logger(__name__)


@shared_task(name="notifications.send_email", ignore_result=True)
def send_email(to, subject, html_body, text_body=None, correlation_id=None):
    """Deliver one message; provider failures are logged, not retried.

    ``correlation_id`` carries the originating request's id onto the worker.
    """
    if correlation_id:
        bind_correlation_id(correlation_id)
    try:
        get_sender().send(to, subject, html_body, text_body)
    except UpstreamError:
        logger.warning("email.dropped", subject=subject)
        return {"status": "failed"}
    return {"status": "sent"}
