"""Transactional e-mail senders.

``EmailSender`` is the port.  ``SESEmailSender`` sends through Amazon
SES with boto3; ``InMemoryEmailSender`` keeps an outbox list for
development and tests.  ``get_sender()`` / ``set_sender()`` swap the
active implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from modules.core.exceptions import UpstreamError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SentEmail:
    to: str
    subject: str
    html_body: str
    text_body: Optional[str] = None


class EmailSender(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> None:
        """Send one message.

        Raises:
            UpstreamError: the provider rejected the message.
        """


class SESEmailSender(EmailSender):
    def __init__(self, region: str, from_email: str, client=None) -> None:
        self.region = region
        self.from_email = from_email
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("ses", region_name=self.region)
        return self._client

    def send(self, to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> None:
        body = {"Html": {"Data": html_body, "Charset": "UTF-8"}}
        if text_body:
            body["Text"] = {"Data": text_body, "Charset": "UTF-8"}
        try:
            self.client.send_email(
                Source=self.from_email,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": body,
                },
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("email.send_failed", subject=subject, error=str(exc))
            raise UpstreamError("Failed to send email.") from exc
        logger.info("email.sent", subject=subject)


class InMemoryEmailSender(EmailSender):
    def __init__(self) -> None:
        self.outbox: List[SentEmail] = []

    def send(self, to: str, subject: str, html_body: str, text_body: Optional[str] = None) -> None:
        self.outbox.append(SentEmail(to, subject, html_body, text_body))


_current_sender: Optional[EmailSender] = None


def get_sender() -> EmailSender:
    global _current_sender
    if _current_sender is None:
        if settings.EMAIL_BACKEND_KIND == "memory":
            _current_sender = InMemoryEmailSender()
        else:
            _current_sender = SESEmailSender(
                region=settings.SES_REGION, from_email=settings.SES_FROM_EMAIL
            )
    return _current_sender


def set_sender(sender: EmailSender) -> None:
    global _current_sender
    _current_sender = sender


def reset_sender() -> None:
    global _current_sender
    _current_sender = None
