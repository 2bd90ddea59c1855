"""Notifier protocol and env-driven construction"""

import os
from typing import List, Protocol

from loguru import logger

from ...domain.models import Digest


class NotificationError(Exception):
    """A notification channel rejected or failed to deliver a digest."""


class Notifier(Protocol):
    name: str

    async def notify(self, digest: Digest, date: str) -> None:
        ...


def build_notifiers_from_env() -> List[Notifier]:
    """Build every notifier whose settings are present in the environment."""
    # Imported here: webhook imports this module for NotificationError.
    from .mailer import EmailNotifier
    from .webhook import WebhookNotifier

    notifiers: List[Notifier] = []

    webhook_url = os.getenv("NOTIFY_WEBHOOK_URL", "")
    if webhook_url:
        notifiers.append(WebhookNotifier(webhook_url))

    smtp_user = os.getenv("SMTP_USER", "")
    smtp_password = os.getenv("SMTP_PASSWORD", "")
    recipient = os.getenv("RECIPIENT_EMAIL", "")
    if smtp_user and smtp_password and recipient:
        notifiers.append(
            EmailNotifier(
                host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
                port=int(os.getenv("SMTP_PORT", "465")),
                user=smtp_user,
                password=smtp_password,
                recipient=recipient,
            )
        )

    if not notifiers:
        logger.info("[notify] No notifier configured (NOTIFY_WEBHOOK_URL / SMTP_*), notifications disabled.")
    return notifiers
