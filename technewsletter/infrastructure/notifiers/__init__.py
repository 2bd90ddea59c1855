"""Notification channels"""

from .base import NotificationError, Notifier, build_notifiers_from_env
from .mailer import EmailNotifier
from .webhook import WebhookNotifier

__all__ = [
    "EmailNotifier",
    "NotificationError",
    "Notifier",
    "WebhookNotifier",
    "build_notifiers_from_env",
]
