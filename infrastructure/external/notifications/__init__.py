"""
Notification dispatcher adapters and factory.
"""
from __future__ import annotations

from application.ports.notifications import NotificationDispatcher
from core.config import settings

from .http import HttpNotificationDispatcher
from .logging_dispatcher import LoggingNotificationDispatcher


def get_notification_dispatcher() -> NotificationDispatcher:
    cfg = settings.notifications
    if cfg.webhook_url:
        return HttpNotificationDispatcher(
            cfg.webhook_url,
            timeout=cfg.timeout_seconds,
            max_attempts=cfg.max_attempts,
            backoff=cfg.backoff_seconds,
        )
    return LoggingNotificationDispatcher()


__all__ = [
    "HttpNotificationDispatcher",
    "LoggingNotificationDispatcher",
    "get_notification_dispatcher",
]
