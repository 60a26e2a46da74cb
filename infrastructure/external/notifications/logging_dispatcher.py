from __future__ import annotations

from core.logging_config import get_logger


logger = get_logger(__name__)


class LoggingNotificationDispatcher:
    """Records notifications in the log stream only; used when no delivery endpoint is configured."""

    async def notify_order_status(self, user_id: int, order_id: int, status: str) -> None:
        logger.info("order_status_notification", channel="push", user_id=user_id, order_id=order_id, status=status)

    async def email_order_status(self, user_id: int, order_id: int, status: str) -> None:
        logger.info("order_status_notification", channel="email", user_id=user_id, order_id=order_id, status=status)
