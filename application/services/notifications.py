"""
Fire-and-forget helpers around the NotificationDispatcher port.

Order status notifications never run on the request path: callers schedule
them and return; delivery (including the HTTP dispatcher's retries) happens
in a tracked background task.
"""
from __future__ import annotations

import asyncio
from typing import Set

from application.ports.notifications import NotificationDispatcher
from core.logging_config import get_logger


logger = get_logger(__name__)


async def dispatch_order_status(
    notifier: NotificationDispatcher,
    *,
    user_id: int,
    order_id: int,
    status: str,
    push: bool = True,
    email: bool = False,
) -> None:
    """Deliver order status side effects; failures are logged and never raised."""
    if push:
        try:
            await notifier.notify_order_status(user_id, order_id, status)
        except Exception as exc:
            logger.error("notification_dispatch_failed", channel="push", order_id=order_id, status=status, error=str(exc))
    if email:
        try:
            await notifier.email_order_status(user_id, order_id, status)
        except Exception as exc:
            logger.error("notification_dispatch_failed", channel="email", order_id=order_id, status=status, error=str(exc))


class NotificationScheduler:
    """后台投递订单状态通知，持有任务引用直到完成"""

    def __init__(self, notifier: NotificationDispatcher):
        self.notifier = notifier
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(
        self,
        *,
        user_id: int,
        order_id: int,
        status: str,
        push: bool = True,
        email: bool = False,
    ) -> asyncio.Task:
        task = asyncio.create_task(
            dispatch_order_status(
                self.notifier,
                user_id=user_id,
                order_id=order_id,
                status=status,
                push=push,
                email=email,
            )
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("notification_scheduled", order_id=order_id, status=status, push=push, email=email)
        return task

    async def drain(self) -> None:
        """等待所有已调度的通知结束（关闭应用时使用）"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
