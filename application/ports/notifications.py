"""
Notification port: push/e-mail side effects after order state changes.

The core only invokes it; delivery lives in infrastructure. Callers treat
every call as fire-and-forget and never let a failure fail the request.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class NotificationDispatcher(Protocol):

    async def notify_order_status(self, user_id: int, order_id: int, status: str) -> None: ...

    async def email_order_status(self, user_id: int, order_id: int, status: str) -> None: ...
