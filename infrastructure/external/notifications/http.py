"""
HTTP 通知投递

把订单状态变化 POST 到外部通知服务（推送/邮件由对方负责），
传输错误与 5xx 响应按指数退避重试。
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.logging_config import get_logger


logger = get_logger(__name__)
_retry_logger = logging.getLogger(__name__)


class NotificationDeliveryError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class _RetryableDeliveryError(NotificationDeliveryError):
    pass


class HttpNotificationDispatcher:
    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        max_attempts: int = 3,
        backoff: float = 0.5,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def notify_order_status(self, user_id: int, order_id: int, status: str) -> None:
        await self._deliver({"channel": "push", "user_id": user_id, "order_id": order_id, "status": status})

    async def email_order_status(self, user_id: int, order_id: int, status: str) -> None:
        await self._deliver({"channel": "email", "user_id": user_id, "order_id": order_id, "status": status})

    async def _send_once(self, payload: dict[str, Any]) -> None:
        response = await self.client.post(self.url, json={"event": "order_status_changed", **payload})
        if response.status_code >= 500:
            raise _RetryableDeliveryError(
                f"Notification endpoint returned {response.status_code}", status_code=response.status_code
            )
        if response.is_error:
            raise NotificationDeliveryError(
                f"Notification endpoint rejected request with {response.status_code}",
                status_code=response.status_code,
            )

    async def _deliver(self, payload: dict[str, Any]) -> None:
        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, min=self.backoff, max=self.backoff * 8),
            retry=retry_if_exception_type((httpx.TransportError, _RetryableDeliveryError)),
            before_sleep=before_sleep_log(_retry_logger, logging.WARNING),
        )
        async for attempt in retrying:
            with attempt:
                await self._send_once(payload)
        logger.info("order_status_notification_sent", **payload)
