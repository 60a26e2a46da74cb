import json

import httpx
import pytest

from infrastructure.external.notifications import (
    HttpNotificationDispatcher,
    LoggingNotificationDispatcher,
    get_notification_dispatcher,
)
from infrastructure.external.notifications.http import NotificationDeliveryError


def _dispatcher(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpNotificationDispatcher("https://notify.example.com/hooks", client=client, backoff=0, **kwargs)


@pytest.mark.asyncio
async def test_posts_order_status():
    received = []

    def handler(request):
        received.append(json.loads(request.content))
        return httpx.Response(202)

    dispatcher = _dispatcher(handler)
    await dispatcher.notify_order_status(1, 7, "completed")
    await dispatcher.email_order_status(1, 7, "completed")
    await dispatcher.aclose()

    assert [r["channel"] for r in received] == ["push", "email"]
    assert received[0] == {"event": "order_status_changed", "channel": "push", "user_id": 1, "order_id": 7, "status": "completed"}


@pytest.mark.asyncio
async def test_retries_server_errors_then_succeeds():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(503 if len(attempts) < 3 else 200)

    dispatcher = _dispatcher(handler, max_attempts=3)
    await dispatcher.notify_order_status(1, 7, "failed")
    assert len(attempts) == 3


@pytest.mark.asyncio
async def test_retries_transport_errors_and_reraises():
    attempts = []

    def handler(request):
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    dispatcher = _dispatcher(handler, max_attempts=2)
    with pytest.raises(httpx.ConnectError):
        await dispatcher.notify_order_status(1, 7, "failed")
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(400)

    dispatcher = _dispatcher(handler, max_attempts=3)
    with pytest.raises(NotificationDeliveryError):
        await dispatcher.notify_order_status(1, 7, "failed")
    assert len(attempts) == 1


def test_factory_defaults_to_logging_dispatcher(monkeypatch):
    from core.config import settings

    monkeypatch.setattr(settings.notifications, "webhook_url", None)
    assert isinstance(get_notification_dispatcher(), LoggingNotificationDispatcher)
    monkeypatch.setattr(settings.notifications, "webhook_url", "https://notify.example.com/hooks")
    assert isinstance(get_notification_dispatcher(), HttpNotificationDispatcher)
