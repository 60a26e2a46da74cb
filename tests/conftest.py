"""Pytest bootstrap configuration.

Environment variables are set before any module that reads application
settings is imported; provider and notification doubles live here so
every test layer shares the same behaviour.
"""
import asyncio
import itertools
import json
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from application.dtos.payments import ProviderIntent, WebhookEvent  # noqa: E402
from application.ports.directory import CatalogProduct, CustomerProfile  # noqa: E402
from domain.common.exceptions import (  # noqa: E402
    DomainValidationException,
    PaymentProviderError,
    PaymentSignatureError,
)


WEBHOOK_SECRET = "whsec_test"
VALID_SIGNATURE = "t=1,v1=valid"


class StubProvider:
    """In-process stand-in for the Stripe adapter."""

    provider = "stub"

    def __init__(self):
        self.intents: dict[str, ProviderIntent] = {}
        self.create_calls = []
        self.update_calls = []
        self.fail_updates = False
        self._ids = itertools.count(1)
        # set `retrieve_gate` to hold retrieve_intent until the test releases it
        self.retrieve_gate: asyncio.Event | None = None
        self.retrieve_started = asyncio.Event()

    async def create_intent(self, spec):
        intent_id = f"pi_test_{next(self._ids)}"
        intent = ProviderIntent(
            id=intent_id,
            status="requires_payment_method",
            amount=spec.amount,
            currency=spec.currency,
            client_secret=f"{intent_id}_secret",
            metadata=dict(spec.metadata),
        )
        self.intents[intent_id] = intent
        self.create_calls.append(spec)
        return intent

    async def update_intent(self, intent_id, spec):
        self.update_calls.append((intent_id, spec))
        if self.fail_updates:
            raise PaymentProviderError("intent can no longer be modified", provider=self.provider)
        current = self.intents[intent_id]
        updated = current.model_copy(update={"amount": spec.amount, "metadata": {**current.metadata, **spec.metadata}})
        self.intents[intent_id] = updated
        return updated

    async def retrieve_intent(self, intent_id):
        self.retrieve_started.set()
        if self.retrieve_gate is not None:
            await self.retrieve_gate.wait()
        if intent_id not in self.intents:
            raise PaymentProviderError(f"No such payment_intent: {intent_id}", provider=self.provider)
        return self.intents[intent_id]

    def set_status(self, intent_id, status):
        self.intents[intent_id] = self.intents[intent_id].model_copy(update={"status": status})

    def verify_webhook_signature(self, payload, signature, secret):
        if secret != WEBHOOK_SECRET or signature != VALID_SIGNATURE:
            raise PaymentSignatureError("No signatures found matching the expected signature", provider=self.provider)
        return self._parse(payload, verified=True)

    def parse_unverified_event(self, payload):
        return self._parse(payload, verified=False)

    def _parse(self, payload, *, verified):
        try:
            raw = json.loads(payload)
        except ValueError as exc:
            raise DomainValidationException("Webhook payload is not valid JSON", error_type="MalformedWebhookEvent") from exc
        if not isinstance(raw, dict) or not raw.get("type"):
            raise DomainValidationException("Webhook payload is not a valid event object", error_type="MalformedWebhookEvent")
        return WebhookEvent(id=raw.get("id"), type=raw["type"], provider=self.provider, data=raw.get("data") or {}, verified=verified)


class SpyNotifier:
    def __init__(self, *, fail: bool = False):
        self.pushes = []
        self.emails = []
        self.fail = fail

    async def notify_order_status(self, user_id, order_id, status):
        self.pushes.append((user_id, order_id, status))
        if self.fail:
            raise RuntimeError("push service unavailable")

    async def email_order_status(self, user_id, order_id, status):
        self.emails.append((user_id, order_id, status))
        if self.fail:
            raise RuntimeError("mail service unavailable")


def event_body(event_type, intent_id, event_id="evt_test_1", **extra):
    obj = {"id": intent_id, "object": "payment_intent", **extra}
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode()


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def notifier():
    return SpyNotifier()


@pytest.fixture
def ledger():
    from infrastructure.ledger import InMemoryOrderLedger
    return InMemoryOrderLedger()


@pytest.fixture
def users():
    from infrastructure.directory import InMemoryUserDirectory
    return InMemoryUserDirectory([
        CustomerProfile(id=1, email="de@example.com", country="DE"),
        CustomerProfile(id=2, email="us@example.com", country="US"),
        CustomerProfile(id=3, email="nowhere@example.com"),
    ])


@pytest.fixture
def products():
    from infrastructure.directory import InMemoryProductCatalog
    return InMemoryProductCatalog([
        CatalogProduct(id=1, title="Jetson Orin Nano", price=10000, price_eur=9200),
        CatalogProduct(id=2, title="Jetson AGX Orin", price=299900, price_eur=276000),
    ])


@pytest.fixture
def orchestrator(provider, ledger, users, products):
    from application.services.payment_intent_orchestrator import PaymentIntentOrchestrator
    return PaymentIntentOrchestrator(
        provider=provider, ledger=ledger, users=users, products=products, max_update_quantity=10
    )


@pytest.fixture
def reconciler(provider, ledger, notifier):
    from application.services.webhook_reconciler import WebhookReconciler
    return WebhookReconciler(ledger=ledger, provider=provider, notifier=notifier, webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def container(provider, ledger, notifier, users, products):
    from api.container import build_container
    return build_container(
        ledger=ledger,
        provider=provider,
        notifier=notifier,
        users=users,
        products=products,
        webhook_secret=WEBHOOK_SECRET,
        dev_bypass_enabled=False,
        require_signature=False,
    )


@pytest.fixture
def client(container):
    from fastapi.testclient import TestClient
    from main import create_app

    with TestClient(create_app(container)) as c:
        yield c


@pytest.fixture
def make_event():
    return event_body


@pytest.fixture
def signed_headers():
    return {"Stripe-Signature": VALID_SIGNATURE, "Content-Type": "application/json"}


@pytest.fixture
def failing_notifier():
    return SpyNotifier(fail=True)


@pytest.fixture
def drain_notifications(client, container):
    """Wait for background notifications scheduled by previous requests."""
    def _drain():
        client.portal.call(container.notifications.drain)
    return _drain
