import json

import pytest


stripe = pytest.importorskip("stripe")

from application.dtos.payments import IntentSpec  # noqa: E402
from domain.common.exceptions import (  # noqa: E402
    DomainValidationException,
    PaymentProviderError,
    PaymentSignatureError,
)
from infrastructure.external.payments.stripe_client import StripeClient  # noqa: E402


class _FakePaymentIntent:
    calls = []

    @classmethod
    async def create_async(cls, **params):
        cls.calls.append(("create", params))
        return {
            "id": "pi_123",
            "status": "requires_payment_method",
            "amount": params["amount"],
            "currency": params["currency"],
            "client_secret": "pi_123_secret_abc",
            "metadata": params["metadata"],
        }

    @classmethod
    async def modify_async(cls, intent_id, **params):
        cls.calls.append(("modify", intent_id, params))
        return {"id": intent_id, "status": "requires_payment_method", "amount": params["amount"], "currency": "eur", "metadata": params["metadata"]}

    @classmethod
    async def retrieve_async(cls, intent_id):
        raise stripe.InvalidRequestError(f"No such payment_intent: '{intent_id}'", param="intent", code="resource_missing")


@pytest.fixture
def client(monkeypatch):
    _FakePaymentIntent.calls = []
    monkeypatch.setattr(stripe, "PaymentIntent", _FakePaymentIntent)
    return StripeClient("sk_test_123", webhook_tolerance=300)


def test_requires_secret_key(monkeypatch):
    from core.settings import payment_settings

    monkeypatch.setattr(payment_settings.stripe, "secret_key", None)
    with pytest.raises(RuntimeError):
        StripeClient()


@pytest.mark.asyncio
async def test_create_intent_maps_response(client):
    intent = await client.create_intent(
        IntentSpec(amount=328440, currency="EUR", metadata={"tax_rate": "0.19"}, description="Order with MwSt. 19%")
    )
    assert intent.id == "pi_123"
    assert intent.client_secret == "pi_123_secret_abc"
    assert intent.metadata == {"tax_rate": "0.19"}

    _, params = _FakePaymentIntent.calls[0]
    assert params["amount"] == 328440
    assert params["currency"] == "eur"
    assert params["automatic_payment_methods"] == {"enabled": True}
    assert params["description"] == "Order with MwSt. 19%"


@pytest.mark.asyncio
async def test_update_intent_uses_modify(client):
    intent = await client.update_intent("pi_9", IntentSpec(amount=11900, currency="eur", metadata={"quantity": "1"}))
    assert intent.amount == 11900
    assert _FakePaymentIntent.calls[0][:2] == ("modify", "pi_9")


@pytest.mark.asyncio
async def test_sdk_errors_become_provider_errors(client):
    with pytest.raises(PaymentProviderError) as exc_info:
        await client.retrieve_intent("pi_missing")
    assert exc_info.value.details["provider"] == "stripe"
    assert exc_info.value.details["provider_code"] == "resource_missing"


def test_verify_webhook_signature(client, monkeypatch):
    seen = {}

    class _FakeWebhook:
        @staticmethod
        def construct_event(payload, sig_header, secret, tolerance=None):
            seen.update(sig_header=sig_header, secret=secret, tolerance=tolerance)
            return {"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}}

    monkeypatch.setattr(stripe, "Webhook", _FakeWebhook)
    event = client.verify_webhook_signature(b"{}", "t=1,v1=abc", "whsec_test")

    assert event.type == "payment_intent.succeeded"
    assert event.provider == "stripe"
    assert event.verified is True
    assert event.data["object"]["id"] == "pi_1"
    assert seen == {"sig_header": "t=1,v1=abc", "secret": "whsec_test", "tolerance": 300}


def test_bad_signature(client, monkeypatch):
    class _FakeWebhook:
        @staticmethod
        def construct_event(payload, sig_header, secret, tolerance=None):
            raise stripe.SignatureVerificationError("No signatures found", sig_header)

    monkeypatch.setattr(stripe, "Webhook", _FakeWebhook)
    with pytest.raises(PaymentSignatureError):
        client.verify_webhook_signature(b"{}", "t=1,v1=bad", "whsec_test")


def test_parse_unverified_event(client):
    body = json.dumps({"id": "evt_2", "type": "payment_intent.payment_failed", "data": {"object": {"id": "pi_2"}}})
    event = client.parse_unverified_event(body.encode())
    assert event.verified is False
    assert event.id == "evt_2"


@pytest.mark.parametrize("body", [b"{oops", b'"string"', b'{"data": {}}'])
def test_parse_unverified_event_rejects_malformed(client, body):
    with pytest.raises(DomainValidationException):
        client.parse_unverified_event(body)
