"""
Stripe PaymentIntents adapter using the official stripe-python SDK.

Notes on SDK usage:
- Module-level helpers (`stripe.PaymentIntent.create_async/modify_async/
  retrieve_async`) are configured once through `stripe.api_key`; the async
  variants keep the event loop free while the per-order lock is held.
- SDK network retries are disabled; a failed call surfaces as
  PaymentProviderError and the caller decides what to do.
- Webhook verification uses `stripe.Webhook.construct_event` with the
  `Stripe-Signature` header.
"""
from __future__ import annotations

import json
from typing import Any, Optional

import stripe

from application.dtos.payments import IntentSpec, ProviderIntent, WebhookEvent
from core.logging_config import get_logger
from core.settings import payment_settings
from domain.common.exceptions import (
    DomainValidationException,
    PaymentProviderError,
    PaymentSignatureError,
)


logger = get_logger(__name__)


def _as_dict(obj: Any) -> dict:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def _event_from_dict(raw: Any, *, provider: str, verified: bool) -> WebhookEvent:
    if not isinstance(raw, dict) or not isinstance(raw.get("type"), str) or not raw["type"]:
        raise DomainValidationException(
            "Webhook payload is not a valid event object",
            field="type",
            error_type="MalformedWebhookEvent",
        )
    data = raw.get("data")
    return WebhookEvent(
        id=str(raw["id"]) if raw.get("id") is not None else None,
        type=raw["type"],
        provider=provider,
        data=data if isinstance(data, dict) else {},
        verified=verified,
    )


class StripeClient:
    provider = "stripe"

    def __init__(
        self,
        secret_key: Optional[str] = None,
        *,
        api_version: Optional[str] = None,
        webhook_tolerance: Optional[int] = None,
    ):
        secret_key = secret_key or payment_settings.stripe.secret_key
        if not secret_key:
            raise RuntimeError("PAYMENT_STRIPE__SECRET_KEY not configured")
        stripe.api_key = secret_key
        stripe.max_network_retries = 0
        api_version = api_version or payment_settings.stripe.api_version
        if api_version:
            stripe.api_version = api_version
        self.webhook_tolerance = (
            webhook_tolerance if webhook_tolerance is not None else payment_settings.webhook.tolerance_seconds
        )

    def _to_intent(self, pi: Any) -> ProviderIntent:
        raw = _as_dict(pi)
        return ProviderIntent(
            id=str(raw["id"]),
            status=str(raw.get("status") or ""),
            amount=int(raw.get("amount") or 0),
            currency=str(raw.get("currency") or ""),
            client_secret=raw.get("client_secret"),
            metadata={str(k): str(v) for k, v in (raw.get("metadata") or {}).items()},
        )

    def _provider_error(self, action: str, exc: Exception, **context: Any) -> PaymentProviderError:
        provider_code = getattr(exc, "code", None)
        logger.error(
            "stripe_request_failed",
            action=action,
            error=str(exc),
            provider_code=provider_code,
            http_status=getattr(exc, "http_status", None),
            **context,
        )
        return PaymentProviderError(
            getattr(exc, "user_message", None) or str(exc) or f"Stripe {action} failed",
            provider=self.provider,
            provider_code=provider_code,
            details={"action": action, **context},
        )

    async def create_intent(self, spec: IntentSpec) -> ProviderIntent:
        params: dict[str, Any] = {
            "amount": spec.amount,
            "currency": spec.currency.lower(),
            "metadata": spec.metadata,
            "automatic_payment_methods": {"enabled": True},
        }
        if spec.description:
            params["description"] = spec.description
        try:
            pi = await stripe.PaymentIntent.create_async(**params)
        except stripe.StripeError as exc:
            raise self._provider_error("create", exc, amount=spec.amount, currency=spec.currency) from exc
        intent = self._to_intent(pi)
        logger.info("stripe_intent_created", intent_id=intent.id, amount=intent.amount, currency=intent.currency)
        return intent

    async def update_intent(self, intent_id: str, spec: IntentSpec) -> ProviderIntent:
        params: dict[str, Any] = {"amount": spec.amount, "metadata": spec.metadata}
        if spec.description:
            params["description"] = spec.description
        try:
            pi = await stripe.PaymentIntent.modify_async(intent_id, **params)
        except stripe.StripeError as exc:
            raise self._provider_error("update", exc, intent_id=intent_id, amount=spec.amount) from exc
        return self._to_intent(pi)

    async def retrieve_intent(self, intent_id: str) -> ProviderIntent:
        try:
            pi = await stripe.PaymentIntent.retrieve_async(intent_id)
        except stripe.StripeError as exc:
            raise self._provider_error("retrieve", exc, intent_id=intent_id) from exc
        return self._to_intent(pi)

    def verify_webhook_signature(self, payload: bytes, signature: str, secret: str) -> WebhookEvent:
        try:
            event = stripe.Webhook.construct_event(
                payload=payload,
                sig_header=signature,
                secret=secret,
                tolerance=self.webhook_tolerance,
            )
        except stripe.SignatureVerificationError as exc:
            raise PaymentSignatureError(str(exc) or "Invalid Stripe signature", provider=self.provider) from exc
        except ValueError as exc:
            raise DomainValidationException(
                "Webhook payload is not valid JSON",
                error_type="MalformedWebhookEvent",
            ) from exc
        return _event_from_dict(_as_dict(event), provider=self.provider, verified=True)

    def parse_unverified_event(self, payload: bytes) -> WebhookEvent:
        try:
            raw = json.loads(payload)
        except (TypeError, ValueError) as exc:
            raise DomainValidationException(
                "Webhook payload is not valid JSON",
                error_type="MalformedWebhookEvent",
            ) from exc
        return _event_from_dict(raw, provider=self.provider, verified=False)
