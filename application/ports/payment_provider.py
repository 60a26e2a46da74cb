"""
Payment provider port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.dtos.payments import IntentSpec, ProviderIntent, WebhookEvent


@runtime_checkable
class ProviderClient(Protocol):
    """Protocol for the third-party payment provider.

    Implementations raise PaymentProviderError on any backend failure and
    PaymentSignatureError when a webhook signature does not verify.
    Calls are never retried here; callers re-request.
    """

    provider: str

    async def create_intent(self, spec: IntentSpec) -> ProviderIntent: ...

    async def update_intent(self, intent_id: str, spec: IntentSpec) -> ProviderIntent: ...

    async def retrieve_intent(self, intent_id: str) -> ProviderIntent: ...

    def verify_webhook_signature(self, payload: bytes, signature: str, secret: str) -> WebhookEvent: ...

    def parse_unverified_event(self, payload: bytes) -> WebhookEvent: ...
