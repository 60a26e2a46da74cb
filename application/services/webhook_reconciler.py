"""
Webhook reconciliation: provider events -> order state machine.

Provider events are parsed into a closed set of variants; only the two
payment-intent outcomes mutate orders, everything else is acknowledged and
logged. Replays are safe because reaching an already-reached state is a
no-op in the ledger.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Union

from application.dtos.payments import WebhookEvent
from application.ports.notifications import NotificationDispatcher
from application.ports.payment_provider import ProviderClient
from application.services.notifications import NotificationScheduler
from core.logging_config import get_logger
from domain.common.exceptions import (
    DomainValidationException,
    InvalidStatusTransitionException,
    PaymentSignatureError,
)
from domain.order.entity import OrderStatus
from domain.order.repository import OrderLedger
from shared.codes.payment_codes import EVENT_INTENT_FAILED, EVENT_INTENT_SUCCEEDED


logger = get_logger(__name__)


@dataclass(frozen=True)
class PaymentIntentSucceeded:
    intent_id: str
    event_id: Optional[str] = None


@dataclass(frozen=True)
class PaymentIntentFailed:
    intent_id: str
    event_id: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class UnhandledEvent:
    event_type: str
    event_id: Optional[str] = None


ProviderEvent = Union[PaymentIntentSucceeded, PaymentIntentFailed, UnhandledEvent]


class ReconcileOutcome(str, Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    INVALID_TRANSITION = "invalid_transition"
    ORDER_NOT_FOUND = "order_not_found"
    SUPERSEDED = "superseded"
    UNHANDLED = "unhandled"


@dataclass(frozen=True)
class ReconcileResult:
    outcome: ReconcileOutcome
    event_type: str
    order_id: Optional[int] = None
    status: Optional[OrderStatus] = None
    error: Optional[InvalidStatusTransitionException] = None


def parse_provider_event(event: WebhookEvent) -> ProviderEvent:
    if event.type not in (EVENT_INTENT_SUCCEEDED, EVENT_INTENT_FAILED):
        return UnhandledEvent(event_type=event.type, event_id=event.id)

    obj = event.data.get("object")
    intent_id = obj.get("id") if isinstance(obj, dict) else None
    if not isinstance(intent_id, str) or not intent_id:
        raise DomainValidationException(
            "Webhook event carries no payment intent id",
            field="data.object.id",
            details={"event_id": event.id, "event_type": event.type},
            error_type="MalformedWebhookEvent",
        )
    if event.type == EVENT_INTENT_SUCCEEDED:
        return PaymentIntentSucceeded(intent_id=intent_id, event_id=event.id)
    last_error = obj.get("last_payment_error")
    reason = last_error.get("message") if isinstance(last_error, dict) else None
    return PaymentIntentFailed(intent_id=intent_id, event_id=event.id, reason=reason)


class WebhookReconciler:
    def __init__(
        self,
        *,
        ledger: OrderLedger,
        provider: ProviderClient,
        notifier: NotificationDispatcher,
        webhook_secret: Optional[str] = None,
        require_signature: bool = False,
        dev_bypass_enabled: bool = False,
        dev_bypass_header: str = "X-Stripe-Test",
        signature_header: str = "Stripe-Signature",
        notifications: Optional[NotificationScheduler] = None,
    ) -> None:
        self.ledger = ledger
        self.provider = provider
        self.notifier = notifier
        self.notifications = notifications or NotificationScheduler(notifier)
        self.webhook_secret = webhook_secret
        self.require_signature = require_signature
        self.dev_bypass_enabled = dev_bypass_enabled
        self.dev_bypass_header = dev_bypass_header.lower()
        self.signature_header = signature_header.lower()

    def verify(self, headers: Mapping[str, str], body: bytes) -> WebhookEvent:
        """Authenticate the payload before anything is mutated."""
        lowered = {k.lower(): v for k, v in headers.items()}

        if self.dev_bypass_enabled and (lowered.get(self.dev_bypass_header) or "").lower() == "true":
            logger.warning(
                "webhook_signature_bypassed",
                header=self.dev_bypass_header,
                message="DEVELOPMENT BYPASS: webhook accepted without signature verification",
            )
            return self.provider.parse_unverified_event(body)

        if self.webhook_secret:
            signature = lowered.get(self.signature_header)
            if not signature:
                raise PaymentSignatureError("Missing Stripe-Signature header", provider=self.provider.provider)
            return self.provider.verify_webhook_signature(body, signature, self.webhook_secret)

        if self.require_signature:
            raise PaymentSignatureError("Webhook secret is not configured", provider=self.provider.provider)
        logger.warning("webhook_signature_unverified", message="No webhook secret configured")
        return self.provider.parse_unverified_event(body)

    async def process(self, headers: Mapping[str, str], body: bytes) -> ReconcileResult:
        event = self.verify(headers, body)
        return await self.handle(event)

    async def handle(self, event: WebhookEvent) -> ReconcileResult:
        parsed = parse_provider_event(event)
        logger.info("payment_webhook_parsed", event_type=event.type, event_id=event.id, verified=event.verified)

        if isinstance(parsed, UnhandledEvent):
            logger.info("webhook_event_unhandled", event_type=parsed.event_type, event_id=parsed.event_id)
            return ReconcileResult(outcome=ReconcileOutcome.UNHANDLED, event_type=parsed.event_type)
        if isinstance(parsed, PaymentIntentSucceeded):
            return await self._transition(parsed.intent_id, OrderStatus.COMPLETED, event.type)
        if parsed.reason:
            logger.info("payment_intent_failure_reason", intent_id=parsed.intent_id, reason=parsed.reason)
        return await self._transition(parsed.intent_id, OrderStatus.FAILED, event.type)

    async def _transition(self, intent_id: str, target: OrderStatus, event_type: str) -> ReconcileResult:
        order = await self.ledger.get_by_intent_id(intent_id)
        if order is None:
            return await self._unknown_intent(intent_id, event_type)

        async with self.ledger.lock(order.id):
            current = await self.ledger.get_by_intent_id(intent_id)
            if current is None or current.id != order.id:
                return await self._unknown_intent(intent_id, event_type)
            try:
                order, changed = await self.ledger.update_status(current.id, target)
            except InvalidStatusTransitionException as exc:
                logger.warning(
                    "webhook_invalid_transition",
                    order_id=current.id,
                    intent_id=intent_id,
                    current=exc.current,
                    target=exc.target,
                )
                return ReconcileResult(
                    outcome=ReconcileOutcome.INVALID_TRANSITION,
                    event_type=event_type,
                    order_id=current.id,
                    status=current.status,
                    error=exc,
                )

        if not changed:
            logger.info("webhook_duplicate_ignored", order_id=order.id, status=order.status.value)
            return ReconcileResult(
                outcome=ReconcileOutcome.DUPLICATE, event_type=event_type, order_id=order.id, status=order.status
            )

        logger.info("order_status_updated", order_id=order.id, intent_id=intent_id, status=order.status.value, source="webhook")
        self.notifications.schedule(user_id=order.user_id, order_id=order.id, status=order.status.value)
        return ReconcileResult(
            outcome=ReconcileOutcome.APPLIED, event_type=event_type, order_id=order.id, status=order.status
        )

    async def _unknown_intent(self, intent_id: str, event_type: str) -> ReconcileResult:
        superseding = await self.ledger.find_superseding(intent_id)
        if superseding is not None:
            log = logger.error if event_type == EVENT_INTENT_SUCCEEDED else logger.warning
            log(
                "webhook_superseded_intent",
                intent_id=intent_id,
                order_id=superseding.id,
                live_intent_id=superseding.provider_intent_id,
                event_type=event_type,
            )
            return ReconcileResult(
                outcome=ReconcileOutcome.SUPERSEDED, event_type=event_type, order_id=superseding.id, status=superseding.status
            )
        logger.warning("webhook_order_not_found", intent_id=intent_id, event_type=event_type)
        return ReconcileResult(outcome=ReconcileOutcome.ORDER_NOT_FOUND, event_type=event_type)
