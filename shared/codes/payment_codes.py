"""
Payment specific codes and provider intent status groups.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    SIGNATURE_ERROR = 60002


# Stripe PaymentIntent statuses that still accept amount/metadata changes
MUTABLE_INTENT_STATUSES = frozenset({
    "requires_payment_method",
    "requires_confirmation",
})

# Webhook event types that drive the order state machine
EVENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_INTENT_FAILED = "payment_intent.payment_failed"

# Intent statuses where money has moved (or is moving); the order must not be repriced
SETTLED_INTENT_STATUSES = frozenset({
    "processing",
    "succeeded",
})
