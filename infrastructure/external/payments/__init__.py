"""
Factory for the payment provider client.
"""
from __future__ import annotations

from typing import Optional

from application.ports.payment_provider import ProviderClient


def get_payment_provider(provider: Optional[str] = None) -> ProviderClient:
    name = (provider or "stripe").lower()
    if name == "stripe":
        from .stripe_client import StripeClient
        return StripeClient()
    raise ValueError(f"Unsupported payment provider: {name}")
