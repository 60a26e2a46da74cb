"""
Payment DTOs (Pydantic v2) used at application boundaries.

Request/response models keep the storefront's camelCase wire names via
aliases; Python code uses snake_case attributes.
"""
from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# HTTP requests
# ---------------------------------------------------------------------------

class CreatePaymentIntentRequest(_CamelModel):
    amount: StrictInt
    user_id: StrictInt = Field(alias="userId")
    product_id: StrictInt = Field(alias="productId")
    currency: str = "usd"
    quantity: StrictInt = 1
    country: Optional[str] = None
    force_country: StrictBool = False
    coupon_code: Optional[str] = Field(default=None, alias="couponCode")


class UpdatePaymentIntentRequest(_CamelModel):
    payment_intent_id: str = Field(alias="paymentIntentId", min_length=1)
    quantity: StrictInt
    user_id: StrictInt = Field(alias="userId")
    product_id: Optional[StrictInt] = Field(default=None, alias="productId")
    new_items: Optional[list[dict[str, Any]]] = Field(default=None, alias="newItems")


# ---------------------------------------------------------------------------
# HTTP responses
# ---------------------------------------------------------------------------

class TaxInfo(_CamelModel):
    amount: int
    rate: float
    label: str
    display: str


class CreatePaymentIntentResponse(_CamelModel):
    id: str
    client_secret: Optional[str] = Field(alias="clientSecret")
    order_id: int = Field(alias="orderId")
    amount: int
    tax_amount: int = Field(alias="taxAmount")
    total_with_tax: int = Field(alias="totalWithTax")
    tax_rate: float = Field(alias="taxRate")
    quantity: int
    unit_price: int = Field(alias="unitPrice")
    currency: str
    tax: TaxInfo


class UpdatePaymentIntentResponse(_CamelModel):
    id: str
    client_secret: Optional[str] = Field(alias="clientSecret")
    amount: int
    tax_amount: int = Field(alias="taxAmount")
    total_amount: int = Field(alias="totalAmount")
    quantity: int


class WebhookAck(BaseModel):
    received: bool = True


class TaxQuoteResponse(_CamelModel):
    country_code: Optional[str] = Field(alias="countryCode")
    rate: float
    label: str
    display: str
    is_eu: bool = Field(alias="isEU")
    currency: str


# ---------------------------------------------------------------------------
# Provider boundary
# ---------------------------------------------------------------------------

class IntentSpec(BaseModel):
    """Desired state of a provider payment intent."""
    amount: int
    currency: str
    metadata: dict[str, str] = Field(default_factory=dict)
    description: Optional[str] = None


class ProviderIntent(BaseModel):
    """Provider-side payment intent; authoritative for id and client secret."""
    id: str
    status: str
    amount: int
    currency: str
    client_secret: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)


class WebhookEvent(BaseModel):
    id: Optional[str] = None
    type: str
    provider: str
    data: dict[str, Any] = Field(default_factory=dict)
    verified: bool = True


# ---------------------------------------------------------------------------
# Intent metadata snapshot
# ---------------------------------------------------------------------------

class PaymentIntentSnapshot(BaseModel):
    """
    Quote frozen at intent creation, mirrored into provider metadata.

    Provider metadata only carries strings, so the snapshot owns the
    to/from conversion and tolerates partially filled metadata on the way back.
    """
    total_amount: int
    currency: str
    quantity: int
    unit_price: int
    base_amount: int
    tax_amount: int
    tax_rate: Decimal
    tax_label: str
    country_code: Optional[str] = None
    country_source: Optional[str] = None
    user_id: Optional[int] = None
    product_id: Optional[int] = None
    coupon_code: Optional[str] = None
    previous_intent_id: Optional[str] = None
    items: Optional[list[dict[str, Any]]] = None

    def to_metadata(self) -> dict[str, str]:
        meta = {
            "quantity": str(self.quantity),
            "unit_price": str(self.unit_price),
            "base_amount": str(self.base_amount),
            "tax_amount": str(self.tax_amount),
            "total_amount": str(self.total_amount),
            "tax_rate": str(self.tax_rate),
            "tax_label": self.tax_label,
            "country_code": self.country_code or "unknown",
        }
        optional = {
            "country_source": self.country_source,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "coupon_code": self.coupon_code,
            "previous_intent_id": self.previous_intent_id,
        }
        for key, value in optional.items():
            if value is not None:
                meta[key] = str(value)
        if self.items is not None:
            meta["items"] = json.dumps(self.items, ensure_ascii=False, separators=(",", ":"))
        return meta


def meta_int(metadata: dict[str, str], key: str) -> Optional[int]:
    raw = metadata.get(key)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def meta_rate(metadata: dict[str, str], key: str = "tax_rate") -> Optional[Decimal]:
    """Parse a stored tax rate; accepts '0.19' and the legacy '19%' form."""
    raw = (metadata.get(key) or "").strip()
    if not raw:
        return None
    try:
        if raw.endswith("%"):
            return Decimal(raw[:-1]) / Decimal(100)
        return Decimal(raw)
    except InvalidOperation:
        return None


def meta_country(metadata: dict[str, str]) -> Optional[str]:
    code = metadata.get("country_code")
    if not code or code == "unknown":
        return None
    return code
