"""
Order DTOs for the administrative and read endpoints.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool

from domain.order.entity import Order, OrderStatus


class OrderStatusUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: OrderStatus
    send_notification: StrictBool = Field(default=False, alias="sendNotification")
    send_email: StrictBool = Field(default=False, alias="sendEmail")


class TrackingUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tracking_number: str = Field(alias="trackingNumber", min_length=1, max_length=128)


class OrderResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    user_id: int = Field(alias="userId")
    product_id: int = Field(alias="productId")
    status: OrderStatus
    amount: int
    tax_amount: int = Field(alias="taxAmount")
    total_amount: int = Field(alias="totalAmount")
    currency: str
    quantity: int
    tax_rate: float = Field(alias="taxRate")
    tax_label: str = Field(alias="taxLabel")
    country_code: Optional[str] = Field(alias="countryCode")
    coupon_code: Optional[str] = Field(alias="couponCode")
    tracking_number: Optional[str] = Field(alias="trackingNumber")
    stripe_payment_id: str = Field(alias="stripePaymentId")
    previous_intent_id: Optional[str] = Field(alias="previousIntentId")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @classmethod
    def from_entity(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            user_id=order.user_id,
            product_id=order.product_id,
            status=order.status,
            amount=order.amount,
            tax_amount=order.tax_amount,
            total_amount=order.total_amount,
            currency=order.currency,
            quantity=order.quantity,
            tax_rate=float(order.tax_rate),
            tax_label=order.tax_label,
            country_code=order.country_code,
            coupon_code=order.coupon_code,
            tracking_number=order.tracking_number,
            stripe_payment_id=order.provider_intent_id,
            previous_intent_id=order.previous_intent_id,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
