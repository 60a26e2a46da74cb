"""
Payments API routes.

Checkout intent creation/update, provider webhooks and intent recovery.
Keep this thin: no SDK details here.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_orchestrator, get_reconciler
from application.dtos.orders import OrderResponse
from application.dtos.payments import (
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    TaxInfo,
    UpdatePaymentIntentRequest,
    UpdatePaymentIntentResponse,
    WebhookAck,
)
from application.services.payment_intent_orchestrator import PaymentIntentOrchestrator
from application.services.webhook_reconciler import WebhookReconciler
from core.logging_config import get_logger
from domain.tax.policy import TaxQuote


router = APIRouter(tags=["Payments"])
logger = get_logger(__name__)


@router.post(
    "/create-payment-intent",
    response_model=CreatePaymentIntentResponse,
    response_model_by_alias=True,
    summary="Create a tax-inclusive payment intent and its pending order",
)
async def create_payment_intent(
    payload: CreatePaymentIntentRequest,
    country: Optional[str] = Query(default=None),
    force_country: bool = Query(default=False),
    orchestrator: PaymentIntentOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.create(payload, query_country=country, query_force_country=force_country)
    display = TaxQuote(country_code=None, rate=result.tax_rate, label=result.tax_label).percentage
    return CreatePaymentIntentResponse(
        id=result.intent_id,
        client_secret=result.client_secret,
        order_id=result.order_id,
        amount=result.amount,
        tax_amount=result.tax_amount,
        total_with_tax=result.total,
        tax_rate=float(result.tax_rate),
        quantity=result.quantity,
        unit_price=result.unit_price,
        currency=result.currency,
        tax=TaxInfo(
            amount=result.tax_amount,
            rate=float(result.tax_rate),
            label=result.tax_label,
            display=display,
        ),
    )


@router.post(
    "/update-payment-intent",
    response_model=UpdatePaymentIntentResponse,
    response_model_by_alias=True,
    summary="Rescale an open payment intent to a new quantity",
)
async def update_payment_intent(
    payload: UpdatePaymentIntentRequest,
    orchestrator: PaymentIntentOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.update(payload)
    return UpdatePaymentIntentResponse(
        id=result.intent_id,
        client_secret=result.client_secret,
        amount=result.amount,
        tax_amount=result.tax_amount,
        total_amount=result.total,
        quantity=result.quantity,
    )


@router.post("/webhook", response_model=WebhookAck, summary="Provider webhook")
@router.post("/webhook/stripe", response_model=WebhookAck, include_in_schema=False)
async def payments_webhook(request: Request, reconciler: WebhookReconciler = Depends(get_reconciler)):
    raw_body = await request.body()
    result = await reconciler.process(request.headers, raw_body)
    logger.info(
        "payment_webhook_processed",
        event_type=result.event_type,
        outcome=result.outcome.value,
        order_id=result.order_id,
    )
    # 200 for every authenticated event, including rejected transitions, so the provider stops retrying
    return WebhookAck()


@router.post(
    "/payment-intents/{intent_id}/recover",
    response_model=OrderResponse,
    response_model_by_alias=True,
    summary="Rebuild a missing order from the intent's metadata",
)
async def recover_order(intent_id: str, orchestrator: PaymentIntentOrchestrator = Depends(get_orchestrator)):
    order = await orchestrator.recover(intent_id)
    return OrderResponse.from_entity(order)
