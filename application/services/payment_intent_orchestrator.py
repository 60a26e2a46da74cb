"""
Application service orchestrating checkout payment intents.

Creates a tax-inclusive provider intent plus its pending Order, and rescales
an existing intent when the cart quantity changes. Depends only on the
ProviderClient / directory ports and the OrderLedger abstraction; concrete
adapters are injected from the composition root.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from application.dtos.payments import (
    CreatePaymentIntentRequest,
    IntentSpec,
    PaymentIntentSnapshot,
    ProviderIntent,
    UpdatePaymentIntentRequest,
    meta_country,
    meta_int,
    meta_rate,
)
from application.ports.directory import ProductCatalog, UserDirectory
from application.ports.payment_provider import ProviderClient
from core.logging_config import get_logger
from domain.common.exceptions import (
    DomainValidationException,
    InvalidAmountException,
    InvalidCurrencyException,
    InvalidQuantityException,
    OrderAccessForbiddenException,
    OrderAlreadySettledException,
    OrderNotFoundException,
    PaymentProviderError,
    ProductNotFoundException,
    UserNotFoundException,
)
from domain.common.money import SUPPORTED_CURRENCIES, is_positive_int, round_minor
from domain.order.entity import Order, OrderStatus
from domain.order.repository import OrderLedger
from domain.tax import policy as tax_policy
from shared.codes.payment_codes import MUTABLE_INTENT_STATUSES, SETTLED_INTENT_STATUSES


logger = get_logger(__name__)


# Provider intent status -> order status used when rebuilding a lost order
_RECOVERED_STATUS = {
    "succeeded": OrderStatus.COMPLETED,
    "canceled": OrderStatus.CANCELLED,
}


@dataclass(frozen=True)
class IntentQuote:
    intent_id: str
    client_secret: Optional[str]
    order_id: int
    amount: int
    tax_amount: int
    total: int
    tax_rate: Decimal
    tax_label: str
    quantity: int
    unit_price: int
    currency: str


@dataclass(frozen=True)
class IntentUpdate:
    intent_id: str
    client_secret: Optional[str]
    order_id: int
    amount: int
    tax_amount: int
    total: int
    quantity: int
    replaced: bool


def resolve_country(
    *,
    force: bool,
    body_country: Optional[str],
    query_country: Optional[str],
    profile_country: Optional[str],
) -> tuple[Optional[str], str]:
    """Pick the taxing country and report where it came from.

    An explicit force flag lets the caller override the stored profile;
    otherwise the authenticated profile wins over anything in the request.
    """
    if force and (body_country or query_country):
        return body_country or query_country, "force_country"
    if profile_country:
        return profile_country, "user_profile"
    if body_country:
        return body_country, "request_body"
    if query_country:
        return query_country, "query_param"
    return None, "unknown"


def normalize_currency(currency: Any) -> str:
    if not isinstance(currency, str) or currency.strip().lower() not in SUPPORTED_CURRENCIES:
        raise InvalidCurrencyException(currency)
    return currency.strip().lower()


def validate_quantity(quantity: Any, *, maximum: Optional[int] = None) -> int:
    if not is_positive_int(quantity):
        raise InvalidQuantityException(quantity, maximum=maximum)
    if maximum is not None and quantity > maximum:
        raise InvalidQuantityException(quantity, maximum=maximum)
    return quantity


def _describe(tax_quote: tax_policy.TaxQuote, tax: int, currency: str) -> str:
    if tax_quote.rate == 0:
        return f"Order with {tax_quote.label.lower()}"
    return f"Order with {tax_quote.label} ({tax} {currency})"


class PaymentIntentOrchestrator:
    def __init__(
        self,
        *,
        provider: ProviderClient,
        ledger: OrderLedger,
        users: UserDirectory,
        products: ProductCatalog,
        max_update_quantity: Optional[int] = None,
    ) -> None:
        self.provider = provider
        self.ledger = ledger
        self.users = users
        self.products = products
        self.max_update_quantity = max_update_quantity

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    async def create(
        self,
        req: CreatePaymentIntentRequest,
        *,
        query_country: Optional[str] = None,
        query_force_country: bool = False,
    ) -> IntentQuote:
        currency = normalize_currency(req.currency)
        quantity = validate_quantity(req.quantity)
        if not is_positive_int(req.amount):
            raise InvalidAmountException(req.amount)
        amount = req.amount

        user = await self.users.get_user(req.user_id)
        if user is None:
            raise UserNotFoundException(req.user_id)
        if await self.products.get_product(req.product_id) is None:
            raise ProductNotFoundException(req.product_id)

        country, source = resolve_country(
            force=req.force_country or query_force_country,
            body_country=req.country,
            query_country=query_country,
            profile_country=user.country,
        )
        tax_quote = tax_policy.quote(country)
        unit_price = round_minor(Decimal(amount) / quantity)
        tax = tax_policy.tax_amount(amount, tax_quote)
        total = amount + tax

        snapshot = PaymentIntentSnapshot(
            total_amount=total,
            currency=currency,
            quantity=quantity,
            unit_price=unit_price,
            base_amount=amount,
            tax_amount=tax,
            tax_rate=tax_quote.rate,
            tax_label=tax_quote.label,
            country_code=tax_quote.country_code,
            country_source=source,
            user_id=req.user_id,
            product_id=req.product_id,
            coupon_code=req.coupon_code,
        )
        logger.info(
            "payment_intent_create_request",
            user_id=req.user_id,
            product_id=req.product_id,
            country=tax_quote.country_code,
            country_source=source,
            base_amount=amount,
            tax_amount=tax,
            total_amount=total,
            currency=currency,
        )
        intent = await self.provider.create_intent(
            IntentSpec(
                amount=total,
                currency=currency,
                metadata=snapshot.to_metadata(),
                description=_describe(tax_quote, tax, currency),
            )
        )

        order = Order(
            id=None,
            user_id=req.user_id,
            product_id=req.product_id,
            amount=amount,
            tax_amount=tax,
            currency=currency,
            provider_intent_id=intent.id,
            quantity=quantity,
            tax_rate=tax_quote.rate,
            tax_label=tax_quote.label,
            country_code=tax_quote.country_code,
            coupon_code=req.coupon_code,
        )
        try:
            order = await self.ledger.insert(order)
        except Exception:
            # The customer can still be charged through this intent; recover() rebuilds the order
            logger.error("payment_intent_orphaned", intent_id=intent.id, user_id=req.user_id, exc_info=True)
            raise

        logger.info("payment_intent_created", intent_id=intent.id, order_id=order.id, total_amount=total)
        return IntentQuote(
            intent_id=intent.id,
            client_secret=intent.client_secret,
            order_id=order.id,
            amount=amount,
            tax_amount=tax,
            total=total,
            tax_rate=tax_quote.rate,
            tax_label=tax_quote.label,
            quantity=quantity,
            unit_price=unit_price,
            currency=currency,
        )

    # ------------------------------------------------------------------
    # update
    # ------------------------------------------------------------------

    async def update(self, req: UpdatePaymentIntentRequest) -> IntentUpdate:
        quantity = validate_quantity(req.quantity, maximum=self.max_update_quantity)
        order = await self._live_order(req.payment_intent_id)
        if order.user_id != req.user_id:
            raise OrderAccessForbiddenException(order.id)
        if req.product_id is not None and req.product_id != order.product_id:
            raise DomainValidationException(
                "productId does not match the order",
                field="productId",
                details={"order_id": order.id, "product_id": req.product_id},
            )

        async with self.ledger.lock(order.id):
            current = await self.ledger.get_by_id(order.id)
            if current is None or current.provider_intent_id != req.payment_intent_id:
                # Replaced by a concurrent update while we waited for the lock
                raise OrderNotFoundException(
                    intent_id=req.payment_intent_id,
                    superseded_by=current.provider_intent_id if current else None,
                )
            if current.is_final:
                logger.warning("payment_intent_update_on_final_order", order_id=current.id, status=current.status.value)
                raise OrderAlreadySettledException(current.id, status=current.status.value)
            return await self._rescale(current, quantity, req.new_items)

    async def _live_order(self, intent_id: str) -> Order:
        order = await self.ledger.get_by_intent_id(intent_id)
        if order is not None:
            return order
        superseding = await self.ledger.find_superseding(intent_id)
        raise OrderNotFoundException(
            intent_id=intent_id,
            superseded_by=superseding.provider_intent_id if superseding else None,
        )

    async def _rescale(self, order: Order, quantity: int, new_items: Optional[list[dict]]) -> IntentUpdate:
        intent = await self.provider.retrieve_intent(order.provider_intent_id)
        if intent.status in SETTLED_INTENT_STATUSES:
            # paid, webhook still in flight
            logger.warning("payment_intent_update_on_settled_intent", order_id=order.id, intent_id=intent.id, intent_status=intent.status)
            raise OrderAlreadySettledException(order.id, status=order.status.value, intent_status=intent.status)
        meta = intent.metadata or {}

        # Country and rate stay frozen at creation; only the base scales
        unit_price = self._recover_unit_price(meta, order)
        rate = meta_rate(meta)
        if rate is None:
            rate = order.tax_rate
        new_base = unit_price * quantity
        new_tax = round_minor(Decimal(new_base) * rate)
        new_total = new_base + new_tax

        snapshot = PaymentIntentSnapshot(
            total_amount=new_total,
            currency=order.currency,
            quantity=quantity,
            unit_price=unit_price,
            base_amount=new_base,
            tax_amount=new_tax,
            tax_rate=rate,
            tax_label=meta.get("tax_label") or order.tax_label,
            country_code=meta_country(meta) or order.country_code,
            country_source=meta.get("country_source"),
            user_id=order.user_id,
            product_id=order.product_id,
            coupon_code=order.coupon_code,
            items=new_items if new_items is not None else self._rescale_items(meta, quantity),
        )
        logger.info(
            "payment_intent_update_request",
            intent_id=intent.id,
            intent_status=intent.status,
            order_id=order.id,
            quantity=quantity,
            unit_price=unit_price,
            base_amount=new_base,
            tax_amount=new_tax,
            total_amount=new_total,
        )

        result: Optional[ProviderIntent] = None
        if intent.status in MUTABLE_INTENT_STATUSES:
            try:
                result = await self.provider.update_intent(
                    intent.id,
                    IntentSpec(amount=new_total, currency=order.currency, metadata=snapshot.to_metadata()),
                )
            except PaymentProviderError as exc:
                logger.warning("payment_intent_update_rejected", intent_id=intent.id, error=exc.message)
        else:
            logger.info("payment_intent_not_mutable", intent_id=intent.id, intent_status=intent.status)

        replaced = result is None
        if replaced:
            replacement = snapshot.model_copy(update={"previous_intent_id": intent.id})
            result = await self.provider.create_intent(
                IntentSpec(amount=new_total, currency=order.currency, metadata=replacement.to_metadata())
            )
            await self.ledger.relink_intent(order.id, result.id, intent.id)
            logger.info("payment_intent_replaced", order_id=order.id, previous_intent_id=intent.id, intent_id=result.id)

        order = await self.ledger.update_amounts(order.id, amount=new_base, tax_amount=new_tax, quantity=quantity)
        return IntentUpdate(
            intent_id=result.id,
            client_secret=result.client_secret,
            order_id=order.id,
            amount=new_base,
            tax_amount=new_tax,
            total=new_total,
            quantity=quantity,
            replaced=replaced,
        )

    @staticmethod
    def _recover_unit_price(meta: dict[str, str], order: Order) -> int:
        """Unit price agreed at creation; never re-read from the catalog."""
        unit_price = meta_int(meta, "unit_price")
        if unit_price:
            return unit_price
        base = meta_int(meta, "base_amount")
        stored_quantity = meta_int(meta, "quantity")
        if base and stored_quantity:
            return round_minor(Decimal(base) / stored_quantity)
        return round_minor(Decimal(order.amount) / order.quantity)

    @staticmethod
    def _rescale_items(meta: dict[str, str], quantity: int) -> Optional[list[dict]]:
        raw = meta.get("items")
        if not raw:
            return None
        try:
            items = json.loads(raw)
        except ValueError:
            logger.warning("payment_intent_items_unparseable", items=raw[:200])
            return None
        if not isinstance(items, list):
            return None
        return [{**item, "quantity": quantity} for item in items if isinstance(item, dict)]

    # ------------------------------------------------------------------
    # recover
    # ------------------------------------------------------------------

    async def recover(self, intent_id: str) -> Order:
        """Rebuild the order for an intent whose ledger insert was lost."""
        existing = await self.ledger.get_by_intent_id(intent_id)
        if existing is not None:
            return existing
        superseding = await self.ledger.find_superseding(intent_id)
        if superseding is not None:
            raise OrderNotFoundException(intent_id=intent_id, superseded_by=superseding.provider_intent_id)

        intent = await self.provider.retrieve_intent(intent_id)
        meta = intent.metadata or {}
        user_id = meta_int(meta, "user_id")
        product_id = meta_int(meta, "product_id")
        base = meta_int(meta, "base_amount")
        tax = meta_int(meta, "tax_amount")
        if None in (user_id, product_id, base, tax):
            raise DomainValidationException(
                "Payment intent metadata is incomplete",
                field="metadata",
                details={"payment_intent_id": intent_id, "keys": sorted(meta)},
            )
        if base + tax != intent.amount:
            raise DomainValidationException(
                "Payment intent amount does not match its metadata",
                field="metadata",
                details={"payment_intent_id": intent_id, "amount": intent.amount, "base_amount": base, "tax_amount": tax},
            )

        country = meta_country(meta)
        rate = meta_rate(meta)
        quantity = meta_int(meta, "quantity") or 1
        order = Order(
            id=None,
            user_id=user_id,
            product_id=product_id,
            amount=base,
            tax_amount=tax,
            currency=intent.currency,
            provider_intent_id=intent.id,
            status=_RECOVERED_STATUS.get(intent.status, OrderStatus.PENDING),
            quantity=quantity,
            tax_rate=rate if rate is not None else tax_policy.quote(country).rate,
            tax_label=meta.get("tax_label") or tax_policy.quote(country).label,
            country_code=country,
            coupon_code=meta.get("coupon_code"),
            previous_intent_id=meta.get("previous_intent_id"),
        )
        order = await self.ledger.insert(order)
        logger.warning("order_recovered_from_intent", order_id=order.id, intent_id=intent.id, status=order.status.value)
        return order
