"""领域层业务异常定义，供领域、应用与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Any, Optional

from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
        error_type: str = "ValidationError",
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type=error_type,
            details=details,
            field=field,
        )


class InvalidAmountException(DomainValidationException):
    def __init__(self, amount: Any):
        super().__init__(
            f"Amount must be a positive integer of minor units, got {amount!r}",
            field="amount",
            details={"amount": repr(amount)},
            error_type="InvalidAmount",
        )


class InvalidCurrencyException(DomainValidationException):
    def __init__(self, currency: Any):
        super().__init__(
            "Currency must be either 'usd' or 'eur'",
            field="currency",
            details={"currency": repr(currency)},
            error_type="InvalidCurrency",
        )


class InvalidQuantityException(DomainValidationException):
    def __init__(self, quantity: Any, *, maximum: Optional[int] = None):
        message = "Quantity must be a positive integer"
        if maximum is not None:
            message = f"Quantity must be between 1 and {maximum}"
        super().__init__(
            message,
            field="quantity",
            details={"quantity": repr(quantity), "max": maximum},
            error_type="InvalidQuantity",
        )


class UserNotFoundException(BusinessException):
    def __init__(self, user_id: Any):
        super().__init__(
            code=BusinessCode.USER_NOT_FOUND,
            message="User not found",
            error_type="UserNotFound",
            details={"user_id": user_id},
        )


class ProductNotFoundException(BusinessException):
    def __init__(self, product_id: Any):
        super().__init__(
            code=BusinessCode.PRODUCT_NOT_FOUND,
            message="Product not found",
            error_type="ProductNotFound",
            details={"product_id": product_id},
        )


class OrderNotFoundException(BusinessException):
    def __init__(
        self,
        *,
        order_id: Optional[int] = None,
        intent_id: Optional[str] = None,
        superseded_by: Optional[str] = None,
    ):
        details: dict = {}
        if order_id is not None:
            details["order_id"] = order_id
        if intent_id is not None:
            details["payment_intent_id"] = intent_id
        if superseded_by is not None:
            details["superseded_by"] = superseded_by
        super().__init__(
            code=BusinessCode.ORDER_NOT_FOUND,
            message="Order not found",
            error_type="OrderNotFound",
            details=details or None,
        )


class OrderAccessForbiddenException(BusinessException):
    def __init__(self, order_id: int):
        super().__init__(
            code=BusinessCode.FORBIDDEN,
            message="Order belongs to another user",
            error_type="Forbidden",
            details={"order_id": order_id},
        )


class InvalidStatusTransitionException(BusinessException):
    """订单状态机拒绝的迁移（重复/乱序事件或管理端误操作）"""

    def __init__(self, order_id: Optional[int], current: str, target: str):
        self.order_id = order_id
        self.current = current
        self.target = target
        super().__init__(
            code=BusinessCode.INVALID_TRANSITION,
            message=f"Cannot move order from {current} to {target}",
            error_type="InvalidTransition",
            details={"order_id": order_id, "current": current, "target": target},
            field="status",
        )


class OrderAlreadySettledException(BusinessException):
    """已结算（终态或支付已成功）的订单不再允许改价"""

    def __init__(self, order_id: int, *, status: str, intent_status: Optional[str] = None):
        details: dict = {"order_id": order_id, "status": status}
        if intent_status is not None:
            details["intent_status"] = intent_status
        super().__init__(
            code=BusinessCode.INVALID_TRANSITION,
            message=f"Order {order_id} is already {status} and can no longer be changed",
            error_type="OrderAlreadySettled",
            details=details,
        )


class IntentConflictException(BusinessException):
    def __init__(self, intent_id: str, *, order_id: Optional[int] = None):
        super().__init__(
            code=BusinessCode.CONFLICT,
            message=f"Payment intent {intent_id} is already linked to another order",
            error_type="IntentConflict",
            details={"payment_intent_id": intent_id, "order_id": order_id},
        )


class ConcurrentModificationException(BusinessException):
    def __init__(self, order_id: int, expected: int, actual: int):
        super().__init__(
            code=BusinessCode.CONFLICT,
            message="Order was modified concurrently",
            error_type="ConcurrentModification",
            details={"order_id": order_id, "expected_version": expected, "actual_version": actual},
        )


class PaymentProviderError(BusinessException):
    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        full_details = {"provider": provider, "provider_code": provider_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.PROVIDER_ERROR,
            message=message,
            error_type="PaymentProviderError",
            details=full_details,
        )


class PaymentSignatureError(BusinessException):
    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.SIGNATURE_ERROR,
            message=message,
            error_type="PaymentSignatureError",
            details=full_details,
        )
