"""
订单领域实体 - 订单聚合根与状态机
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.common.exceptions import (
    DomainValidationException,
    InvalidStatusTransitionException,
)


class OrderStatus(str, Enum):
    """订单状态枚举"""
    PENDING = "pending"         # 待支付
    COMPLETED = "completed"     # 支付成功（终态）
    FAILED = "failed"           # 支付失败（终态）
    CANCELLED = "cancelled"     # 已取消（终态）


# 单调状态机：终态没有出边
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.COMPLETED, OrderStatus.FAILED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.FAILED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Order:
    """
    订单聚合根 - 管理订单生命周期

    业务规则：
    1. amount + tax_amount 始终等于当前支付意图的扣款总额
    2. 状态迁移单调，终态不可回退
    3. provider_intent_id 可被替换，被替换的 ID 保留在 intent_history 中
    """

    id: Optional[int]
    user_id: int
    product_id: int
    amount: int  # 税前金额（最小货币单位）
    tax_amount: int
    currency: str
    provider_intent_id: str
    status: OrderStatus = OrderStatus.PENDING

    quantity: int = 1
    tax_rate: Decimal = field(default_factory=lambda: Decimal("0"))
    tax_label: str = ""
    country_code: Optional[str] = None

    coupon_code: Optional[str] = None
    tracking_number: Optional[str] = None
    previous_intent_id: Optional[str] = None
    intent_history: list[str] = field(default_factory=list)

    version: int = 0
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self):
        if self.amount <= 0:
            raise DomainValidationException(f"Order amount must be positive: {self.amount}", field="amount")
        if self.tax_amount < 0:
            raise DomainValidationException(f"Tax amount must not be negative: {self.tax_amount}", field="tax_amount")
        if self.quantity < 1:
            raise DomainValidationException(f"Quantity must be positive: {self.quantity}", field="quantity")
        self.status = OrderStatus(self.status)
        self.currency = self.currency.lower()

    @property
    def total_amount(self) -> int:
        return self.amount + self.tax_amount

    @property
    def is_final(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, target: OrderStatus) -> bool:
        """
        迁移到目标状态

        返回 False 表示已处于目标状态（幂等空操作）；非法迁移抛出 InvalidTransition。
        """
        target = OrderStatus(target)
        if self.status == target:
            return False
        if not self.can_transition_to(target):
            raise InvalidStatusTransitionException(self.id, self.status.value, target.value)
        self.status = target
        self._touch()
        return True

    def relink_intent(self, new_intent_id: str) -> None:
        """切换到替换后的支付意图，旧 ID 记入审计历史"""
        if new_intent_id == self.provider_intent_id:
            return
        old = self.provider_intent_id
        self.previous_intent_id = old
        self.intent_history.append(old)
        self.provider_intent_id = new_intent_id
        self._touch()

    def apply_amounts(self, amount: int, tax_amount: int, quantity: int) -> None:
        if amount <= 0 or tax_amount < 0 or quantity < 1:
            raise DomainValidationException(
                "Invalid order amounts",
                details={"amount": amount, "tax_amount": tax_amount, "quantity": quantity},
            )
        self.amount = amount
        self.tax_amount = tax_amount
        self.quantity = quantity
        self._touch()

    def set_tracking_number(self, tracking_number: str) -> None:
        self.tracking_number = tracking_number
        self._touch()

    def _touch(self) -> None:
        self.version += 1
        self.updated_at = _utcnow()
