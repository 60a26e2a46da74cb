"""
订单账本内存实现

所有订单存放在以 ID 为键的字典中，读写返回深拷贝，调用方只能通过账本方法修改订单。
各方法在两次 await 之间同步完成，单个方法天然原子；跨方法的读-改-写由 lock() 串行化。
"""
from __future__ import annotations

import asyncio
import copy
import itertools
from typing import Dict, List, Optional, Tuple

from core.logging_config import get_logger
from domain.common.exceptions import (
    ConcurrentModificationException,
    IntentConflictException,
    OrderNotFoundException,
)
from domain.order.entity import Order, OrderStatus
from domain.order.repository import OrderLedger


logger = get_logger(__name__)


class InMemoryOrderLedger(OrderLedger):
    """订单账本的内存实现"""

    def __init__(self):
        self._orders: Dict[int, Order] = {}
        self._ids = itertools.count(1)
        self._live_intents: Dict[str, int] = {}
        self._superseded_intents: Dict[str, int] = {}
        self._locks: Dict[int, asyncio.Lock] = {}

    def _load(self, order_id: int) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundException(order_id=order_id)
        return order

    @staticmethod
    def _check_version(order: Order, expected_version: Optional[int]) -> None:
        if expected_version is not None and order.version != expected_version:
            raise ConcurrentModificationException(order.id, expected_version, order.version)

    def _claim_intent(self, intent_id: str, order_id: Optional[int]) -> None:
        owner = self._live_intents.get(intent_id, self._superseded_intents.get(intent_id))
        if owner is not None and owner != order_id:
            raise IntentConflictException(intent_id, order_id=owner)

    async def insert(self, order: Order) -> Order:
        self._claim_intent(order.provider_intent_id, None)
        stored = copy.deepcopy(order)
        stored.id = next(self._ids)
        self._orders[stored.id] = stored
        self._live_intents[stored.provider_intent_id] = stored.id
        for old_id in stored.intent_history:
            self._superseded_intents.setdefault(old_id, stored.id)
        logger.info("order_inserted", order_id=stored.id, intent_id=stored.provider_intent_id, status=stored.status.value)
        return copy.deepcopy(stored)

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        order = self._orders.get(order_id)
        return copy.deepcopy(order) if order is not None else None

    async def get_by_intent_id(self, intent_id: str) -> Optional[Order]:
        order_id = self._live_intents.get(intent_id)
        if order_id is None:
            return None
        return copy.deepcopy(self._orders[order_id])

    async def find_superseding(self, intent_id: str) -> Optional[Order]:
        order_id = self._superseded_intents.get(intent_id)
        if order_id is None:
            return None
        return copy.deepcopy(self._orders[order_id])

    async def update_status(
        self,
        order_id: int,
        status: OrderStatus,
        *,
        expected_version: Optional[int] = None,
    ) -> Tuple[Order, bool]:
        order = self._load(order_id)
        self._check_version(order, expected_version)
        changed = order.transition_to(status)
        return copy.deepcopy(order), changed

    async def relink_intent(
        self,
        order_id: int,
        new_intent_id: str,
        previous_intent_id: str,
        *,
        expected_version: Optional[int] = None,
    ) -> Order:
        order = self._load(order_id)
        self._check_version(order, expected_version)
        if order.provider_intent_id != previous_intent_id:
            raise IntentConflictException(previous_intent_id, order_id=order_id)
        self._claim_intent(new_intent_id, order_id)

        order.relink_intent(new_intent_id)
        self._live_intents.pop(previous_intent_id, None)
        self._superseded_intents[previous_intent_id] = order_id
        self._live_intents[new_intent_id] = order_id
        logger.info("order_intent_relinked", order_id=order_id, previous_intent_id=previous_intent_id, intent_id=new_intent_id)
        return copy.deepcopy(order)

    async def update_amounts(
        self,
        order_id: int,
        *,
        amount: int,
        tax_amount: int,
        quantity: int,
        expected_version: Optional[int] = None,
    ) -> Order:
        order = self._load(order_id)
        self._check_version(order, expected_version)
        order.apply_amounts(amount, tax_amount, quantity)
        return copy.deepcopy(order)

    async def update_tracking(self, order_id: int, tracking_number: str) -> Order:
        order = self._load(order_id)
        order.set_tracking_number(tracking_number)
        return copy.deepcopy(order)

    async def list_by_user(self, user_id: int) -> List[Order]:
        orders = [o for o in self._orders.values() if o.user_id == user_id]
        orders.sort(key=lambda o: (o.created_at, o.id), reverse=True)
        return [copy.deepcopy(o) for o in orders]

    def lock(self, order_id: int) -> asyncio.Lock:
        lock = self._locks.get(order_id)
        if lock is None:
            lock = self._locks[order_id] = asyncio.Lock()
        return lock
