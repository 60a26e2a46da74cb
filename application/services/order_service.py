"""
订单管理服务 - 管理端状态变更、物流单号与查询
"""
from __future__ import annotations

from typing import List, Optional

from application.ports.directory import UserDirectory
from application.ports.notifications import NotificationDispatcher
from application.services.notifications import NotificationScheduler
from core.logging_config import get_logger
from domain.common.exceptions import (
    DomainValidationException,
    OrderNotFoundException,
    UserNotFoundException,
)
from domain.order.entity import Order, OrderStatus
from domain.order.repository import OrderLedger


logger = get_logger(__name__)


class OrderService:
    def __init__(
        self,
        *,
        ledger: OrderLedger,
        notifier: NotificationDispatcher,
        users: UserDirectory,
        notifications: Optional[NotificationScheduler] = None,
    ):
        self.ledger = ledger
        self.notifier = notifier
        self.notifications = notifications or NotificationScheduler(notifier)
        self.users = users

    async def get(self, order_id: int) -> Order:
        order = await self.ledger.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundException(order_id=order_id)
        return order

    async def list_for_user(self, user_id: int) -> List[Order]:
        if await self.users.get_user(user_id) is None:
            raise UserNotFoundException(user_id)
        return await self.ledger.list_by_user(user_id)

    async def update_status(
        self,
        order_id: int,
        status: OrderStatus,
        *,
        send_notification: bool = False,
        send_email: bool = False,
    ) -> Order:
        """
        管理端状态变更

        非法迁移直接抛出 InvalidTransition（由异常处理器转换为 409），
        通知与邮件只在状态确实变化且调用方要求时发送。
        """
        async with self.ledger.lock(order_id):
            await self.get(order_id)
            order, changed = await self.ledger.update_status(order_id, status)

        logger.info(
            "order_status_update_admin",
            order_id=order_id,
            status=order.status.value,
            changed=changed,
            send_notification=send_notification,
            send_email=send_email,
        )
        if changed and (send_notification or send_email):
            self.notifications.schedule(
                user_id=order.user_id,
                order_id=order.id,
                status=order.status.value,
                push=send_notification,
                email=send_email,
            )
        return order

    async def update_tracking(self, order_id: int, tracking_number: str) -> Order:
        tracking_number = (tracking_number or "").strip()
        if not tracking_number:
            raise DomainValidationException("Tracking number must not be empty", field="trackingNumber")
        async with self.ledger.lock(order_id):
            await self.get(order_id)
            order = await self.ledger.update_tracking(order_id, tracking_number)
        logger.info("order_tracking_updated", order_id=order_id, tracking_number=tracking_number)
        return order
