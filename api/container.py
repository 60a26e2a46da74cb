"""
服务装配 - 在应用启动时组装端口实现与应用服务
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from application.ports.directory import ProductCatalog, UserDirectory
from application.ports.notifications import NotificationDispatcher
from application.ports.payment_provider import ProviderClient
from application.services.notifications import NotificationScheduler
from application.services.order_service import OrderService
from application.services.payment_intent_orchestrator import PaymentIntentOrchestrator
from application.services.webhook_reconciler import WebhookReconciler
from core.config import settings
from core.settings import payment_settings
from domain.order.repository import OrderLedger


@dataclass
class ServiceContainer:
    ledger: OrderLedger
    provider: ProviderClient
    notifier: NotificationDispatcher
    notifications: NotificationScheduler
    users: UserDirectory
    products: ProductCatalog
    orchestrator: PaymentIntentOrchestrator
    reconciler: WebhookReconciler
    orders: OrderService

    async def aclose(self) -> None:
        # 先等后台通知投递完，再关闭底层 HTTP 客户端
        await self.notifications.drain()
        close = getattr(self.notifier, "aclose", None)
        if close is not None:
            await close()


def build_container(
    *,
    ledger: Optional[OrderLedger] = None,
    provider: Optional[ProviderClient] = None,
    notifier: Optional[NotificationDispatcher] = None,
    users: Optional[UserDirectory] = None,
    products: Optional[ProductCatalog] = None,
    webhook_secret: Optional[str] = None,
    dev_bypass_enabled: Optional[bool] = None,
    require_signature: Optional[bool] = None,
) -> ServiceContainer:
    """按配置组装服务；任何端口都可以被显式传入的实现替换（测试时使用）。"""
    if ledger is None:
        from infrastructure.ledger import InMemoryOrderLedger
        ledger = InMemoryOrderLedger()
    if provider is None:
        from infrastructure.external.payments import get_payment_provider
        provider = get_payment_provider()
    if notifier is None:
        from infrastructure.external.notifications import get_notification_dispatcher
        notifier = get_notification_dispatcher()
    if users is None or products is None:
        from infrastructure.directory import InMemoryProductCatalog, InMemoryUserDirectory, demo_directory
        if settings.is_production:
            demo_users, demo_products = InMemoryUserDirectory(), InMemoryProductCatalog()
        else:
            demo_users, demo_products = demo_directory()
        users = users if users is not None else demo_users
        products = products if products is not None else demo_products

    notifications = NotificationScheduler(notifier)
    webhook_cfg = payment_settings.webhook
    reconciler = WebhookReconciler(
        ledger=ledger,
        provider=provider,
        notifier=notifier,
        webhook_secret=webhook_secret if webhook_secret is not None else payment_settings.stripe.webhook_secret,
        require_signature=payment_settings.is_production if require_signature is None else require_signature,
        dev_bypass_enabled=webhook_cfg.dev_bypass_enabled if dev_bypass_enabled is None else dev_bypass_enabled,
        dev_bypass_header=webhook_cfg.dev_bypass_header,
        notifications=notifications,
    )
    return ServiceContainer(
        ledger=ledger,
        provider=provider,
        notifier=notifier,
        notifications=notifications,
        users=users,
        products=products,
        orchestrator=PaymentIntentOrchestrator(
            provider=provider,
            ledger=ledger,
            users=users,
            products=products,
            max_update_quantity=settings.ORDER_MAX_QUANTITY,
        ),
        reconciler=reconciler,
        orders=OrderService(ledger=ledger, notifier=notifier, users=users, notifications=notifications),
    )
