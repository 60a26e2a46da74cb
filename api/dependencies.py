"""
API依赖项 - 从应用状态中取出已装配的服务
"""
from fastapi import Depends, Request

from api.container import ServiceContainer
from application.services.order_service import OrderService
from application.services.payment_intent_orchestrator import PaymentIntentOrchestrator
from application.services.webhook_reconciler import WebhookReconciler


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_orchestrator(container: ServiceContainer = Depends(get_container)) -> PaymentIntentOrchestrator:
    return container.orchestrator


def get_reconciler(container: ServiceContainer = Depends(get_container)) -> WebhookReconciler:
    return container.reconciler


def get_order_service(container: ServiceContainer = Depends(get_container)) -> OrderService:
    return container.orders
