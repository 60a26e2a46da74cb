"""
Order API routes (administrative status/tracking updates and reads).
"""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from api.dependencies import get_order_service
from application.dtos.orders import OrderResponse, OrderStatusUpdateRequest, TrackingUpdateRequest
from application.services.order_service import OrderService


router = APIRouter(tags=["Orders"])


@router.get("/orders/{order_id}", response_model=OrderResponse, response_model_by_alias=True)
async def get_order(order_id: int, service: OrderService = Depends(get_order_service)):
    return OrderResponse.from_entity(await service.get(order_id))


@router.get("/users/{user_id}/orders", response_model=List[OrderResponse], response_model_by_alias=True)
async def list_user_orders(user_id: int, service: OrderService = Depends(get_order_service)):
    orders = await service.list_for_user(user_id)
    return [OrderResponse.from_entity(o) for o in orders]


@router.post("/orders/{order_id}/update-status", response_model=OrderResponse, response_model_by_alias=True)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdateRequest,
    service: OrderService = Depends(get_order_service),
):
    order = await service.update_status(
        order_id,
        payload.status,
        send_notification=payload.send_notification,
        send_email=payload.send_email,
    )
    return OrderResponse.from_entity(order)


@router.post("/orders/{order_id}/tracking", response_model=OrderResponse, response_model_by_alias=True)
async def update_order_tracking(
    order_id: int,
    payload: TrackingUpdateRequest,
    service: OrderService = Depends(get_order_service),
):
    order = await service.update_tracking(order_id, payload.tracking_number)
    return OrderResponse.from_entity(order)
