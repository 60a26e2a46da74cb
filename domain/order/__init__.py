from .entity import Order, OrderStatus, ALLOWED_TRANSITIONS
from .repository import OrderLedger

__all__ = ["Order", "OrderStatus", "ALLOWED_TRANSITIONS", "OrderLedger"]
