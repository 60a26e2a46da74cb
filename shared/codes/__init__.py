"""
Business codes shared by the domain exceptions and the HTTP layer.

Ranges: 1xxxx request/parameter, 2xxxx checkout & order lifecycle,
3xxxx access, 4xxxx system. Provider-facing codes live in
`shared.codes.payment_codes` (6xxxx).
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    SUCCESS = 0

    # Request / parameter (1xxxx)
    PARAM_ERROR = 10000
    PARAM_VALIDATION_ERROR = 10003

    # Checkout & order lifecycle (2xxxx)
    USER_NOT_FOUND = 20001
    PRODUCT_NOT_FOUND = 20002
    ORDER_NOT_FOUND = 20003
    INVALID_TRANSITION = 20004
    CONFLICT = 20005  # intent already linked / stale order version
    NOT_FOUND = 20006

    # Access (3xxxx)
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # System (4xxxx)
    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003


__all__ = ["BusinessCode"]
