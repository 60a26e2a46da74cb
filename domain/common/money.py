"""
金额工具 - 所有金额均为整数最小货币单位（分）
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

SUPPORTED_CURRENCIES = ("usd", "eur")

Number = Union[int, Decimal]


def round_minor(value: Number) -> int:
    """四舍五入到整数最小单位（0.5 向上取整，与前端 Math.round 一致）"""
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_positive_int(value: object) -> bool:
    """严格判断：正整数，且不接受 bool"""
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
