"""
订单账本接口 - 定义订单数据访问的抽象接口
"""
from abc import ABC, abstractmethod
from typing import AsyncContextManager, List, Optional, Tuple

from .entity import Order, OrderStatus


class OrderLedger(ABC):
    """订单账本抽象接口 - 只定义能做什么，不管怎么做

    约束：
    1. 一个存活（未被替换）的支付意图 ID 最多属于一个订单
    2. 状态变更必须经过状态机校验，非法迁移报告 InvalidTransition
    3. 返回的订单是副本，修改只能通过账本方法完成
    """

    @abstractmethod
    async def insert(self, order: Order) -> Order:
        """插入新订单并分配 ID"""
        pass

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        """根据ID获取订单"""
        pass

    @abstractmethod
    async def get_by_intent_id(self, intent_id: str) -> Optional[Order]:
        """根据存活的支付意图ID获取订单；被替换的ID返回 None"""
        pass

    @abstractmethod
    async def find_superseding(self, intent_id: str) -> Optional[Order]:
        """若 intent_id 已被替换，返回替换它的订单"""
        pass

    @abstractmethod
    async def update_status(
        self,
        order_id: int,
        status: OrderStatus,
        *,
        expected_version: Optional[int] = None,
    ) -> Tuple[Order, bool]:
        """更新订单状态，返回 (订单, 是否发生变化)"""
        pass

    @abstractmethod
    async def relink_intent(
        self,
        order_id: int,
        new_intent_id: str,
        previous_intent_id: str,
        *,
        expected_version: Optional[int] = None,
    ) -> Order:
        """原子地把订单切换到新的支付意图"""
        pass

    @abstractmethod
    async def update_amounts(
        self,
        order_id: int,
        *,
        amount: int,
        tax_amount: int,
        quantity: int,
        expected_version: Optional[int] = None,
    ) -> Order:
        """更新订单金额（数量变化后）"""
        pass

    @abstractmethod
    async def update_tracking(self, order_id: int, tracking_number: str) -> Order:
        """更新物流单号"""
        pass

    @abstractmethod
    async def list_by_user(self, user_id: int) -> List[Order]:
        """获取用户的订单列表（按创建时间倒序）"""
        pass

    @abstractmethod
    def lock(self, order_id: int) -> AsyncContextManager[None]:
        """获取单个订单的互斥锁，串行化同一订单的读-改-写"""
        pass
