"""
用户目录与商品目录的内存实现

用户注册/登录与商品同步由外部系统负责，这里只保存订单编排需要的只读字段。
"""
from __future__ import annotations

from typing import Dict, Iterable, Optional

from application.ports.directory import CatalogProduct, CustomerProfile


class InMemoryUserDirectory:
    def __init__(self, users: Iterable[CustomerProfile] = ()):
        self._users: Dict[int, CustomerProfile] = {u.id: u for u in users}

    def add(self, user: CustomerProfile) -> None:
        self._users[user.id] = user

    async def get_user(self, user_id: int) -> Optional[CustomerProfile]:
        return self._users.get(user_id)


class InMemoryProductCatalog:
    def __init__(self, products: Iterable[CatalogProduct] = ()):
        self._products: Dict[int, CatalogProduct] = {p.id: p for p in products}

    def add(self, product: CatalogProduct) -> None:
        self._products[product.id] = product

    async def get_product(self, product_id: int) -> Optional[CatalogProduct]:
        return self._products.get(product_id)


def demo_directory() -> tuple[InMemoryUserDirectory, InMemoryProductCatalog]:
    """本地开发用的演示数据"""
    users = InMemoryUserDirectory([
        CustomerProfile(id=1, email="demo.de@example.com", country="DE", language="de"),
        CustomerProfile(id=2, email="demo.us@example.com", country="US"),
        CustomerProfile(id=3, email="demo@example.com"),
    ])
    products = InMemoryProductCatalog([
        CatalogProduct(id=1, title="Jetson Orin Nano Developer Kit", price=50000, price_eur=46000),
        CatalogProduct(id=2, title="Jetson AGX Orin 64GB", price=299900, price_eur=276000),
    ])
    return users, products
