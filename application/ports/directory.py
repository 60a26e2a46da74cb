"""
Read-only ports onto the user and catalog collaborators.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class CustomerProfile:
    id: int
    email: Optional[str] = None
    country: Optional[str] = None
    language: str = "en"


@dataclass(frozen=True)
class CatalogProduct:
    id: int
    title: str
    price: int  # USD cents
    price_eur: int  # EUR cents


@runtime_checkable
class UserDirectory(Protocol):
    async def get_user(self, user_id: int) -> Optional[CustomerProfile]: ...


@runtime_checkable
class ProductCatalog(Protocol):
    async def get_product(self, product_id: int) -> Optional[CatalogProduct]: ...
