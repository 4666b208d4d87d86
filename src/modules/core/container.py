"""Service wiring.

Builds the application services with their Django ORM repositories.
The HTTP layer, Celery tasks and management commands obtain services
from here instead of instantiating repositories themselves.
"""

from __future__ import annotations

from modules.carts.repositories import CartDjangoRepository
from modules.carts.services import CartService
from modules.catalog.repositories import (
    CategoryDjangoRepository,
    ProductDjangoRepository,
    SubcategoryDjangoRepository,
)
from modules.catalog.services import CatalogHierarchyManager
from modules.core.storage import DjangoFileStorage
from modules.inventory.services import StockLedger
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.services import OrderService


def stock_ledger() -> StockLedger:
    return StockLedger(product_repository=ProductDjangoRepository())


def catalog_manager() -> CatalogHierarchyManager:
    return CatalogHierarchyManager(
        category_repository=CategoryDjangoRepository(),
        subcategory_repository=SubcategoryDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        file_storage=DjangoFileStorage(),
    )


def cart_service() -> CartService:
    return CartService(cart_repository=CartDjangoRepository(), stock_ledger=stock_ledger())


def order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        stock_ledger=stock_ledger(),
    )
