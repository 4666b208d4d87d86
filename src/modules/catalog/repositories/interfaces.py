"""Catalog repository interfaces.

One contract per entity of the hierarchy.  The cascade helpers
(``deactivate_by_*``) are bulk updates the hierarchy manager calls inside
its own transaction; they never open one themselves.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.catalog.models import Category, Product, Subcategory


class ICategoryRepository(IRepository["Category"]):
    @abstractmethod
    def get_by_name(self, name: str) -> Optional[Category]:
        """Retrieve a category by exact (trimmed) name."""


class ISubcategoryRepository(IRepository["Subcategory"]):
    @abstractmethod
    def deactivate_by_category(self, category_id: str) -> int:
        """Mark every subcategory of a category inactive; return rows changed."""

    @abstractmethod
    def count_by_category(self, category_id: str) -> int:
        """Count subcategories of a category."""


class IProductRepository(IRepository["Product"]):
    @abstractmethod
    def deactivate_by_category(self, category_id: str) -> int:
        """Mark every product of a category inactive; return rows changed."""

    @abstractmethod
    def deactivate_by_subcategory(self, subcategory_id: str) -> int:
        """Mark every product of a subcategory inactive; return rows changed."""

    @abstractmethod
    def count_by_category(self, category_id: str) -> int:
        """Count products of a category."""

    @abstractmethod
    def count_by_subcategory(self, subcategory_id: str) -> int:
        """Count products of a subcategory."""

    @abstractmethod
    def has_order_history(self, id: str) -> bool:
        """Whether any order line references the product."""
