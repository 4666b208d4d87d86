"""Django ORM implementations of the catalog repositories.

Error handling follows the Null Object pattern: look-ups return ``None``
for missing or malformed IDs; the Service Layer decides how to translate
a missing entity into a domain error.

``get_for_update`` issues ``SELECT ... FOR UPDATE`` and must run inside
an atomic block opened by the caller.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.utils import timezone

from modules.catalog.models import Category, Product, Subcategory
from modules.catalog.repositories.interfaces import (
    ICategoryRepository,
    IProductRepository,
    ISubcategoryRepository,
)

logger = structlog.get_logger(__name__)


class CategoryDjangoRepository(ICategoryRepository):
    def get_by_id(self, id: str) -> Optional[Category]:
        try:
            return Category.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Category]:
        try:
            return Category.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_name(self, name: str) -> Optional[Category]:
        return Category.objects.filter(name=name.strip()).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Category]:
        queryset = Category.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: Category) -> Category:
        entity.save()
        logger.info("category.saved", category_id=str(entity.id))
        return entity

    def delete(self, id: str) -> bool:
        """Hard-delete; subcategories and products go with it (schema CASCADE)."""
        deleted, _ = Category.objects.filter(id=id).delete()
        return deleted > 0


class SubcategoryDjangoRepository(ISubcategoryRepository):
    def get_by_id(self, id: str) -> Optional[Subcategory]:
        try:
            return Subcategory.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Subcategory]:
        try:
            return Subcategory.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Subcategory]:
        queryset = Subcategory.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: Subcategory) -> Subcategory:
        entity.save()
        logger.info("subcategory.saved", subcategory_id=str(entity.id))
        return entity

    def delete(self, id: str) -> bool:
        deleted, _ = Subcategory.objects.filter(id=id).delete()
        return deleted > 0

    def deactivate_by_category(self, category_id: str) -> int:
        return Subcategory.objects.filter(
            category_id=category_id, is_active=True
        ).update(is_active=False, updated_at=timezone.now())

    def count_by_category(self, category_id: str) -> int:
        return _count(Subcategory.objects.filter, category_id=category_id)


class ProductDjangoRepository(IProductRepository):
    def get_by_id(self, id: str) -> Optional[Product]:
        try:
            return (
                Product.objects.select_related("subcategory", "category")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Product]:
        """Lock the product row only; parents are read without a lock."""
        try:
            return Product.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Product]:
        """List products with optional Django ORM look-ups.

        Examples of valid filters::

            {"is_active": True}
            {"category_id": "...", "name__icontains": "mouse"}
        """
        queryset = Product.objects.select_related("subcategory", "category")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: Product) -> Product:
        entity.save()
        logger.info("product.saved", product_id=str(entity.id))
        return entity

    def delete(self, id: str) -> bool:
        deleted, _ = Product.objects.filter(id=id).delete()
        return deleted > 0

    def deactivate_by_category(self, category_id: str) -> int:
        return Product.objects.filter(
            category_id=category_id, is_active=True
        ).update(is_active=False, updated_at=timezone.now())

    def deactivate_by_subcategory(self, subcategory_id: str) -> int:
        return Product.objects.filter(
            subcategory_id=subcategory_id, is_active=True
        ).update(is_active=False, updated_at=timezone.now())

    def count_by_category(self, category_id: str) -> int:
        return _count(Product.objects.filter, category_id=category_id)

    def count_by_subcategory(self, subcategory_id: str) -> int:
        return _count(Product.objects.filter, subcategory_id=subcategory_id)

    def has_order_history(self, id: str) -> bool:
        return Product.objects.filter(id=id, order_lines__isnull=False).exists()


def _count(lookup: Any, **filters: Any) -> int:
    """Count rows, treating a malformed ID as matching nothing."""
    try:
        return lookup(**filters).count()
    except (ValueError, ValidationError):
        return 0
