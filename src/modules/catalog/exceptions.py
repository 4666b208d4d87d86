"""Catalog domain exceptions.

Raised by ``CatalogHierarchyManager`` when hierarchy rules are violated.
"""

from __future__ import annotations

from modules.core.exceptions import DomainError, NotFound


class CategoryNotFound(NotFound):
    """The requested category does not exist."""


class SubcategoryNotFound(NotFound):
    """The requested subcategory does not exist."""


class ProductNotFound(NotFound):
    """The requested product does not exist."""


class InactiveParent(DomainError):
    """The parent subcategory or category is inactive."""

    code = "inactive_parent"


class HierarchyMismatch(DomainError):
    """The subcategory does not belong to the given category."""

    code = "hierarchy_mismatch"


class CategoryAlreadyExists(DomainError):
    """A category with the same name already exists."""

    code = "category_already_exists"


class InvalidCatalogData(DomainError):
    """Catalog data failed model validation or a schema constraint."""

    code = "invalid_catalog_data"
