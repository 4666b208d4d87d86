"""Catalog DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
DTOs are immutable (``frozen=True``).

- ``CreateCategoryDTO`` / ``UpdateCategoryDTO``: category input.
- ``CreateSubcategoryDTO``: subcategory input.
- ``CreateProductDTO`` / ``UpdateProductDTO``: product input.
- ``ToggleResultDTO``: outcome of an activation toggle, with cascade counts.
- ``ProductOutputDTO``: product output.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.catalog.models import (
    ALLOWED_IMAGE_EXTENSIONS,
    CATEGORY_NAME_MAX_LENGTH,
    CATEGORY_NAME_MIN_LENGTH,
    PRODUCT_NAME_MAX_LENGTH,
)

if TYPE_CHECKING:
    from modules.catalog.models import Product


def _check_category_name(v: str) -> str:
    v = v.strip()
    if not CATEGORY_NAME_MIN_LENGTH <= len(v) <= CATEGORY_NAME_MAX_LENGTH:
        raise ValueError(
            f"Name must have between {CATEGORY_NAME_MIN_LENGTH} and "
            f"{CATEGORY_NAME_MAX_LENGTH} characters."
        )
    return v


def _check_image(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    extension = v.rsplit(".", 1)[-1].lower() if "." in v else ""
    if extension not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValueError("Image must be a jpg, jpeg, png or gif file.")
    return v


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateCategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _check_category_name(v)


class UpdateCategoryDTO(BaseModel):
    """All fields are optional; only supplied fields are updated."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_length(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _check_category_name(v)


class CreateSubcategoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    category_id: UUID
    name: str
    description: str = ""

    @field_validator("name")
    @classmethod
    def name_length(cls, v: str) -> str:
        return _check_category_name(v)


class CreateProductDTO(BaseModel):
    """Immutable DTO for product creation requests.

    Validates:
    - ``name`` is non-empty and at most 200 characters.
    - ``price`` is a non-negative Decimal.
    - ``stock`` is non-negative (initial ledger balance).
    - ``image`` (optional) has an allowed extension.
    """

    model_config = ConfigDict(frozen=True)

    subcategory_id: UUID
    category_id: UUID
    name: str
    price: Decimal
    description: str = ""
    stock: int = 0
    image: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_must_not_be_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Product name must not be empty.")
        if len(v) > PRODUCT_NAME_MAX_LENGTH:
            raise ValueError(
                f"Product name must have at most {PRODUCT_NAME_MAX_LENGTH} characters."
            )
        return v

    @field_validator("price")
    @classmethod
    def price_must_be_non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Price cannot be negative.")
        return v

    @field_validator("stock")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock cannot be negative.")
        return v

    @field_validator("image")
    @classmethod
    def image_extension(cls, v: Optional[str]) -> Optional[str]:
        return _check_image(v)


class UpdateProductDTO(BaseModel):
    """Partial product update.  Stock is deliberately absent."""

    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    image: Optional[str] = None

    @field_validator("price")
    @classmethod
    def price_must_be_non_negative(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v < 0:
            raise ValueError("Price cannot be negative.")
        return v

    @field_validator("image")
    @classmethod
    def image_extension(cls, v: Optional[str]) -> Optional[str]:
        return _check_image(v)


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class ToggleResultDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    entity_id: UUID
    is_active: bool
    subcategories_affected: int = 0
    products_affected: int = 0


class ProductOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    description: str
    price: Decimal
    stock: int
    is_active: bool
    category_id: UUID
    subcategory_id: UUID
    image_url: Optional[str]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, product: Product) -> ProductOutputDTO:
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            stock=product.stock,
            is_active=product.is_active,
            category_id=product.category_id,
            subcategory_id=product.subcategory_id,
            image_url=product.image_url,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )
