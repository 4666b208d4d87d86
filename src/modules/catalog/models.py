"""Catalog hierarchy: Category -> Subcategory -> Product.

Business rules implemented:
- Category names are unique and 2..100 characters long.
- A Category owns its Subcategories and a Subcategory owns its Products
  (``on_delete=CASCADE`` at the schema level).
- ``Product.category`` must equal ``Product.subcategory.category``.
- Price is a non-negative decimal; stock is a non-negative integer
  (application validation + DB check constraints).
- Product stock is mutated only through ``modules.inventory.services.StockLedger``.
- Activation rules (cascading deactivation, parent-active checks) live in
  ``modules.catalog.services.CatalogHierarchyManager``, never in save hooks.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel

CATEGORY_NAME_MIN_LENGTH = 2
CATEGORY_NAME_MAX_LENGTH = 100
PRODUCT_NAME_MAX_LENGTH = 200
ALLOWED_IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif")


def validate_image_name(value: str) -> None:
    extension = value.rsplit(".", 1)[-1].lower() if "." in value else ""
    if extension not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError("Image must be a jpg, jpeg, png or gif file.")


class Category(BaseModel):
    """Top-level catalog node.

    Deactivating a category cascades to its subcategories and products;
    reactivation does not.
    """

    name = models.CharField(max_length=CATEGORY_NAME_MAX_LENGTH, unique=True)
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "categories"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="categories_active_idx"),
        ]

    def clean(self) -> None:
        super().clean()
        if self.name:
            self.name = self.name.strip()
        if not self.name or len(self.name) < CATEGORY_NAME_MIN_LENGTH:
            raise ValidationError(
                {
                    "name": (
                        f"Category name must have between {CATEGORY_NAME_MIN_LENGTH} "
                        f"and {CATEGORY_NAME_MAX_LENGTH} characters."
                    )
                }
            )

    def __str__(self) -> str:
        return self.name


class Subcategory(BaseModel):
    category = models.ForeignKey(
        "catalog.Category",
        on_delete=models.CASCADE,
        related_name="subcategories",
    )
    name = models.CharField(max_length=CATEGORY_NAME_MAX_LENGTH)
    description = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "subcategories"
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["category", "name"],
                name="subcategories_category_name_uniq",
            ),
        ]
        indexes = [
            models.Index(fields=["is_active"], name="subcategories_active_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.category_id}/{self.name}"


class Product(BaseModel):
    """Sellable item.

    ``category`` is denormalised from ``subcategory.category`` so products
    can be filtered and cascaded per category with a single query.
    """

    subcategory = models.ForeignKey(
        "catalog.Subcategory",
        on_delete=models.CASCADE,
        related_name="products",
    )
    category = models.ForeignKey(
        "catalog.Category",
        on_delete=models.CASCADE,
        related_name="products",
    )
    name = models.CharField(max_length=PRODUCT_NAME_MAX_LENGTH)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    stock = models.PositiveIntegerField(default=0)
    image = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        default=None,
        validators=[validate_image_name],
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="products_active_idx"),
            models.Index(fields=["name"], name="products_name_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
            models.CheckConstraint(
                check=models.Q(stock__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.price is not None and self.price < 0:
            raise ValidationError({"price": "Price cannot be negative."})
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": "Stock cannot be negative."})
        if (
            self.subcategory_id
            and self.category_id
            and self.subcategory.category_id != self.category_id
        ):
            raise ValidationError(
                {"subcategory": "Subcategory does not belong to the category."}
            )

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    def has_stock(self, quantity: int) -> bool:
        return self.stock >= quantity

    @property
    def image_url(self) -> Optional[str]:
        if not self.image:
            return None
        base_url = settings.MEDIA_BASE_URL.rstrip("/")
        return f"{base_url}/{settings.MEDIA_URL.strip('/')}/{self.image}"

    def __str__(self) -> str:
        return self.name
