"""Cart line model.

Business rules implemented:
- One line per (user, product) pair (unique constraint).
- Quantity is at least 1 (application validation + DB check constraint).
- ``unit_price`` is a snapshot taken when the line is inserted and is not
  refreshed when the live product price changes.
- Every unit on a line is backed by a Stock Ledger reservation.
- A user with cart lines cannot be deleted; clear the cart first so the
  reserved stock is returned.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel


class CartLine(BaseModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="cart_lines",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.CASCADE,
        related_name="cart_lines",
    )
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )

    class Meta:
        db_table = "cart_lines"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "product"],
                name="cart_lines_user_product_uniq",
            ),
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="cart_lines_quantity_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["updated_at"], name="cart_lines_updated_idx"),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity}"
