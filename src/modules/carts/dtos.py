"""Cart DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from modules.carts.models import CartLine


class CartLineOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    @classmethod
    def from_entity(cls, line: CartLine) -> CartLineOutputDTO:
        return cls(
            product_id=line.product_id,
            product_name=line.product.name,
            quantity=line.quantity,
            unit_price=line.unit_price,
            subtotal=line.subtotal,
        )


class CartOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    lines: List[CartLineOutputDTO]
    total: Decimal
