"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
DTOs are immutable (``frozen=True``).

- ``CreateOrderDTO``: checkout input (the lines come from the cart).
- ``OrderLineOutputDTO``: output for a single line.
- ``StatusHistoryDTO``: output for a status history record.
- ``OrderOutputDTO``: output with lines and history.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderStatusHistory


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout requests.

    Validates:
    - ``shipping_address`` and ``contact_phone`` are required and non-blank.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    shipping_address: str
    contact_phone: str
    notes: str = ""

    @field_validator("shipping_address")
    @classmethod
    def address_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Shipping address is required.")
        return v.strip()

    @field_validator("contact_phone")
    @classmethod
    def phone_required(cls, v: str) -> str:
        v = v.strip() if v else ""
        if not v:
            raise ValueError("Contact phone is required.")
        if len(v) > 20:
            raise ValueError("Contact phone must have at most 20 characters.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderLineOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    product_id: UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class StatusHistoryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    old_status: Optional[str]
    new_status: str
    notes: str
    created_at: datetime

    @classmethod
    def from_entity(cls, history: OrderStatusHistory) -> StatusHistoryDTO:
        return cls(
            id=history.id,
            old_status=history.old_status,
            new_status=history.new_status,
            notes=history.notes,
            created_at=history.created_at,
        )


class OrderOutputDTO(BaseModel):
    """Immutable DTO for order responses."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    order_number: str
    user_id: int
    status: str
    total: Decimal
    shipping_address: str
    contact_phone: str
    notes: str
    paid_at: Optional[datetime]
    shipped_at: Optional[datetime]
    delivered_at: Optional[datetime]
    created_at: datetime
    lines: List[OrderLineOutputDTO]
    history: List[StatusHistoryDTO]

    @classmethod
    def from_entity(cls, order: Order) -> OrderOutputDTO:
        """Build an output DTO from an Order model instance.

        Assumes ``lines__product`` and ``status_history`` are prefetched.
        """
        lines = [
            OrderLineOutputDTO(
                id=line.id,
                product_id=line.product_id,
                product_name=line.product.name,  # type: ignore[attr-defined]
                quantity=line.quantity,
                unit_price=line.unit_price,
                subtotal=line.subtotal,
            )
            for line in order.lines.all()
        ]
        history = [StatusHistoryDTO.from_entity(h) for h in order.status_history.all()]
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            status=order.status,
            total=order.total,
            shipping_address=order.shipping_address,
            contact_phone=order.contact_phone,
            notes=order.notes,
            paid_at=order.paid_at,
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
            created_at=order.created_at,
            lines=lines,
            history=history,
        )
