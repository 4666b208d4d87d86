"""Django ORM implementation of the Cart repository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db.models import DecimalField, ExpressionWrapper, F, Sum

from modules.carts.models import CartLine
from modules.carts.repositories.interfaces import ICartRepository

_SUBTOTAL = ExpressionWrapper(
    F("quantity") * F("unit_price"),
    output_field=DecimalField(max_digits=12, decimal_places=2),
)


class CartDjangoRepository(ICartRepository):
    def get_by_id(self, id: str) -> Optional[CartLine]:
        try:
            return CartLine.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[CartLine]:
        try:
            return CartLine.objects.select_for_update().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_line_for_update(self, user_id: int, product_id: str) -> Optional[CartLine]:
        try:
            return (
                CartLine.objects.select_for_update()
                .filter(user_id=user_id, product_id=product_id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def lines_for_user(self, user_id: int, lock: bool = False) -> List[CartLine]:
        queryset = CartLine.objects.filter(user_id=user_id)
        if lock:
            # Lock in product order so concurrent checkouts never deadlock.
            queryset = queryset.select_for_update().order_by("product_id")
        else:
            queryset = queryset.select_related("product")
        return list(queryset)

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[CartLine]:
        queryset = CartLine.objects.select_related("product")
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: CartLine) -> CartLine:
        entity.save()
        return entity

    def delete(self, id: str) -> bool:
        deleted, _ = CartLine.objects.filter(id=id).delete()
        return deleted > 0

    def total_for_user(self, user_id: int) -> Decimal:
        result = CartLine.objects.filter(user_id=user_id).aggregate(
            total=Sum(_SUBTOTAL)
        )
        return result["total"] or Decimal("0.00")

    def stale_line_ids(self, older_than: datetime, limit: int) -> List[str]:
        return [
            str(pk)
            for pk in CartLine.objects.filter(updated_at__lt=older_than)
            .order_by("updated_at")
            .values_list("id", flat=True)[:limit]
        ]
