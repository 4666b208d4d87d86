"""Cart repository interface.

Cart lines are addressed by ``(user_id, product_id)``.  Locking reads
(``*_for_update``) must run inside the caller's atomic block.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.carts.models import CartLine


class ICartRepository(IRepository["CartLine"]):
    @abstractmethod
    def get_line_for_update(self, user_id: int, product_id: str) -> Optional[CartLine]:
        """Retrieve and lock the user's line for a product."""

    @abstractmethod
    def lines_for_user(self, user_id: int, lock: bool = False) -> List[CartLine]:
        """All lines of a user, newest first, or row-locked in product-id order."""

    @abstractmethod
    def total_for_user(self, user_id: int) -> Decimal:
        """Sum of ``quantity * unit_price`` across the user's lines."""

    @abstractmethod
    def stale_line_ids(self, older_than: datetime, limit: int) -> List[str]:
        """IDs of lines not updated since *older_than*, oldest first."""
