"""Order domain exceptions.

Raised by the Order Lifecycle Engine when business rules are violated.
"""

from __future__ import annotations

from modules.core.exceptions import DomainError, NotFound


class OrderNotFound(NotFound):
    """The requested order does not exist."""


class InvalidTransition(DomainError):
    """The requested status change is not an edge of the state machine."""

    code = "invalid_transition"


class CannotCancel(InvalidTransition):
    """Only pending or paid orders can be cancelled."""

    code = "cannot_cancel"


class EmptyCart(DomainError):
    """An order was requested from a cart with no lines."""

    code = "empty_cart"


class OrderDeletionForbidden(DomainError):
    """Orders are never deleted; cancellation is the only undo."""

    code = "order_deletion_forbidden"
