"""Cart domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import NotFound


class CartLineNotFound(NotFound):
    """The user has no cart line for the product."""
