"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from modules.core.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created from a cart."""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled and its stock released."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order moves forward in the state machine."""
