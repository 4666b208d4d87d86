"""Unit-of-work helpers for service-layer methods.

``unit_of_work`` opens the single atomic transaction a read-then-write
operation runs in.  Any exception rolls the whole transaction back;
driver-level faults (connection loss, lock wait timeout, deadlock) are
re-raised as ``StoreUnavailable`` so the caller can tell transient
failures apart from business-rule violations.

``store_guard`` applies the same translation to read-only operations,
which run outside a transaction.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, TypeVar, cast

import structlog
from django.db import InterfaceError, OperationalError, transaction

from modules.core.exceptions import StoreUnavailable

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

TRANSIENT_ERRORS = (OperationalError, InterfaceError)


def _raise_unavailable(func: Callable[..., Any], exc: Exception) -> None:
    logger.error(
        "store.unavailable",
        operation=func.__qualname__,
        error=str(exc),
    )
    raise StoreUnavailable(f"Store unavailable during {func.__qualname__}.") from exc


def unit_of_work(func: F) -> F:
    """Run *func* inside ``transaction.atomic()``."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            with transaction.atomic():
                return func(*args, **kwargs)
        except TRANSIENT_ERRORS as exc:
            _raise_unavailable(func, exc)

    return cast(F, wrapper)


def store_guard(func: F) -> F:
    """Translate driver faults for operations that only read."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except TRANSIENT_ERRORS as exc:
            _raise_unavailable(func, exc)

    return cast(F, wrapper)
