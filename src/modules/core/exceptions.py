"""Root of the domain error taxonomy.

Every business-rule violation raised by the service layer derives from
``DomainError``.  Callers (the HTTP layer, Celery tasks) translate these
into responses; nothing in the core retries them.  ``StoreUnavailable``
is the only retryable kind.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for every error surfaced by the core."""

    code = "domain_error"
    retryable = False


class NotFound(DomainError):
    """The requested entity does not exist."""

    code = "not_found"


class StoreUnavailable(DomainError):
    """The transactional store could not complete the operation.

    Raised on lost connections, lock-wait or statement timeouts and
    deadlocks.  The whole transaction has been rolled back, so the caller
    may retry the request as-is.
    """

    code = "store_unavailable"
    retryable = True
