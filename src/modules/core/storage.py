"""File-storage collaborator used when a product is permanently removed.

The core only needs ``delete_file(name) -> bool``.  ``DjangoFileStorage``
satisfies it through Django's storage API so the backend (filesystem,
in-memory for tests, S3 via django-storages) is chosen in settings.
"""

from __future__ import annotations

from typing import Optional, Protocol

import structlog
from django.core.files.storage import Storage, default_storage

logger = structlog.get_logger(__name__)


class IFileStorage(Protocol):
    """Hook invoked with an uploaded file name."""

    def delete_file(self, name: str) -> bool: ...


class DjangoFileStorage:
    """``IFileStorage`` backed by a Django ``Storage`` instance."""

    def __init__(self, storage: Optional[Storage] = None) -> None:
        self._storage = storage or default_storage

    def delete_file(self, name: str) -> bool:
        """Delete *name* if it exists.  Returns ``True`` when a file was removed."""
        if not name or not self._storage.exists(name):
            logger.info("storage.file_missing", name=name)
            return False
        self._storage.delete(name)
        logger.info("storage.file_deleted", name=name)
        return True
