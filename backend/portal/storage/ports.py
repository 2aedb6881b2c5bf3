"""Object storage port.

Keys are always prefixed with the owning org id. The storage layer enforces
no access control of its own; callers verify access before storing.

Key layouts:
    deliverable assets:  {org_id}/{deliverable_id}/{timestamp_ms}-{filename}
    contract signatures: signatures/{org_id}/{user_id}/{timestamp_ms}.png
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, Optional
from uuid import UUID

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the object store rejects or fails an operation."""


@dataclass
class StoredObject:
    """Metadata for an object written to storage.

    Attributes:
        key: Storage key (see module docstring for layouts)
        url: Durable public URL of the object
        size_bytes: Object size in bytes
        sha256: SHA256 of the content (hex)
        content_type: MIME type sent with the object
    """
    key: str
    url: str
    size_bytes: int
    sha256: str
    content_type: str


def _safe_filename(filename: str) -> str:
    # Drop any client-supplied directory components
    name = PurePosixPath(filename.replace("\\", "/")).name
    return name or "upload"


def build_asset_key(org_id: UUID, deliverable_id: UUID, filename: str, timestamp_ms: int) -> str:
    return f"{org_id}/{deliverable_id}/{timestamp_ms}-{_safe_filename(filename)}"


def build_signature_key(org_id: UUID, user_id: str, timestamp_ms: int) -> str:
    return f"signatures/{org_id}/{user_id}/{timestamp_ms}.png"


class ObjectStoragePort(ABC):
    """Port interface for S3-compatible object storage."""

    @abstractmethod
    async def store_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> StoredObject:
        """Write ``data`` under ``key`` and return its metadata and public URL.

        Raises:
            ValueError: If data is empty
            StorageError: If the upload fails
        """

    @abstractmethod
    async def object_exists(self, key: str) -> bool:
        """HEAD the key. False when absent."""

    @abstractmethod
    async def delete_object(self, key: str) -> bool:
        """Delete the key. Returns False if it did not exist."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Durable URL under which ``key`` is served."""

    @abstractmethod
    async def verify_bucket_exists(self) -> bool:
        """Confirm the backing bucket is reachable.

        Raises:
            StorageError: If the bucket is missing or unreachable
        """

    async def discard_object(self, key: str) -> None:
        """Remove an object whose database row could not be written.

        A failed delete is logged so it does not replace the caller's error.
        """
        try:
            await self.delete_object(key)
        except StorageError:
            logger.error(f"Could not remove orphaned object: key={key}", exc_info=True)
