# authentik/app/infra/storage/base.py
"""
Abstract base class for photo storage providers.
This interface allows swapping between storage backends (R2, S3, in-memory for tests).
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class StorageProvider(ABC):
    """
    Abstract interface for object storage operations used by the photo pipeline.

    Implementations:
    - R2StorageProvider: Cloudflare R2 (S3-compatible)
    """

    @abstractmethod
    def upload_bytes(
        self,
        object_key: str,
        data: bytes,
        content_type: str = "image/jpeg",
    ) -> str:
        """
        Upload an object, replacing any existing object with the same key.

        Args:
            object_key: The key/path where the object will be stored
            data: Raw object bytes
            content_type: MIME type of the content

        Returns:
            The public URL of the stored object
        """
        pass

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """
        Delete every object whose key starts with ``prefix``.

        Args:
            prefix: Key prefix, e.g. "{collection_slug}/{short_place_id}-"

        Returns:
            Number of deleted objects
        """
        pass

    @abstractmethod
    def public_url(self, object_key: str) -> str:
        """Public URL for an object key."""
        pass
