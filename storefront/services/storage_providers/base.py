"""
Abstract base class for object storage providers
"""
from abc import ABC, abstractmethod
from typing import List


class StorageProvider(ABC):
    """Abstract interface for bucket-based object storage"""

    @abstractmethod
    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """
        Store bytes under a key.

        Args:
            bucket: Bucket name
            key: Object key inside the bucket
            data: File bytes
            content_type: MIME type stored with the object

        Returns:
            Path of the stored object inside the bucket

        Raises:
            StorageError: if the provider rejects the upload
        """
        pass

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str:
        """
        Get the public URL of an object. Only meaningful for public buckets.
        """
        pass

    @abstractmethod
    def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        """
        Mint a time-limited URL granting read access to a private object.

        Raises:
            StorageError: if the provider cannot sign the object
        """
        pass

    @abstractmethod
    def remove(self, bucket: str, keys: List[str]) -> List[str]:
        """
        Delete objects.

        Returns:
            Keys reported as removed

        Raises:
            StorageError: if the provider rejects the removal
        """
        pass
