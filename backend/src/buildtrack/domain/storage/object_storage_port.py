"""Object Storage Port - Domain interface for S3-compatible storage.

Workflow code never talks to boto3 directly; it copies, deletes and signs
URLs through this port so tests can use moto or an in-memory fake.
"""

from abc import ABC, abstractmethod


class ObjectStoragePort(ABC):
    """Port interface for S3-compatible object storage operations.

    Keys are plain strings. Uploads land under the staging prefix
    (``uploads/tmp/``) via presigned PUT URLs; workflow operations then copy
    them to permanent keys and delete the staged originals.
    """

    @abstractmethod
    async def copy_file(self, source_key: str, destination_key: str) -> None:
        """Copy an object to a new key within the bucket.

        Raises:
            StorageError: If the source is missing or the copy fails
        """
        pass

    @abstractmethod
    async def delete_file(self, storage_key: str) -> bool:
        """Delete an object.

        Returns:
            bool: True if the object was deleted, False if it didn't exist

        Raises:
            StorageError: If deletion fails

        Note:
            This operation is idempotent (deleting a missing key returns False).
        """
        pass

    @abstractmethod
    async def file_exists(self, storage_key: str) -> bool:
        """Check if an object exists (HEAD request)."""
        pass

    @abstractmethod
    async def generate_presigned_url(
        self,
        storage_key: str,
        expires_in_seconds: int = 3600,
    ) -> str:
        """Generate a presigned GET URL for direct download.

        Raises:
            FileNotFoundError: If the object doesn't exist
            StorageError: If URL generation fails
        """
        pass

    @abstractmethod
    async def generate_presigned_upload_url(
        self,
        storage_key: str,
        content_type: str,
        expires_in_seconds: int = 3600,
    ) -> str:
        """Generate a presigned PUT URL the client uploads the staged file to."""
        pass
