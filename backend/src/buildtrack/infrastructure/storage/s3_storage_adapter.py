"""S3 Storage Adapter - Implementation of ObjectStoragePort using boto3.

Works against AWS S3, MinIO and other S3-compatible services. Files are
uploaded by clients through presigned PUT URLs; the server only copies,
deletes and signs.
"""

import logging
from typing import Optional

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from ...domain.errors import StorageError
from ...domain.storage.object_storage_port import ObjectStoragePort

logger = logging.getLogger(__name__)


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class S3StorageAdapter(ObjectStoragePort):
    """S3-compatible storage adapter using boto3.

    Example:
        config = load_storage_config_from_env()
        storage = S3StorageAdapter(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
        )
        await storage.copy_file("uploads/tmp/site/plan-1.pdf", "projects/p/d/1/x.pdf")
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: Optional[str],
        secret_key: Optional[str],
        bucket_name: str,
        region: str = "us-east-1",
    ):
        """Initialize S3 storage adapter.

        Args:
            endpoint_url: S3 endpoint URL (None for AWS S3, URL for MinIO)
            access_key: S3 access key ID (None to use the default credential chain)
            secret_key: S3 secret access key
            bucket_name: S3 bucket name
            region: AWS region (default: 'us-east-1')

        Raises:
            StorageError: If S3 client initialization fails
        """
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
            self.bucket_name = bucket_name
            self.region = region

            logger.info(
                f"Initialized S3 storage adapter: bucket={bucket_name}, "
                f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except Exception as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

    def check_bucket(self) -> bool:
        """Return True if the configured bucket is reachable."""
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            return True
        except ClientError as e:
            logger.warning(
                f"Bucket check failed: bucket={self.bucket_name}, error={_error_code(e)}"
            )
            return False

    async def copy_file(self, source_key: str, destination_key: str) -> None:
        """Copy an object to a new key.

        CopyObject is atomic on the server side, so a failed copy never
        leaves a partially written destination behind.
        """
        try:
            self.s3_client.copy_object(
                Bucket=self.bucket_name,
                Key=destination_key,
                CopySource={"Bucket": self.bucket_name, "Key": source_key},
            )
            logger.info(f"Copied file: source={source_key}, destination={destination_key}")
        except ClientError as e:
            error_code = _error_code(e)
            logger.error(
                f"S3 copy failed: source={source_key}, destination={destination_key}, "
                f"error={error_code}"
            )
            if error_code in ("NoSuchKey", "404"):
                raise StorageError(f"Source file not found: {source_key}")
            raise StorageError(f"Failed to copy file: {error_code}")
        except Exception as e:
            logger.error(f"Unexpected error during copy: {e}")
            raise StorageError(f"Failed to copy file: {e}")

    async def delete_file(self, storage_key: str) -> bool:
        """Delete a file from S3.

        Args:
            storage_key: Storage key of file to delete

        Returns:
            bool: True if deleted, False if didn't exist

        Raises:
            StorageError: If deletion fails
        """
        try:
            exists = await self.file_exists(storage_key)
            if not exists:
                logger.info(f"File not found for deletion: storage_key={storage_key}")
                return False

            self.s3_client.delete_object(
                Bucket=self.bucket_name,
                Key=storage_key,
            )

            logger.info(f"Deleted file: storage_key={storage_key}")
            return True

        except ClientError as e:
            error_code = _error_code(e)
            logger.error(
                f"S3 deletion failed: storage_key={storage_key}, "
                f"error={error_code}"
            )
            raise StorageError(f"Failed to delete file: {error_code}")

    async def file_exists(self, storage_key: str) -> bool:
        """Check if a file exists in S3 using a HEAD request."""
        try:
            self.s3_client.head_object(
                Bucket=self.bucket_name,
                Key=storage_key,
            )
            return True
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in ("404", "NoSuchKey"):
                return False
            logger.warning(
                f"Error checking file existence: storage_key={storage_key}, "
                f"error={error_code}"
            )
            return False

    async def generate_presigned_url(
        self,
        storage_key: str,
        expires_in_seconds: int = 3600,
    ) -> str:
        """Generate a presigned URL for direct download.

        Raises:
            FileNotFoundError: If file doesn't exist
            StorageError: If URL generation fails
        """
        if not await self.file_exists(storage_key):
            raise FileNotFoundError(f"File not found: {storage_key}")

        try:
            url = self.s3_client.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": storage_key,
                },
                ExpiresIn=expires_in_seconds,
            )
        except ClientError as e:
            error_code = _error_code(e)
            logger.error(
                f"Presigned URL generation failed: storage_key={storage_key}, "
                f"error={error_code}"
            )
            raise StorageError(f"Failed to generate presigned URL: {error_code}")

        logger.info(
            f"Generated presigned URL: storage_key={storage_key}, "
            f"expires_in={expires_in_seconds}s"
        )
        return url

    async def generate_presigned_upload_url(
        self,
        storage_key: str,
        content_type: str,
        expires_in_seconds: int = 3600,
    ) -> str:
        try:
            return self.s3_client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": storage_key,
                    "ContentType": content_type,
                },
                ExpiresIn=expires_in_seconds,
            )
        except ClientError as e:
            error_code = _error_code(e)
            logger.error(
                f"Presigned upload URL generation failed: storage_key={storage_key}, "
                f"error={error_code}"
            )
            raise StorageError(f"Failed to generate upload URL: {error_code}")
