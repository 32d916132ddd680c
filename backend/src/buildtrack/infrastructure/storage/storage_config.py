"""Storage configuration for S3-compatible object storage.

Supports both MinIO (development) and AWS S3 (production) with the same interface.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class StorageConfig:
    """Configuration for S3-compatible object storage.

    Attributes:
        endpoint_url: S3 endpoint URL (e.g., 'http://localhost:9000' for MinIO,
                      None for AWS S3 which uses default regional endpoints)
        access_key: S3 access key ID
        secret_key: S3 secret access key
        bucket_name: S3 bucket holding staged and permanent files
        region: AWS region (default: 'us-east-1')
        staging_prefix: Key prefix for client uploads awaiting relocation
    """
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str
    region: str = "us-east-1"
    staging_prefix: str = "uploads/tmp/"


def load_storage_config_from_env() -> StorageConfig:
    """Load storage configuration from environment variables.

    Environment Variables:
        S3_ENDPOINT_URL: Full endpoint URL (e.g. 'http://localhost:9000'); unset for AWS
        S3_ACCESS_KEY_ID: Access key
        S3_SECRET_ACCESS_KEY: Secret key
        S3_BUCKET_NAME: Bucket name (default: 'buildtrack-files')
        S3_REGION: AWS region (default: 'us-east-1')
        STAGING_PREFIX: Staging prefix (default: 'uploads/tmp/')

    Raises:
        ValueError: If required environment variables are missing
    """
    access_key = os.getenv("S3_ACCESS_KEY_ID")
    secret_key = os.getenv("S3_SECRET_ACCESS_KEY")

    if not access_key or not secret_key:
        raise ValueError(
            "Missing required storage credentials. "
            "Set S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY environment variables."
        )

    return StorageConfig(
        endpoint_url=os.getenv("S3_ENDPOINT_URL") or None,
        access_key=access_key,
        secret_key=secret_key,
        bucket_name=os.getenv("S3_BUCKET_NAME", "buildtrack-files"),
        region=os.getenv("S3_REGION", "us-east-1"),
        staging_prefix=os.getenv("STAGING_PREFIX", "uploads/tmp/"),
    )


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Raises:
        ValueError: If configuration is invalid
    """
    if not config.access_key:
        raise ValueError("Storage access_key is required")

    if not config.secret_key:
        raise ValueError("Storage secret_key is required")

    if not config.bucket_name:
        raise ValueError("Storage bucket_name is required")

    if not config.staging_prefix.endswith("/"):
        raise ValueError("Storage staging_prefix must end with '/'")

    if config.endpoint_url:
        if not config.endpoint_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid endpoint_url: {config.endpoint_url}. "
                "Must start with http:// or https://"
            )
    elif not config.region:
        raise ValueError("AWS region is required when using S3 (S3_ENDPOINT_URL not set)")
