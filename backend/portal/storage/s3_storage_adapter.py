"""S3 Storage Adapter - ObjectStoragePort implementation using boto3.

Works against AWS S3, MinIO, and other S3-compatible services.
"""

import hashlib
import logging
from io import BytesIO
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .ports import ObjectStoragePort, StorageError, StoredObject
from .storage_config import StorageConfig

logger = logging.getLogger(__name__)


class S3StorageAdapter(ObjectStoragePort):
    """S3-compatible storage adapter using boto3.

    Example:
        storage = S3StorageAdapter.from_config(load_storage_config(get_settings()))
        stored = await storage.store_object(
            key=build_asset_key(org_id, deliverable_id, "shot.png", 1704368400000),
            data=content,
            content_type="image/png",
        )
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        public_base_url: str = "http://localhost:9000",
    ):
        self.s3_client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )
        self.bucket_name = bucket_name
        self.region = region
        self.public_base_url = public_base_url.rstrip("/")

        logger.info(
            f"Initialized S3 storage adapter: bucket={bucket_name}, "
            f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
        )

    @classmethod
    def from_config(cls, config: StorageConfig) -> "S3StorageAdapter":
        return cls(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
            public_base_url=config.public_base_url,
        )

    async def store_object(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> StoredObject:
        if not data:
            raise ValueError("Cannot store empty file")

        sha256_hex = hashlib.sha256(data).hexdigest()
        object_metadata = {"sha256": sha256_hex}
        # Underscored header names are dropped by proxies and read back hyphenated
        object_metadata.update({name.replace("_", "-"): value for name, value in (metadata or {}).items()})

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=BytesIO(data),
                ContentType=content_type,
                Metadata=object_metadata,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(f"S3 upload failed: key={key}, error={error_code}, message={e}")
            raise StorageError(f"Failed to upload file: {error_code}") from e
        except BotoCoreError as e:
            logger.error(f"S3 upload failed: key={key}, message={e}")
            raise StorageError(f"Failed to upload file: {e}") from e

        logger.info(
            f"Uploaded object: key={key}, sha256={sha256_hex}, "
            f"size={len(data)}, content_type={content_type}"
        )
        return StoredObject(
            key=key,
            url=self.public_url(key),
            size_bytes=len(data),
            sha256=sha256_hex,
            content_type=content_type,
        )

    async def object_exists(self, key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(f"Failed to check object: {error_code}") from e

    async def delete_object(self, key: str) -> bool:
        if not await self.object_exists(key):
            logger.info(f"Object not found for deletion: key={key}")
            return False

        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(f"S3 deletion failed: key={key}, error={error_code}")
            raise StorageError(f"Failed to delete file: {error_code}") from e

        logger.info(f"Deleted object: key={key}")
        return True

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{self.bucket_name}/{key}"

    async def verify_bucket_exists(self) -> bool:
        """HEAD the configured bucket.

        Raises:
            StorageError: If bucket check fails or bucket doesn't exist
        """
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "404":
                raise StorageError(
                    f"Bucket '{self.bucket_name}' does not exist. "
                    f"Create it first or update S3_BUCKET_NAME."
                ) from e
            raise StorageError(f"Failed to verify bucket: {error_code}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to verify bucket: {e}") from e

        logger.info(f"Verified bucket exists: {self.bucket_name}")
        return True
