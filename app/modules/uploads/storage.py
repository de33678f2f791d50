import boto3
from botocore.exceptions import ClientError
from app.config import settings
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class ObjectStorage:
    """S3-compatible bucket storage (Supabase Storage S3 endpoint or AWS S3)."""

    def __init__(self, default_bucket: Optional[str] = None):
        if not all([settings.storage_access_key_id, settings.storage_secret_access_key]):
            raise ValueError("Storage credentials must be configured")

        self.s3_client = boto3.client(
            "s3",
            endpoint_url=settings.storage_endpoint_url,
            aws_access_key_id=settings.storage_access_key_id,
            aws_secret_access_key=settings.storage_secret_access_key,
            region_name=settings.storage_region
        )
        self.default_bucket = default_bucket or settings.storage_default_bucket

    def upload_file(
        self,
        file_content: bytes,
        key: str,
        content_type: str,
        bucket: Optional[str] = None,
        cache_control: str = "max-age=3600",
    ) -> str:
        """Upload bytes and return the object's public URL"""
        bucket = bucket or self.default_bucket
        try:
            self.s3_client.put_object(
                Bucket=bucket,
                Key=key,
                Body=file_content,
                ContentType=content_type,
                CacheControl=cache_control,
            )
        except ClientError as e:
            logger.error(f"Failed to upload {bucket}/{key}: {str(e)}")
            raise
        return self.public_url(key, bucket)

    def public_url(self, key: str, bucket: Optional[str] = None) -> str:
        bucket = bucket or self.default_bucket
        if settings.storage_public_base_url:
            return f"{settings.storage_public_base_url.rstrip('/')}/{bucket}/{key}"
        if settings.storage_endpoint_url:
            return f"{settings.storage_endpoint_url.rstrip('/')}/{bucket}/{key}"
        return f"https://{bucket}.s3.{settings.storage_region}.amazonaws.com/{key}"

    def delete_file(self, key: str, bucket: Optional[str] = None) -> bool:
        bucket = bucket or self.default_bucket
        try:
            self.s3_client.delete_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            logger.error(f"Failed to delete {bucket}/{key}: {str(e)}")
            return False


def get_storage() -> ObjectStorage:
    return ObjectStorage()
