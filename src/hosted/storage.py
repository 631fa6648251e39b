"""
Fly Image Storage

Uploads fly images to the hosted object storage bucket through its
S3-compatible endpoint and builds the public URLs the app displays.

Object names are `<epoch-millis>.<ext>`; the bucket is public-read so the
public URL is derived without a signed request.
"""

import logging
import time
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from src.common.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Object storage rejected or failed an operation."""


def make_object_name(extension: str, now: Optional[float] = None) -> str:
    """Timestamped object name, e.g. '1717171717171.png'."""
    millis = int((now if now is not None else time.time()) * 1000)
    extension = (extension or 'jpg').lstrip('.').lower() or 'jpg'
    return f"{millis}.{extension}"


class ImageStorage:
    """Upload and public-URL access for the fly image bucket."""

    def __init__(self, settings: Optional[Settings] = None, s3_client=None):
        """
        Initialize storage.

        Args:
            settings: Service settings (bucket, endpoint, credentials)
            s3_client: Preconfigured boto3 S3 client (created from settings if omitted)
        """
        self.settings = settings or get_settings()
        self.bucket_name = self.settings.storage_bucket

        if not self.settings.supabase_url:
            raise ValueError("SUPABASE_URL not configured")

        if s3_client is None:
            session = boto3.Session()
            s3_client = session.client(
                's3',
                endpoint_url=self.settings.storage_endpoint_url,
                region_name=self.settings.storage_region,
                aws_access_key_id=self.settings.storage_access_key_id,
                aws_secret_access_key=self.settings.storage_secret_access_key,
            )
        self.s3_client = s3_client

        logger.info(f"Initialized image storage for bucket: {self.bucket_name}")

    def upload(self, object_name: str, content: bytes, content_type: str = "image/jpeg") -> str:
        """
        Upload bytes under a name.

        Returns:
            Public URL of the stored object

        Raises:
            StorageError: If the upload fails
        """
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=object_name,
                Body=content,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Upload of {object_name} failed: {e}")
            raise StorageError(str(e)) from e

        logger.info(f"Uploaded {object_name} ({len(content)} bytes)")
        return self.public_url(object_name)

    def upload_image(self, content: bytes, extension: str, content_type: str = "image/jpeg") -> str:
        """Upload under a fresh timestamped name and return the public URL."""
        return self.upload(make_object_name(extension), content, content_type)

    def public_url(self, object_name: str) -> str:
        base = self.settings.supabase_url.rstrip('/')
        return f"{base}/storage/v1/object/public/{self.bucket_name}/{object_name}"
