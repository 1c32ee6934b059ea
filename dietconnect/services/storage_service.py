"""S3-compatible object storage for meal photos and client reports."""

import io
import logging
import uuid
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig

from dietconnect.core.config import settings

logger = logging.getLogger(__name__)

IMAGE_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/heic": "heic",
}

REPORT_CONTENT_TYPES = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}


class StorageService:
    """Thin wrapper over a boto3 S3 client. The client is created on first use."""

    def __init__(self):
        self.bucket = settings.S3_BUCKET
        self._client = None

    def _build_client(self):
        kwargs = {
            "service_name": "s3",
            "region_name": settings.S3_REGION,
            "config": BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
        }
        if settings.S3_ENDPOINT:
            kwargs["endpoint_url"] = settings.S3_ENDPOINT
        if settings.S3_ACCESS_KEY and settings.S3_SECRET_KEY:
            kwargs.update(
                aws_access_key_id=settings.S3_ACCESS_KEY,
                aws_secret_access_key=settings.S3_SECRET_KEY,
            )
        return boto3.client(**kwargs)

    @property
    def client(self):
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def public_url(self, key: str) -> str:
        if settings.S3_PUBLIC_URL:
            return f"{settings.S3_PUBLIC_URL.rstrip('/')}/{key}"
        if settings.S3_ENDPOINT:
            return f"{settings.S3_ENDPOINT.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def upload_bytes(self, data: bytes, key: str, content_type: str) -> str:
        """Upload bytes and return the object's URL."""
        self.client.upload_fileobj(
            io.BytesIO(data), self.bucket, key, ExtraArgs={"ContentType": content_type}
        )
        logger.info("Uploaded %s (%s bytes)", key, len(data))
        return self.public_url(key)

    def presigned_get_url(self, key: str, expires_in: Optional[int] = None) -> str:
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in or settings.PRESIGNED_URL_EXPIRY_SECONDS,
        )

    def presigned_put_url(self, key: str, content_type: str, expires_in: Optional[int] = None) -> str:
        return self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=expires_in or settings.PRESIGNED_URL_EXPIRY_SECONDS,
        )

    def delete_object(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info("Deleted %s", key)


def meal_photo_key(org_id: str, meal_log_id: str, content_type: str) -> str:
    ext = IMAGE_CONTENT_TYPES.get(content_type, "jpg")
    return f"meal-photos/{org_id}/{meal_log_id}/{uuid.uuid4()}.{ext}"


def report_key(org_id: str, client_id: str, file_type: str) -> str:
    return f"reports/{org_id}/{client_id}/{uuid.uuid4()}.{file_type}"


storage_service = StorageService()
