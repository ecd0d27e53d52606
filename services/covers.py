"""
Cover image hosting on S3.

Objects are keyed by book id plus a hash of the bytes, so re-uploading the
same image lands on the same key.
"""
from __future__ import annotations

import hashlib
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config import Settings
from services.errors import DependencyError, ValidationFailed

logger = logging.getLogger(__name__)

EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp", "image/gif": "gif"}


def cover_key(book_id: str, content_type: str, body: bytes) -> str:
    h = hashlib.sha256(body).hexdigest()[:12]
    return f"covers/{book_id}/{h}.{EXTENSIONS.get(content_type, 'jpg')}"


def public_url(settings: Settings, key: str) -> str:
    if settings.cover_base_url:
        return f"{settings.cover_base_url}/{key}"
    region = settings.aws_region or "us-east-1"
    return f"https://{settings.s3_bucket}.s3.{region}.amazonaws.com/{key}"


def upload_cover(body: bytes, content_type: str, book_id: str, settings: Settings, s3=None) -> str:
    content_type = (content_type or "").split(";")[0].strip().lower()
    if not content_type.startswith("image/"):
        raise ValidationFailed(f"Cover must be an image, got {content_type or 'unknown type'}")
    if not body:
        raise ValidationFailed("Cover image is empty")
    if not settings.s3_bucket:
        raise DependencyError("Failed to upload cover image")

    key = cover_key(book_id, content_type, body)
    try:
        s3 = s3 or boto3.client("s3", region_name=settings.aws_region)
        s3.put_object(
            Bucket=settings.s3_bucket,
            Key=key,
            Body=body,
            ContentType=content_type,
            CacheControl="public, max-age=31536000, immutable",
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("cover upload failed for book %s: %s", book_id, e)
        raise DependencyError("Failed to upload cover image") from e
    return public_url(settings, key)
