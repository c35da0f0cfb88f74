"""
S3 media storage for downloaded Telegram images.

Objects are keyed ``{prefix}/{chat_id}/{message_id}_{md5[:8]}.{ext}`` so a
re-upload of the same bytes lands on the same key. ``upload`` never raises:
any failure is logged and reported as ``None``.
"""

import hashlib
from typing import Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, EndpointConnectionError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from app.config import settings

logger = structlog.get_logger(__name__)

CONTENT_TYPES = {
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


class S3MediaStorage:
    """Upload media bytes to S3 and return their public URL."""

    def __init__(
        self,
        bucket: Optional[str] = None,
        region: Optional[str] = None,
        public_base_url: Optional[str] = None,
        key_prefix: Optional[str] = None,
        client=None,
    ):
        self.bucket = bucket if bucket is not None else settings.S3_BUCKET_NAME
        self.region = region or settings.AWS_REGION
        self.public_base_url = (
            public_base_url if public_base_url is not None else settings.S3_PUBLIC_BASE_URL
        ).rstrip("/")
        self.key_prefix = (key_prefix if key_prefix is not None else settings.S3_KEY_PREFIX).strip("/")
        self._client = client

    def configured(self) -> bool:
        """Whether uploads can be attempted at all."""
        if not self.bucket:
            return False
        return self._client is not None or settings.s3_configured

    @property
    def client(self):
        # Created lazily so an unconfigured deployment never touches boto3
        if self._client is None:
            self._client = boto3.client(
                "s3",
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                region_name=self.region,
            )
        return self._client

    def build_key(self, data: bytes, chat_id: str, message_id: int, ext: str) -> str:
        digest = hashlib.md5(data).hexdigest()[:8]
        key = f"{chat_id}/{message_id}_{digest}.{ext}"
        return f"{self.key_prefix}/{key}" if self.key_prefix else key

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type((EndpointConnectionError, ConnectTimeoutError)),
        reraise=True,
    )
    def _put_object(self, key: str, data: bytes, content_type: str) -> None:
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
            CacheControl="max-age=31536000",
        )

    def upload(self, data: bytes, chat_id: str, message_id: int, ext: str = "jpg") -> Optional[str]:
        """
        Upload image bytes for a message.

        Returns:
            Public URL, or None when storage is not configured or the upload failed
        """
        if not self.configured():
            logger.debug("media_storage_not_configured")
            return None
        if not data:
            return None

        key = self.build_key(data, chat_id, message_id, ext)
        content_type = CONTENT_TYPES.get(ext, "image/jpeg")

        try:
            self._put_object(key, data, content_type)
        except (BotoCoreError, ClientError) as e:
            logger.warning(
                "media_upload_failed",
                chat_id=chat_id,
                message_id=message_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        except Exception as e:
            logger.error(
                "media_upload_unexpected_error",
                chat_id=chat_id,
                message_id=message_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        logger.debug("media_uploaded", chat_id=chat_id, message_id=message_id, key=key)
        return self.public_url(key)
