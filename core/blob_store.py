# core/blob_store.py

"""
Blob-store collaborator for attachment bytes.

Blobs are write-once: an attachment id is generated per upload, so the
same key is never written twice. S3BlobStore runs boto3's blocking calls
in a worker thread so the aggregate store stays async end to end.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Optional
from urllib.parse import quote, unquote, urlparse

from botocore.exceptions import BotoCoreError, ClientError

from core.config import settings
from core.errors import collaborator_error
from core.logging_config import logger
from core.utils import safe_filename


class BlobStore(ABC):

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store `data` at `path` and return a reference URL."""

    @abstractmethod
    async def delete(self, ref: str) -> None:
        """Delete by storage path or by a URL previously returned from upload()."""


# -----------------------------------------------------
# Storage paths
# -----------------------------------------------------
def project_attachment_path(project_id: str, attachment_id: str, file_name: str) -> str:
    return f"projects/{project_id}/attachments/{attachment_id}/{safe_filename(file_name)}"


def task_attachment_path(project_id: str, task_id: str, attachment_id: str, file_name: str) -> str:
    return f"projects/{project_id}/tasks/{task_id}/attachments/{attachment_id}/{safe_filename(file_name)}"


# -----------------------------------------------------
# S3
# -----------------------------------------------------
class S3BlobStore(BlobStore):

    def __init__(
        self,
        s3: Any = None,
        bucket: Optional[str] = None,
        region: Optional[str] = None,
        *,
        url_style: Optional[str] = None,
        presigned_expiry: Optional[int] = None,
    ):
        if s3 is None:
            from core.s3_client import get_s3
            s3, bucket, region = get_s3()

        self._s3 = s3
        self._bucket = bucket
        self._region = region or settings.AWS_REGION
        self._url_style = url_style or settings.ATTACHMENT_URL_STYLE
        self._presigned_expiry = presigned_expiry or settings.PRESIGNED_URL_EXPIRY_SECONDS

    def public_url(self, key: str) -> str:
        # Public URL format: https://{bucket}.s3.{region}.amazonaws.com/{key}
        if self._region == "us-east-1":
            return f"https://{self._bucket}.s3.amazonaws.com/{quote(key)}"
        return f"https://{self._bucket}.s3.{self._region}.amazonaws.com/{quote(key)}"

    def key_for(self, ref: str) -> str:
        """Accept either a raw key or a URL (public or presigned) into this bucket."""
        if not ref.startswith(("http://", "https://")):
            return ref
        return unquote(urlparse(ref).path.lstrip("/"))

    async def _url_for(self, key: str) -> str:
        if self._url_style == "presigned":
            return await asyncio.to_thread(
                self._s3.generate_presigned_url,
                "get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=self._presigned_expiry,
            )
        return self.public_url(key)

    async def upload(self, path, data, content_type):
        try:
            await asyncio.to_thread(
                self._s3.put_object,
                Bucket=self._bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
            url = await self._url_for(path)
        except (ClientError, BotoCoreError) as e:
            raise collaborator_error(e, f"Failed to upload {path}") from e

        logger.info(f"Uploaded blob {path} ({len(data)} bytes)")
        return url

    async def delete(self, ref):
        key = self.key_for(ref)
        try:
            await asyncio.to_thread(self._s3.delete_object, Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise collaborator_error(e, f"Failed to delete {key}") from e

        logger.info(f"Deleted blob {key}")
