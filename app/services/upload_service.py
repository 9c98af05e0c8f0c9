"""
app/services/upload_service.py

Purpose: Credential file upload

- Uploads generated credential files to S3-compatible object storage
- In-memory backend for development and tests
- Returns the public URL the session id is derived from
"""

import asyncio
from pathlib import Path
from typing import Dict, Optional, Protocol

from app.core.config import settings
from app.core.exceptions import UploadError
from app.core.logging import get_logger

logger = get_logger(__name__)


class StorageClient(Protocol):
    """Anything that can publish a local file and return its URL."""

    public_url: str

    async def upload_file(self, path: Path, name: str) -> str:
        ...


class S3StorageClient:
    """
    S3-compatible storage client (AWS S3, Cloudflare R2, MinIO).

    boto3 is synchronous; calls run in a worker thread so the event
    loop keeps serving connection events during the upload.
    """

    def __init__(
        self,
        bucket_name: str,
        access_key_id: str,
        secret_access_key: str,
        endpoint_url: Optional[str] = None,
        region: str = "auto",
        public_url: Optional[str] = None
    ):
        import boto3
        from botocore.config import Config

        self.bucket_name = bucket_name
        self.endpoint_url = endpoint_url

        if public_url:
            self.public_url = public_url.rstrip("/")
        elif endpoint_url:
            self.public_url = f"{endpoint_url.rstrip('/')}/{bucket_name}"
        else:
            self.public_url = f"https://{bucket_name}.s3.amazonaws.com"

        self._s3_client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )

        logger.info(
            "Initialized S3 storage client",
            extra={"bucket": bucket_name, "endpoint": endpoint_url}
        )

    async def upload_file(self, path: Path, name: str) -> str:
        """
        Uploads a local file under the given object key.

        Raises:
            UploadError: If the file cannot be read or the upload fails
        """
        try:
            data = Path(path).read_bytes()

            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self.bucket_name,
                Key=name,
                Body=data,
                ContentType="application/octet-stream",
            )

            logger.info(f"Uploaded {name} ({len(data)} bytes)")
            return f"{self.public_url}/{name}"

        except Exception as e:
            logger.error(f"Upload of {name} failed: {e}")
            raise UploadError(details=str(e)) from e


class MemoryStorageClient:
    """
    In-memory storage for local development and tests.
    """

    def __init__(self, public_url: Optional[str] = None):
        self.public_url = (public_url or "memory://storage").rstrip("/")
        self.files: Dict[str, bytes] = {}
        logger.info("Initialized in-memory storage client")

    async def upload_file(self, path: Path, name: str) -> str:
        try:
            self.files[name] = Path(path).read_bytes()
        except OSError as e:
            raise UploadError(details=str(e)) from e

        logger.debug(f"Stored {name} in memory")
        return f"{self.public_url}/{name}"


def create_storage_client() -> StorageClient:
    """
    Creates the storage client selected by STORAGE_BACKEND.
    """
    if settings.STORAGE_BACKEND == "s3":
        return S3StorageClient(
            bucket_name=settings.S3_BUCKET_NAME,
            access_key_id=settings.S3_ACCESS_KEY_ID,
            secret_access_key=settings.S3_SECRET_ACCESS_KEY,
            endpoint_url=settings.S3_ENDPOINT_URL,
            region=settings.S3_REGION,
            public_url=settings.STORAGE_PUBLIC_URL,
        )

    return MemoryStorageClient(settings.STORAGE_PUBLIC_URL)


# Global storage client instance
_storage_client: Optional[StorageClient] = None


def get_storage_client() -> StorageClient:
    """Get or create the global storage client."""
    global _storage_client
    if _storage_client is None:
        _storage_client = create_storage_client()
    return _storage_client
