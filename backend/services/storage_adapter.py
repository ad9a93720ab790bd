"""
Storage Adapter - GridFS-based storage for user uploaded images.
Files are addressed by an owner-scoped path ``<owner_id>/<uuid>.<ext>`` which
doubles as the GridFS filename, so a public URL maps straight back to the file.

Phase 1: MongoDB GridFS implementation
Future: S3/GCS migration via interface swap
"""
import io
import logging
import os
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple

from motor.motor_asyncio import AsyncIOMotorGridFSBucket

from utils.public_app_url import get_public_api_url

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
DEFAULT_BUCKET = "portfolio_uploads"


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StoredFileNotFoundError(StorageError):
    """File not found in storage."""
    pass


class UnsupportedFileTypeError(StorageError):
    """Upload is not one of the accepted image types."""
    pass


class StoredFile:
    """Metadata for a stored upload."""
    def __init__(
        self,
        path: str,
        original_name: str,
        content_type: str,
        size_bytes: int,
        uploaded_by: Optional[str] = None,
        upload_timestamp: Optional[datetime] = None,
    ):
        self.path = path
        self.original_name = original_name
        self.content_type = content_type
        self.size_bytes = size_bytes
        self.uploaded_by = uploaded_by
        self.upload_timestamp = upload_timestamp or datetime.now(timezone.utc)

    @property
    def file_name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    def public_url(self, base_url: Optional[str] = None) -> str:
        base = (base_url or get_public_api_url()).rstrip("/")
        return f"{base}/api/files/{self.path}"

    def to_response(self, base_url: Optional[str] = None) -> Dict[str, Any]:
        return {
            "url": self.public_url(base_url),
            "fileName": self.file_name,
            "originalName": self.original_name,
            "size": self.size_bytes,
            "type": self.content_type,
        }


def build_upload_path(owner_id: str, original_name: Optional[str], content_type: str) -> str:
    """``<owner_id>/<uuid>.<ext>``; extension from the filename, else the MIME type."""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise UnsupportedFileTypeError(f"Unsupported file type: {content_type}")
    ext = ""
    if original_name and "." in original_name:
        ext = original_name.rsplit(".", 1)[-1].lower()
    if not ext or not ext.isalnum():
        ext = ALLOWED_IMAGE_TYPES[content_type]
    return f"{owner_id}/{uuid.uuid4()}.{ext}"


class StorageAdapter(ABC):
    """Abstract base class for storage implementations."""

    @abstractmethod
    async def upload_file(
        self,
        path: str,
        data: bytes,
        content_type: str,
        original_name: str,
        uploaded_by: Optional[str] = None,
    ) -> StoredFile:
        """Store bytes at path and return metadata."""
        pass

    @abstractmethod
    async def download_file(self, path: str) -> Tuple[bytes, StoredFile]:
        """Download file content and metadata."""
        pass


class GridFSStorageAdapter(StorageAdapter):
    """
    GridFS-based storage implementation.
    Stores files in MongoDB GridFS with content type and uploader in metadata.
    """

    def __init__(self, db, bucket_name: str = DEFAULT_BUCKET):
        self.db = db
        self.bucket_name = bucket_name
        self._bucket = None

    @classmethod
    def from_env(cls, db) -> "GridFSStorageAdapter":
        return cls(db, bucket_name=os.environ.get("STORAGE_BUCKET", DEFAULT_BUCKET))

    def _get_bucket(self) -> AsyncIOMotorGridFSBucket:
        """Get or create GridFS bucket."""
        if self._bucket is None:
            self._bucket = AsyncIOMotorGridFSBucket(self.db, bucket_name=self.bucket_name)
        return self._bucket

    async def upload_file(
        self,
        path: str,
        data: bytes,
        content_type: str,
        original_name: str,
        uploaded_by: Optional[str] = None,
    ) -> StoredFile:
        """Upload a file to GridFS."""
        bucket = self._get_bucket()
        now = datetime.now(timezone.utc)
        try:
            await bucket.upload_from_stream(
                path,
                io.BytesIO(data),
                metadata={
                    "content_type": content_type,
                    "original_name": original_name,
                    "uploaded_by": uploaded_by,
                    "upload_timestamp": now.isoformat(),
                },
            )
        except Exception as e:
            logger.error(f"GridFS upload failed for {path}: {e}")
            raise StorageError(f"Upload failed: {e}") from e

        logger.info(f"File uploaded to GridFS: {path} ({len(data)} bytes)")
        return StoredFile(
            path=path,
            original_name=original_name,
            content_type=content_type,
            size_bytes=len(data),
            uploaded_by=uploaded_by,
            upload_timestamp=now,
        )

    async def download_file(self, path: str) -> Tuple[bytes, StoredFile]:
        """Download the newest revision stored under path."""
        bucket = self._get_bucket()
        file_doc = await self.db[f"{self.bucket_name}.files"].find_one(
            {"filename": path}, sort=[("uploadDate", -1)]
        )
        if not file_doc:
            raise StoredFileNotFoundError(f"File not found: {path}")

        stream = io.BytesIO()
        await bucket.download_to_stream(file_doc["_id"], stream)

        gridfs_meta = file_doc.get("metadata") or {}
        uploaded = gridfs_meta.get("upload_timestamp")
        return stream.getvalue(), StoredFile(
            path=path,
            original_name=gridfs_meta.get("original_name", path.rsplit("/", 1)[-1]),
            content_type=gridfs_meta.get("content_type", "application/octet-stream"),
            size_bytes=file_doc["length"],
            uploaded_by=gridfs_meta.get("uploaded_by"),
            upload_timestamp=datetime.fromisoformat(uploaded) if uploaded else None,
        )
