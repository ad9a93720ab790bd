"""Image uploads for hero/about/project images.

Uploads are owner-scoped; serving is public so rendered portfolios can link
to the stored URL directly.
"""
from typing import Optional
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from dependencies import get_db, get_storage
from middleware import get_current_user
from models import AuditAction, CurrentUser
from services.storage_adapter import (
    ALLOWED_IMAGE_TYPES,
    StorageAdapter,
    StorageError,
    StoredFileNotFoundError,
    build_upload_path,
)
from utils.audit import create_audit_log

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["uploads"])


@router.post("/upload")
async def upload_image(
    file: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(get_current_user),
    storage: StorageAdapter = Depends(get_storage),
    db=Depends(get_db),
):
    if file is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Only images are allowed."
        )

    data = await file.read()
    path = build_upload_path(user.id, file.filename, file.content_type)
    try:
        stored = await storage.upload_file(
            path=path,
            data=data,
            content_type=file.content_type,
            original_name=file.filename or path.rsplit("/", 1)[-1],
            uploaded_by=user.id,
        )
    except StorageError as e:
        logger.error(f"Upload to storage failed for user {user.id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Upload to storage failed")

    await create_audit_log(
        action=AuditAction.FILE_UPLOADED,
        actor_role=user.role,
        actor_id=user.id,
        resource_type="file",
        resource_id=stored.path,
        metadata={"size": stored.size_bytes, "content_type": stored.content_type},
        db=db,
    )
    return stored.to_response()


@router.get("/files/{owner_id}/{file_name}")
async def serve_file(
    owner_id: str,
    file_name: str,
    storage: StorageAdapter = Depends(get_storage),
):
    try:
        content, stored = await storage.download_file(f"{owner_id}/{file_name}")
    except StoredFileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    except StorageError as e:
        logger.error(f"Failed to read {owner_id}/{file_name}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to read file")

    return Response(
        content=content,
        media_type=stored.content_type,
        headers={"Cache-Control": "public, max-age=3600"},
    )
