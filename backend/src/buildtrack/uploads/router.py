"""Upload API endpoints

Clients never stream file bytes through this service. They request a
presigned PUT URL for a staged key, upload directly to object storage, and
pass the staged key to the workflow endpoint that consumes it.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..auth.dependencies import get_current_user
from ..config import get_settings
from ..dependencies import get_storage
from ..domain.storage.object_storage_port import ObjectStoragePort
from ..models.user import User
from .schemas import DownloadUrlResponse, UploadInitiateRequest, UploadInitiateResponse
from .service import build_staged_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post("/initiate", response_model=UploadInitiateResponse, status_code=status.HTTP_201_CREATED)
async def initiate_upload(
    body: UploadInitiateRequest,
    current_user: User = Depends(get_current_user),
    storage: ObjectStoragePort = Depends(get_storage),
) -> UploadInitiateResponse:
    """Reserve a staged key and return a presigned PUT URL for it."""
    settings = get_settings()
    key = build_staged_key(settings.STAGING_PREFIX, body.file_category, body.file_name)
    upload_url = await storage.generate_presigned_upload_url(
        key,
        content_type=body.content_type,
        expires_in_seconds=settings.PRESIGNED_URL_EXPIRY_SECONDS,
    )
    logger.info(f"Upload initiated: {key}", extra={"user_id": current_user.id, "storage_key": key})
    return UploadInitiateResponse(upload_url=upload_url, key=key)


@router.get("/download-url", response_model=DownloadUrlResponse)
async def get_download_url(
    key: str = Query(..., min_length=1),
    current_user: User = Depends(get_current_user),
    storage: ObjectStoragePort = Depends(get_storage),
) -> DownloadUrlResponse:
    expires = get_settings().PRESIGNED_URL_EXPIRY_SECONDS
    try:
        url = await storage.generate_presigned_url(key, expires_in_seconds=expires)
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return DownloadUrlResponse(url=url, expires_in_seconds=expires)
