"""
Presigned S3 upload and download URLs.

Admins upload attachments and page images; downloads are split by audience:
admins, any signed-in principal, or the public for images and content
attachments.
"""
import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Response
from botocore.exceptions import BotoCoreError, ClientError

from coalition.core.deps import get_current_user, require_admin, CurrentUser
from coalition.schemas.common import MessageResponse
from coalition.schemas.upload import PresignedUploadResponse, PresignedDownloadResponse
from coalition.services.storage import (
    StorageClient,
    UploadValidationError,
    get_storage,
    build_upload_key,
    is_image_key,
    is_public_download_key,
    DOWNLOAD_URL_EXPIRY,
    PUBLIC_IMAGE_EXPIRY,
)

logger = logging.getLogger(__name__)

router = APIRouter()

PUBLIC_IMAGE_CACHE_CONTROL = f"public, max-age={PUBLIC_IMAGE_EXPIRY - 3600}"


def require_storage() -> StorageClient:
    storage = get_storage()
    if storage is None:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="File storage is not configured"
        )
    return storage


def _check_key(key: str) -> str:
    key = key.strip().lstrip("/")
    if not key or ".." in key.split("/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file key")
    return key


def _presign_download(storage: StorageClient, key: str, expires_in: int = DOWNLOAD_URL_EXPIRY) -> PresignedDownloadResponse:
    try:
        url = storage.presign_get(key, expires_in=expires_in)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to presign download for {key}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate download URL"
        )
    return PresignedDownloadResponse(download_url=url, key=key)


async def _delete(storage: StorageClient, key: str) -> None:
    # boto3 blocks on the network
    try:
        await asyncio.to_thread(storage.delete, key)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to delete {key}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete file"
        )
    logger.info(f"Deleted object {key}")


@router.get("/presigned-upload", response_model=PresignedUploadResponse)
async def presigned_upload(
    file_name: str,
    file_type: str,
    folder: Optional[str] = None,
    resource_id: Optional[str] = None,
    _: CurrentUser = Depends(require_admin)
):
    storage = require_storage()
    try:
        key = build_upload_key(file_name, file_type, folder, resource_id)
    except UploadValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        url = storage.presign_put(key, file_type)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Failed to presign upload for {key}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate upload URL"
        )
    return PresignedUploadResponse(upload_url=url, key=key)


@router.get("/presigned-download/{key:path}", response_model=PresignedDownloadResponse)
async def presigned_download(key: str, _: CurrentUser = Depends(require_admin)):
    return _presign_download(require_storage(), _check_key(key))


@router.get("/authenticated-download/{key:path}", response_model=PresignedDownloadResponse)
async def authenticated_download(key: str, _: CurrentUser = Depends(get_current_user)):
    return _presign_download(require_storage(), _check_key(key))


@router.get("/public-image/{key:path}", response_model=PresignedDownloadResponse)
async def public_image(key: str, response: Response):
    key = _check_key(key)
    if not is_image_key(key):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only images are public")
    result = _presign_download(require_storage(), key, expires_in=PUBLIC_IMAGE_EXPIRY)
    response.headers["Cache-Control"] = PUBLIC_IMAGE_CACHE_CONTROL
    return result


@router.get("/public-download/{key:path}", response_model=PresignedDownloadResponse)
async def public_download(key: str):
    key = _check_key(key)
    if not is_public_download_key(key):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="File is not publicly available")
    return _presign_download(require_storage(), key)


@router.delete("/page-image/{key:path}", response_model=MessageResponse)
async def delete_page_image(key: str, _: CurrentUser = Depends(require_admin)):
    key = _check_key(key)
    if not key.startswith("pages/"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only page images can be deleted here")
    await _delete(require_storage(), key)
    return MessageResponse(message="Image deleted successfully")


@router.delete("/document/{key:path}", response_model=MessageResponse)
async def delete_document(key: str, _: CurrentUser = Depends(require_admin)):
    key = _check_key(key)
    await _delete(require_storage(), key)
    return MessageResponse(message="Document deleted successfully")
