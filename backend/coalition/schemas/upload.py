"""
Pydantic schemas for S3 uploads.
"""
from pydantic import BaseModel


class PresignedUploadResponse(BaseModel):
    upload_url: str
    key: str


class PresignedDownloadResponse(BaseModel):
    download_url: str
    key: str
