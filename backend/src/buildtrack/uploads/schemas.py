"""Pydantic schemas for the uploads API and file references used by other features."""

from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


class FileRef(BaseModel):
    """A file attached to an entity.

    `key` is either a staged key under ``uploads/tmp/`` (relocated by the
    operation that consumes it) or an already permanent key.
    """
    key: str = Field(..., min_length=1)
    file_type: str = Field("document", pattern=r"^[A-Za-z0-9_-]+$")
    name: Optional[str] = None

    model_config = ConfigDict(extra='forbid')


class UploadInitiateRequest(BaseModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., min_length=1)
    file_category: str = Field(..., description="Folder under the staging prefix")

    model_config = ConfigDict(extra='forbid')


class UploadInitiateResponse(BaseModel):
    upload_url: str
    key: str


class DownloadUrlResponse(BaseModel):
    url: str
    expires_in_seconds: int
