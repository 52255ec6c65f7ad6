from __future__ import annotations

from pydantic import BaseModel, Field

from later.constants import MAX_FILE_BYTES


class UploadRequest(BaseModel):
    file_name: str = Field(min_length=1, max_length=255)
    mime_type: str = Field(min_length=1, max_length=200)
    size: int = Field(gt=0, le=MAX_FILE_BYTES)


class UploadOut(BaseModel):
    storage_path: str
    signed_upload_url: str | None = None
    token: str | None = None
    public_url: str | None = None
    note: str | None = None
