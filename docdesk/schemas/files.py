from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ..orchestration.uploads import UploadedFile


class UploadedFileModel(BaseModel):
    id: str = Field(..., description="Identifier built from the filename and upload time.")
    name: str = Field(..., description="Original filename.")
    size_bytes: int = Field(..., ge=0, description="Raw file size in bytes.")
    content_type: str = Field(..., description="Content type reported by the client.")
    uploaded_at: datetime

    @classmethod
    def from_file(cls, uploaded: UploadedFile) -> "UploadedFileModel":
        return cls(
            id=uploaded.id,
            name=uploaded.name,
            size_bytes=uploaded.size_bytes,
            content_type=uploaded.content_type,
            uploaded_at=uploaded.uploaded_at,
        )


class RejectedUpload(BaseModel):
    name: str
    reason: str


class UploadResponse(BaseModel):
    accepted: list[UploadedFileModel] = Field(default_factory=list)
    rejected: list[RejectedUpload] = Field(default_factory=list)


class ClearedResponse(BaseModel):
    removed: int = Field(..., ge=0, description="Number of entries removed.")


class DownloadModel(BaseModel):
    filename: str
    media_type: str
    size_bytes: int = Field(..., ge=0)
    created_at: datetime


__all__ = ["ClearedResponse", "DownloadModel", "RejectedUpload", "UploadResponse", "UploadedFileModel"]
