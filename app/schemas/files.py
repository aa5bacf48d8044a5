"""
Pydantic schemas for quota, upload and file requests/responses.
JSON field names are camelCase on the wire.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ========================================
# Request Schemas
# ========================================

class FileDescriptor(_WireModel):
    """A file the client wants to upload directly."""
    name: str = Field(..., min_length=1, max_length=1024, description="Original filename")
    size: int = Field(..., ge=0, description="Size in bytes")
    type: str = Field(default="", description="Declared media type (may be empty)")


class UploadURLsRequest(_WireModel):
    files: List[FileDescriptor] = Field(default_factory=list)
    pin: bool = Field(default=False, description="Exempt the files from the retention sweep")


class ConfirmRequest(_WireModel):
    keys: List[str] = Field(default_factory=list)
    pin: bool = False
    batch_id: Optional[str] = Field(default=None, alias="batchId")


class PinRequest(_WireModel):
    pinned: bool


# ========================================
# Response Schemas
# ========================================

class QuotaResponse(_WireModel):
    used_bytes: int = Field(..., alias="usedBytes")
    limit_bytes: int = Field(..., alias="limitBytes")
    ok_to_upload: bool = Field(..., alias="okToUpload")


class UploadTicketResponse(_WireModel):
    key: str
    url: str
    name: str
    size: int
    type: str


class UploadURLsResponse(_WireModel):
    ok: bool = True
    uploads: List[UploadTicketResponse]
    pin: bool
    batch_id: Optional[str] = Field(default=None, alias="batchId")
    expires_in_seconds: int = Field(..., alias="expiresInSeconds")


class ConfirmResponse(_WireModel):
    ok: bool = True
    updated: int
    total_bytes: int = Field(..., alias="totalBytes")


class StoredFileResponse(_WireModel):
    key: str
    name: str
    size: int
    type: str
    pinned: bool


class UploadResponse(_WireModel):
    ok: bool = True
    files: List[StoredFileResponse]


class AccessResponse(_WireModel):
    ok: bool = True
    key: str
    last_accessed: str


class PinResponse(_WireModel):
    ok: bool = True
    key: str
    pinned: bool


class OkResponse(_WireModel):
    ok: bool = True


class SweepResponse(_WireModel):
    ok: bool = True
    deleted: int
    freed_bytes: int = Field(..., alias="freedBytes")
