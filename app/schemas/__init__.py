"""
Pydantic schemas for request/response validation.
"""
from app.schemas.files import (
    FileDescriptor,
    UploadURLsRequest,
    ConfirmRequest,
    PinRequest,
    QuotaResponse,
    UploadTicketResponse,
    UploadURLsResponse,
    ConfirmResponse,
    StoredFileResponse,
    UploadResponse,
    AccessResponse,
    PinResponse,
    OkResponse,
    SweepResponse,
)

__all__ = [
    # Requests
    "FileDescriptor",
    "UploadURLsRequest",
    "ConfirmRequest",
    "PinRequest",
    # Responses
    "QuotaResponse",
    "UploadTicketResponse",
    "UploadURLsResponse",
    "ConfirmResponse",
    "StoredFileResponse",
    "UploadResponse",
    "AccessResponse",
    "PinResponse",
    "OkResponse",
    "SweepResponse",
]
