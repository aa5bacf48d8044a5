"""
Upload endpoints.

Two ways in:
- Direct: POST /upload-urls hands out presigned PUT URLs, the client uploads
  straight to the store, then POST /confirm stamps metadata and counts usage
- Through the gateway: POST /upload takes multipart files and writes them
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.api.deps import get_metadata_store, get_quota_gate, get_upload_service
from app.schemas import (
    ConfirmRequest,
    ConfirmResponse,
    StoredFileResponse,
    UploadResponse,
    UploadTicketResponse,
    UploadURLsRequest,
    UploadURLsResponse,
)
from app.storage import (
    FileSpec,
    MetadataStore,
    PresignedUploadService,
    QuotaGate,
    new_object_key,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/upload-urls", response_model=UploadURLsResponse)
def create_upload_urls(
    body: UploadURLsRequest,
    uploads: PresignedUploadService = Depends(get_upload_service),
):
    """
    Request presigned upload URLs for a batch.

    The whole batch is admitted or rejected:
    - 400 empty batch
    - 413 more than the per-batch file limit, or quota would be reached
    - 415 a file type is not allowed
    - 500 signing credentials are not configured
    """
    specs = [FileSpec(name=f.name, size=f.size, type=f.type) for f in body.files]
    batch = uploads.issue(specs, pin=body.pin)

    return UploadURLsResponse(
        uploads=[UploadTicketResponse(**t.to_dict()) for t in batch.uploads],
        pin=batch.pin,
        batch_id=batch.batch_id,
        expires_in_seconds=batch.expires_in_seconds,
    )


@router.post("/confirm", response_model=ConfirmResponse)
def confirm_uploads(
    body: ConfirmRequest,
    metadata: MetadataStore = Depends(get_metadata_store),
):
    """
    Confirm direct uploads.

    Keys that were never uploaded are skipped; repeating a confirm is safe.
    """
    result = metadata.confirm(body.keys, pin=body.pin, batch_id=body.batch_id)
    return ConfirmResponse(updated=result.updated, total_bytes=result.total_bytes)


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


@router.post("/upload", response_model=UploadResponse)
def upload_files(
    files: List[UploadFile] = File(default=[]),
    pin: str = Form(default="false"),
    quota: QuotaGate = Depends(get_quota_gate),
    metadata: MetadataStore = Depends(get_metadata_store),
):
    """
    Upload files through the gateway (multipart ``files`` + ``pin``).

    Same admission rules as /upload-urls; files are counted in usage as
    they are written.
    """
    pinned = pin.lower() == "true"
    specs = [
        FileSpec(name=f.filename or "file", size=_upload_size(f), type=f.content_type or "")
        for f in files
    ]
    quota.enforce(specs)

    stored = []
    for upload, spec in zip(files, specs):
        stored_file = metadata.store_upload(
            key=new_object_key(spec.name),
            data=upload.file,
            size=spec.size,
            name=spec.name,
            content_type=spec.type,
            pin=pinned,
        )
        stored.append(StoredFileResponse(**stored_file.to_dict()))

    logger.info(f"Stored {len(stored)} files through the gateway (pin={pinned})")
    return UploadResponse(files=stored)
