"""
Per-object endpoints.
Handles access touch, pin toggling and deletion. Keys contain a slash
(``<prefix>/<filename>``), so they are matched as paths.
"""
from fastapi import APIRouter, Depends

from app.api.deps import get_metadata_store
from app.schemas import AccessResponse, OkResponse, PinRequest, PinResponse
from app.storage import MetadataStore

router = APIRouter(prefix="/files")


@router.post("/{key:path}/access", response_model=AccessResponse)
def touch_access(key: str, metadata: MetadataStore = Depends(get_metadata_store)):
    """
    Record that a file was just used, postponing its retention sweep.
    """
    last_accessed = metadata.touch_access(key)
    return AccessResponse(key=key, last_accessed=last_accessed)


@router.post("/{key:path}/pin", response_model=PinResponse)
def set_pinned(
    key: str,
    body: PinRequest,
    metadata: MetadataStore = Depends(get_metadata_store),
):
    """
    Pin or unpin a file. Pinned files are never swept.
    """
    pinned = metadata.set_pinned(key, body.pinned)
    return PinResponse(key=key, pinned=pinned)


@router.delete("/{key:path}", response_model=OkResponse)
def delete_file(key: str, metadata: MetadataStore = Depends(get_metadata_store)):
    """
    Delete a file and release its bytes from the usage total.

    **Returns:** 404 if the key does not exist
    """
    metadata.delete(key)
    return OkResponse()
