"""
Presigned Upload Service

Issues direct-upload URLs for an admitted batch:
- Batch validation and quota admission (all or nothing)
- One fresh, unguessable key per file
- One presigned PUT URL per key
- Pending-batch snapshot for later reconciliation
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from app.metrics import presigned_urls_issued_total
from app.storage.pending import PendingBatchStore
from app.storage.quota import FileSpec, QuotaGate
from app.storage.signing import RequestSigner

logger = logging.getLogger(__name__)


def new_object_key(filename: str) -> str:
    """``<random-prefix>/<original-filename>``; never reused"""
    name = (filename or "file").replace("\\", "_").replace("/", "_") or "file"
    return f"{uuid.uuid4()}/{name}"


@dataclass
class UploadTicket:
    """
    One presigned upload slot
    """
    key: str
    url: str
    name: str
    size: int
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'url': self.url,
            'name': self.name,
            'size': self.size,
            'type': self.type,
        }


@dataclass
class UploadBatch:
    uploads: List[UploadTicket]
    pin: bool
    batch_id: Optional[str] = None
    expires_in_seconds: int = 0


class PresignedUploadService:
    """
    Hands out presigned PUT URLs for admitted batches

    Validation and quota errors are raised before any URL is minted.
    """

    def __init__(
        self,
        quota_gate: QuotaGate,
        signer: RequestSigner,
        pending: PendingBatchStore,
        expires_in_seconds: int = 600,
    ):
        self.quota = quota_gate
        self.signer = signer
        self.pending = pending
        self.expires_in_seconds = expires_in_seconds

    def issue(self, files: Sequence[FileSpec], pin: bool = False) -> UploadBatch:
        """
        Admit a batch and mint one URL per file.

        Raises:
            BatchValidationError, UnsupportedFileTypeError, QuotaExceededError,
            SigningConfigurationError
        """
        admission = self.quota.enforce(files)

        uploads: List[UploadTicket] = []
        for spec in files:
            key = new_object_key(spec.name)
            presigned = self.signer.presign(
                key,
                method="PUT",
                expires_in_seconds=self.expires_in_seconds,
            )
            uploads.append(UploadTicket(
                key=key,
                url=presigned.url,
                name=spec.name,
                size=spec.size,
                type=spec.type,
            ))

        presigned_urls_issued_total.inc(len(uploads))

        batch_id = self.pending.save([u.to_dict() for u in uploads], pin)

        logger.info(
            f"Issued {len(uploads)} upload URLs ({admission.batch_bytes} bytes, pin={pin}, "
            f"batch={batch_id})"
        )

        return UploadBatch(
            uploads=uploads,
            pin=pin,
            batch_id=batch_id,
            expires_in_seconds=self.expires_in_seconds,
        )
