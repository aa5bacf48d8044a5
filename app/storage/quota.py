"""
Storage Quota Management

Admission control for upload batches:
- Batch size ceiling (checked first)
- Per-file type validation against MIME and extension allow-lists
- Quota admission against an exclusive byte ceiling

The quota check is advisory. Concurrent batches admitted against the same
reading can together push usage past the ceiling; the next admission and
the retention sweep correct for that.
"""
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from app.core.errors import (
    BatchValidationError,
    QuotaExceededError,
    UnsupportedFileTypeError,
)
from app.metrics import quota_rejections_total, storage_quota_bytes
from app.storage.usage import UsageCounter

logger = logging.getLogger(__name__)

# Textual / document formats the assistant can read
ALLOWED_MIME = frozenset({
    "text/plain",
    "text/markdown",
    "text/csv",
    "text/tab-separated-values",
    "application/json",
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",  # .docx
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",  # .pptx
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # .xlsx
    "text/html",
    "application/xml",
    "text/xml",
    "application/rtf",
})

ALLOWED_EXT = frozenset({
    ".txt",
    ".md",
    ".csv",
    ".tsv",
    ".json",
    ".pdf",
    ".docx",
    ".pptx",
    ".xlsx",
    ".html",
    ".xml",
    ".rtf",
})

# Declared types that carry no information about the content
GENERIC_MIME = frozenset({"", "application/octet-stream", "binary/octet-stream"})


@dataclass
class FileSpec:
    """
    A file the client intends to store
    """
    name: str
    size: int
    type: str = ""


@dataclass
class Admission:
    """
    Result of a quota admission check
    """
    allowed: bool
    used_bytes: int
    limit_bytes: int
    batch_bytes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'allowed': self.allowed,
            'usedBytes': self.used_bytes,
            'limitBytes': self.limit_bytes,
            'batchBytes': self.batch_bytes,
        }


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def is_allowed(content_type: Optional[str], filename: str) -> bool:
    """
    Check a file's declared type.

    Accepted when the MIME type is allow-listed, or the extension is, or the
    declared type is empty/generic. The last case is provisional: browsers
    send inconsistent types for documents, and rejecting them would turn
    away valid files.
    """
    declared = (content_type or "").split(";")[0].strip().lower()

    if declared in ALLOWED_MIME:
        return True
    if file_extension(filename) in ALLOWED_EXT:
        return True
    return declared in GENERIC_MIME


class QuotaGate:
    """
    Batch admission control

    Features:
    - Fixed file-count ceiling per batch
    - Type allow-listing with permissive fallback
    - Exclusive byte ceiling on ``used + batch``
    """

    def __init__(
        self,
        usage_counter: UsageCounter,
        limit_bytes: int,
        max_files_per_batch: int = 20,
    ):
        self.usage = usage_counter
        self.limit_bytes = limit_bytes
        self.max_files_per_batch = max_files_per_batch
        storage_quota_bytes.set(limit_bytes)

    def admit(self, batch_bytes: int) -> Admission:
        """
        Check whether ``batch_bytes`` more would still fit.

        The limit is exclusive: reaching it exactly rejects.
        """
        used = self.usage.get_used_bytes()
        return Admission(
            allowed=(used + batch_bytes) < self.limit_bytes,
            used_bytes=used,
            limit_bytes=self.limit_bytes,
            batch_bytes=batch_bytes,
        )

    def validate_batch(self, files: Sequence[FileSpec]) -> int:
        """
        Validate count and types of a batch.

        Returns:
            Total bytes of the batch

        Raises:
            BatchValidationError: empty (400), oversized (413) or malformed (400)
            UnsupportedFileTypeError: a file failed every type check (415)
        """
        if not files:
            raise BatchValidationError("No files.", status_code=400, reason="empty")

        if len(files) > self.max_files_per_batch:
            quota_rejections_total.labels(reason="batch_size").inc()
            raise BatchValidationError(
                f"Max {self.max_files_per_batch} files per upload.",
                status_code=413,
                reason="too_many_files",
            )

        batch_bytes = 0
        for spec in files:
            if not spec.name or spec.size is None or spec.size < 0:
                raise BatchValidationError("Malformed file entry.", status_code=400)
            if not is_allowed(spec.type, spec.name):
                quota_rejections_total.labels(reason="type").inc()
                raise UnsupportedFileTypeError(spec.name, spec.type)
            batch_bytes += spec.size

        return batch_bytes

    def enforce(self, files: Sequence[FileSpec]) -> Admission:
        """
        Validate a batch and admit it as a whole, or reject it as a whole.

        Nothing is written before this returns, so a rejection never leaves
        partial effects.

        Raises:
            BatchValidationError, UnsupportedFileTypeError, QuotaExceededError
        """
        batch_bytes = self.validate_batch(files)
        admission = self.admit(batch_bytes)

        if not admission.allowed:
            quota_rejections_total.labels(reason="quota").inc()
            logger.warning(
                f"Quota exceeded: would use "
                f"{(admission.used_bytes + batch_bytes) / (1024 ** 3):.2f}GB / "
                f"{self.limit_bytes / (1024 ** 3):.2f}GB ({len(files)} files)"
            )
            raise QuotaExceededError(admission.used_bytes, self.limit_bytes, batch_bytes)

        return admission
