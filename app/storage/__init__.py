"""
Storage Management Module

Quota-enforced object storage for the gateway:
- Object store adapter over MinIO / S3-compatible buckets
- Usage accounting in a Redis counter cell
- Batch admission (file count, type allow-list, quota ceiling)
- Presigned URL signing for direct uploads
- Per-object metadata (pin, last access, confirmation)
- Retention sweep of stale, unpinned objects
"""

from .object_store import MinioObjectStore, ObjectInfo
from .usage import UsageCounter
from .quota import QuotaGate, FileSpec, Admission, is_allowed
from .signing import RequestSigner, PresignedURL, SignatureCheck
from .pending import PendingBatchStore
from .presigned import PresignedUploadService, UploadTicket, UploadBatch, new_object_key
from .metadata import MetadataStore, ConfirmResult, StoredFile
from .cleanup import RetentionSweeper, SweepResult

__all__ = [
    # Object store
    'MinioObjectStore',
    'ObjectInfo',

    # Usage & quota
    'UsageCounter',
    'QuotaGate',
    'FileSpec',
    'Admission',
    'is_allowed',

    # Presigned uploads
    'RequestSigner',
    'PresignedURL',
    'SignatureCheck',
    'PendingBatchStore',
    'PresignedUploadService',
    'UploadTicket',
    'UploadBatch',
    'new_object_key',

    # Metadata
    'MetadataStore',
    'ConfirmResult',
    'StoredFile',

    # Retention
    'RetentionSweeper',
    'SweepResult',
]
