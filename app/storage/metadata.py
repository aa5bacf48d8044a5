"""
Object Metadata Service

Per-object sidecar attributes stored as custom metadata on each object:
- ``pinned``        "true"/"false", exempts the object from the sweep
- ``last_accessed`` ISO-8601 UTC timestamp, drives sweep eligibility
- ``confirmed``     "true" once the object has been counted in usage

Mutations are read-modify-write over the whole attribute set with no
concurrency token: two writers on the same key race and the last one wins.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, BinaryIO, Dict, Iterable, List, Optional

from minio.error import S3Error

from app.core.errors import ObjectNotFoundError
from app.metrics import record_storage_operation
from app.storage.object_store import MinioObjectStore, ObjectInfo, content_disposition_for
from app.storage.pending import PendingBatchStore
from app.storage.usage import UsageCounter

logger = logging.getLogger(__name__)


def now_iso(now: Optional[datetime] = None) -> str:
    """UTC timestamp with millisecond precision and a trailing Z"""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class ConfirmResult:
    """
    Outcome of confirming a batch of direct uploads
    """
    updated: int = 0
    total_bytes: int = 0
    counted_bytes: int = 0
    missing: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ok': True,
            'updated': self.updated,
            'totalBytes': self.total_bytes,
        }


@dataclass
class StoredFile:
    key: str
    name: str
    size: int
    type: str
    pinned: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'name': self.name,
            'size': self.size,
            'type': self.type,
            'pinned': self.pinned,
        }


class MetadataStore:
    """
    Metadata mutations on stored objects

    Features:
    - Access touch and pin toggling
    - Idempotent confirmation of direct uploads
    - Deletion with usage reconciliation
    - Server-mediated writes with initial metadata
    """

    def __init__(
        self,
        object_store: MinioObjectStore,
        usage_counter: UsageCounter,
        pending: Optional[PendingBatchStore] = None,
    ):
        self.store = object_store
        self.usage = usage_counter
        self.pending = pending

    def _require(self, key: str) -> ObjectInfo:
        info = self.store.head(key)
        if info is None:
            raise ObjectNotFoundError(key)
        return info

    def _rewrite(self, info: ObjectInfo, changes: Dict[str, str]) -> Dict[str, str]:
        merged = {**info.metadata, **changes}
        start = time.time()
        try:
            self.store.replace_metadata(info, merged)
        except S3Error:
            record_storage_operation("metadata", False, time.time() - start)
            raise
        record_storage_operation("metadata", True, time.time() - start)
        return merged

    def touch_access(self, key: str, now: Optional[datetime] = None) -> str:
        """
        Stamp ``last_accessed`` with the current time.

        Returns:
            The new ``last_accessed`` value

        Raises:
            ObjectNotFoundError: If the key does not exist
        """
        info = self._require(key)
        merged = self._rewrite(info, {"last_accessed": now_iso(now)})
        return merged["last_accessed"]

    def set_pinned(self, key: str, pinned: bool) -> bool:
        """
        Raises:
            ObjectNotFoundError: If the key does not exist
        """
        info = self._require(key)
        self._rewrite(info, {"pinned": "true" if pinned else "false"})
        logger.info(f"{'Pinned' if pinned else 'Unpinned'}: {key}")
        return pinned

    def confirm(
        self,
        keys: Iterable[str],
        pin: bool = False,
        batch_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ConfirmResult:
        """
        Stamp metadata on uploaded objects and count them in usage.

        Keys that were never uploaded are skipped. A key that was already
        confirmed is re-stamped but not counted again, so repeating a
        confirm never inflates the counter. Failures are isolated per key.
        """
        result = ConfirmResult()
        stamp = now_iso(now)

        for key in dict.fromkeys(keys):
            try:
                info = self.store.head(key)
                if info is None:
                    result.missing.append(key)
                    continue

                self._rewrite(info, {
                    "pinned": "true" if pin else "false",
                    "last_accessed": stamp,
                    "confirmed": "true",
                })
            except S3Error as e:
                logger.error(f"Failed to confirm {key}: {e}")
                result.errors.append(key)
                continue

            result.updated += 1
            result.total_bytes += info.size
            if not info.confirmed:
                result.counted_bytes += info.size

        if result.counted_bytes:
            self.usage.adjust(result.counted_bytes)

        if batch_id and self.pending is not None:
            snapshot = self.pending.get(batch_id)
            if snapshot:
                expected = {u["key"] for u in snapshot.get("uploads", [])}
                never_uploaded = expected.intersection(result.missing)
                if never_uploaded:
                    logger.info(f"Batch {batch_id}: {len(never_uploaded)} keys were never uploaded")
            self.pending.discard(batch_id)

        logger.info(
            f"Confirmed {result.updated} objects ({result.total_bytes} bytes, "
            f"{result.counted_bytes} newly counted, {len(result.missing)} missing)"
        )
        return result

    def store_upload(
        self,
        key: str,
        data: BinaryIO,
        size: int,
        name: str,
        content_type: str,
        pin: bool = False,
    ) -> StoredFile:
        """
        Write an object through the gateway with its initial metadata and
        count it in usage.
        """
        start = time.time()
        try:
            self.store.put(
                key,
                data,
                length=size,
                content_type=content_type,
                content_disposition=content_disposition_for(name),
                metadata={
                    "pinned": "true" if pin else "false",
                    "last_accessed": now_iso(),
                    "confirmed": "true",
                },
            )
        except S3Error:
            record_storage_operation("upload", False, time.time() - start)
            raise
        record_storage_operation("upload", True, time.time() - start)

        self.usage.adjust(size)
        return StoredFile(key=key, name=name, size=size, type=content_type, pinned=pin)

    def delete(self, key: str) -> int:
        """
        Delete an object and release its bytes from usage.

        Returns:
            Size of the deleted object

        Raises:
            ObjectNotFoundError: If the key does not exist
        """
        info = self._require(key)

        start = time.time()
        try:
            self.store.delete(key)
        except S3Error:
            record_storage_operation("delete", False, time.time() - start)
            raise
        record_storage_operation("delete", True, time.time() - start)

        self.usage.adjust(-info.size)
        logger.info(f"Deleted: {key} ({info.size / (1024 ** 2):.2f}MB)")
        return info.size
