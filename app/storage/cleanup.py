"""
Retention Sweep

Reclaims space by deleting stale, unpinned objects:
- Enumerates the whole bucket on every pass
- Unpinned objects idle longer than the retention window are deleted
- Objects with missing or unreadable ``last_accessed`` are deleted too
- Usage counter is reconciled once per pass by the bytes actually freed

Runs from an external trigger (HTTP cron hit or ``app.scripts.run_sweep``),
never from request traffic.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from minio.error import S3Error

from app.metrics import record_storage_operation, record_sweep
from app.storage.object_store import MinioObjectStore, ObjectInfo
from app.storage.usage import UsageCounter

logger = logging.getLogger(__name__)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; None when absent or unreadable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class SweepResult:
    """
    Sweep pass result
    """
    files_scanned: int = 0
    deleted_count: int = 0
    freed_bytes: int = 0
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def freed_mb(self) -> float:
        return self.freed_bytes / (1024 ** 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ok': True,
            'deleted': self.deleted_count,
            'freedBytes': self.freed_bytes,
        }


class RetentionSweeper:
    """
    Deletes unpinned objects not accessed within the retention window

    Deletion is best effort per object; one failure never stops the pass.
    Eligibility is decided from the metadata read during enumeration, so an
    object touched or confirmed after that read may still be removed in the
    same pass only if it was already eligible when listed.

    Presigned uploads that were never confirmed carry no ``last_accessed``
    and are deleted on the first pass after they land. Their bytes were
    never added to the usage counter, yet the pass subtracts them with the
    rest of ``freed_bytes``, so the counter runs low until
    ``app.scripts.reconcile_usage`` recomputes it from a listing.
    """

    DEFAULT_RETENTION = timedelta(days=7)

    def __init__(
        self,
        object_store: MinioObjectStore,
        usage_counter: UsageCounter,
        retention: Optional[timedelta] = None,
    ):
        self.store = object_store
        self.usage = usage_counter
        self.retention = retention or self.DEFAULT_RETENTION

        logger.info(f"RetentionSweeper initialized (retention={self.retention})")

    def is_eligible(self, info: ObjectInfo, cutoff: datetime) -> bool:
        """
        Pinned objects are exempt. Otherwise an object is eligible when its
        last access is older than ``cutoff`` or cannot be determined.
        """
        if info.pinned:
            return False
        last_accessed = parse_timestamp(info.last_accessed)
        if last_accessed is None:
            return True
        return last_accessed < cutoff

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Run one full pass over the bucket.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            SweepResult with deletedCount and freedBytes
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - self.retention
        started = time.time()
        result = SweepResult()

        logger.info(f"Starting retention sweep (cutoff={cutoff.isoformat()})")

        try:
            for info in self.store.list_objects():
                result.files_scanned += 1

                if not self.is_eligible(info, cutoff):
                    continue

                op_start = time.time()
                try:
                    self.store.delete(info.key)
                except S3Error as e:
                    record_storage_operation("delete", False, time.time() - op_start)
                    error_msg = f"Failed to delete {info.key}: {e}"
                    logger.error(error_msg)
                    result.errors.append(error_msg)
                    continue
                record_storage_operation("delete", True, time.time() - op_start)

                logger.debug(f"Swept: {info.key} ({info.size} bytes)")
                result.deleted_count += 1
                result.freed_bytes += info.size
        finally:
            # Reconcile whatever was freed, even if the listing broke off
            if result.freed_bytes:
                self.usage.adjust(-result.freed_bytes)

        result.duration_seconds = time.time() - started
        record_sweep(result.deleted_count, result.freed_bytes, result.duration_seconds)

        logger.info(
            f"Retention sweep completed: "
            f"{result.deleted_count}/{result.files_scanned} files deleted, "
            f"{result.freed_mb:.2f}MB freed, "
            f"{len(result.errors)} errors, "
            f"{result.duration_seconds:.2f}s"
        )

        return result
