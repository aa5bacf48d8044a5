"""
Storage Usage Counter

Keeps an approximate running total of stored bytes in a single Redis cell
(``used_bytes``). The cell is the fast path; when it is missing the total is
rebuilt from a full bucket listing and written back.

The counter is updated incrementally, so it can drift from the true total
when an object write/delete succeeds but the adjustment does not. Drift is
logged and corrected by ``reconcile()``.
"""
import logging
from typing import Optional

import redis

from app.metrics import storage_used_bytes, usage_drift_events_total
from app.storage.object_store import MinioObjectStore

logger = logging.getLogger(__name__)

USED_BYTES_KEY = "used_bytes"

# INCRBY only when the cell exists; nil otherwise
INCR_IF_EXISTS = """
if redis.call("EXISTS", KEYS[1]) == 1 then
    return redis.call("INCRBY", KEYS[1], ARGV[1])
end
return false
"""


class UsageCounter:
    """
    Process-wide usage total

    Adjustments run EXISTS and INCRBY as one server-side script, so
    concurrent adjustments never lose updates and a cell deleted between
    the two commands is never recreated holding only the delta.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        object_store: MinioObjectStore,
        key: str = USED_BYTES_KEY,
    ):
        self.redis = redis_client
        self.store = object_store
        self.key = key
        self._incr_if_exists = redis_client.register_script(INCR_IF_EXISTS)

    def get_used_bytes(self) -> int:
        """
        Current usage in bytes (never negative).

        Returns the cell verbatim when present. Otherwise sums a full listing
        and stores it; ``SET NX`` keeps a concurrently initialised value
        instead of overwriting it.
        """
        value = self.redis.get(self.key)
        if value is not None:
            used = max(0, int(value))
            storage_used_bytes.set(used)
            return used

        total = self._sum_listing()
        if not self.redis.set(self.key, total, nx=True):
            # Someone else initialised the cell while we were listing
            value = self.redis.get(self.key)
            total = int(value) if value is not None else total

        used = max(0, total)
        storage_used_bytes.set(used)
        logger.info(f"Usage counter initialised from listing: {used} bytes")
        return used

    def adjust(self, delta: int) -> Optional[int]:
        """
        Apply ``delta`` to the counter.

        If the cell does not exist yet it is left absent: the next read
        rebuilds it from a listing that already reflects this change.
        Failure is non-fatal for the caller, whose write or delete has
        already happened; it is logged as a drift event.

        Returns:
            The new total, or None if nothing was applied
        """
        if not delta:
            return None

        try:
            value = self._incr_if_exists(keys=[self.key], args=[delta])
        except redis.RedisError as e:
            usage_drift_events_total.inc()
            logger.warning(
                f"Usage counter adjustment of {delta} bytes failed: {e}",
                extra={"event": "usage_drift", "delta": delta},
            )
            return None

        if value is None:
            logger.debug(f"Usage counter absent, skipping adjustment of {delta}")
            return None

        new_value = int(value)
        storage_used_bytes.set(max(0, new_value))
        return new_value

    def reconcile(self) -> int:
        """
        Recompute the total from a full listing and overwrite the cell.

        Returns:
            The reconciled total in bytes
        """
        previous = self.redis.get(self.key)
        total = self._sum_listing()
        self.redis.set(self.key, total)
        storage_used_bytes.set(total)

        logger.info(
            f"Usage counter reconciled: {previous if previous is not None else 'absent'} -> {total} bytes",
            extra={"event": "usage_reconcile"},
        )
        return total

    def _sum_listing(self) -> int:
        total = 0
        count = 0
        for info in self.store.list_objects():
            total += info.size
            count += 1
        logger.info(f"Listed {count} objects totalling {total / (1024 ** 3):.2f}GB")
        return total
