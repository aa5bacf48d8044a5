"""
Pending upload batches.

Short-lived snapshot of the keys handed out by /api/upload-urls, kept only
as a hint for reconciling uploads that are never confirmed. Nothing depends
on it being present: every read and write failure is logged and swallowed.
"""
import json
import logging
import secrets
from typing import Any, Dict, List, Optional

import redis

logger = logging.getLogger(__name__)

PENDING_PREFIX = "pending_batch:"


class PendingBatchStore:
    """Redis-backed pending batch snapshots with a TTL."""

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int = 3600):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds

    def _make_key(self, batch_id: str) -> str:
        return f"{PENDING_PREFIX}{batch_id}"

    def save(self, uploads: List[Dict[str, Any]], pin: bool) -> Optional[str]:
        """
        Store a snapshot of ``[{key, size}]`` for a freshly presigned batch.

        Returns:
            The batch id, or None if the snapshot could not be stored
        """
        batch_id = secrets.token_urlsafe(12)
        snapshot = {
            "batchId": batch_id,
            "pin": pin,
            "uploads": [{"key": u["key"], "size": u["size"]} for u in uploads],
        }
        try:
            self.redis.setex(self._make_key(batch_id), self.ttl_seconds, json.dumps(snapshot))
        except redis.RedisError as e:
            logger.warning(f"Could not store pending batch: {e}")
            return None
        return batch_id

    def get(self, batch_id: str) -> Optional[Dict[str, Any]]:
        try:
            value = self.redis.get(self._make_key(batch_id))
            return json.loads(value) if value else None
        except (redis.RedisError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read pending batch {batch_id}: {e}")
            return None

    def discard(self, batch_id: str) -> None:
        try:
            self.redis.delete(self._make_key(batch_id))
        except redis.RedisError as e:
            logger.warning(f"Could not discard pending batch {batch_id}: {e}")
