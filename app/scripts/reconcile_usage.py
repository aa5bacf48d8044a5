#!/usr/bin/env python3
"""
Rebuild the usage counter from a full bucket listing.

Use when the counter is suspected to have drifted:

    python -m app.scripts.reconcile_usage
"""
from app.core.config import settings
from app.core.logging import setup_logging
from app.core.minio_client import get_minio_client
from app.core.redis_client import get_redis_client
from app.storage import MinioObjectStore, UsageCounter


def main() -> int:
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    store = MinioObjectStore(get_minio_client(), settings.S3_BUCKET)
    total = UsageCounter(get_redis_client(), store).reconcile()

    print(f"used_bytes = {total} ({total / (1024 ** 3):.2f}GB of "
          f"{settings.STORAGE_LIMIT_BYTES / (1024 ** 3):.2f}GB)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
