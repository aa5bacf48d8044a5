#!/usr/bin/env python3
"""
Run one retention sweep pass.

For cron/systemd timers that invoke the sweep directly instead of hitting
/__scheduled:

    python -m app.scripts.run_sweep
"""
import json
from datetime import timedelta

from app.core.config import settings
from app.core.logging import setup_logging
from app.core.minio_client import get_minio_client
from app.core.redis_client import get_redis_client
from app.storage import MinioObjectStore, RetentionSweeper, UsageCounter


def main() -> int:
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    store = MinioObjectStore(get_minio_client(), settings.S3_BUCKET)
    usage = UsageCounter(get_redis_client(), store)
    sweeper = RetentionSweeper(store, usage, retention=timedelta(days=settings.RETENTION_DAYS))

    result = sweeper.sweep()
    print(json.dumps(result.to_dict()))
    return 1 if result.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
