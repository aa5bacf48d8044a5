"""
FastAPI dependencies wiring the storage services together.

Only the leaves (settings, Redis client, object store) touch the outside
world; tests override those and get the whole graph on in-memory doubles.
"""
from datetime import timedelta

import redis
from fastapi import Depends

from app.core.config import Settings, settings as app_settings
from app.core.minio_client import get_minio_client
from app.core.redis_client import get_redis_client
from app.storage import (
    MetadataStore,
    MinioObjectStore,
    PendingBatchStore,
    PresignedUploadService,
    QuotaGate,
    RequestSigner,
    RetentionSweeper,
    UsageCounter,
)


def get_settings() -> Settings:
    return app_settings


def get_redis() -> redis.Redis:
    return get_redis_client()


def get_object_store(settings: Settings = Depends(get_settings)) -> MinioObjectStore:
    return MinioObjectStore(get_minio_client(), settings.S3_BUCKET)


def get_usage_counter(
    redis_client: redis.Redis = Depends(get_redis),
    store: MinioObjectStore = Depends(get_object_store),
) -> UsageCounter:
    return UsageCounter(redis_client, store)


def get_quota_gate(
    usage: UsageCounter = Depends(get_usage_counter),
    settings: Settings = Depends(get_settings),
) -> QuotaGate:
    return QuotaGate(
        usage,
        limit_bytes=settings.STORAGE_LIMIT_BYTES,
        max_files_per_batch=settings.MAX_FILES_PER_BATCH,
    )


def get_signer(settings: Settings = Depends(get_settings)) -> RequestSigner:
    return RequestSigner.from_settings(settings)


def get_pending_store(
    redis_client: redis.Redis = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> PendingBatchStore:
    return PendingBatchStore(redis_client, ttl_seconds=settings.PENDING_BATCH_TTL_SECONDS)


def get_upload_service(
    quota: QuotaGate = Depends(get_quota_gate),
    signer: RequestSigner = Depends(get_signer),
    pending: PendingBatchStore = Depends(get_pending_store),
    settings: Settings = Depends(get_settings),
) -> PresignedUploadService:
    return PresignedUploadService(
        quota,
        signer,
        pending,
        expires_in_seconds=settings.UPLOAD_URL_EXPIRY_SECONDS,
    )


def get_metadata_store(
    store: MinioObjectStore = Depends(get_object_store),
    usage: UsageCounter = Depends(get_usage_counter),
    pending: PendingBatchStore = Depends(get_pending_store),
) -> MetadataStore:
    return MetadataStore(store, usage, pending)


def get_sweeper(
    store: MinioObjectStore = Depends(get_object_store),
    usage: UsageCounter = Depends(get_usage_counter),
    settings: Settings = Depends(get_settings),
) -> RetentionSweeper:
    return RetentionSweeper(store, usage, retention=timedelta(days=settings.RETENTION_DAYS))
