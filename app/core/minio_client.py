"""
MinIO Client Module

Provides the S3-compatible object store client used by the gateway.
"""
from typing import Optional

from minio import Minio
from app.core.config import settings

_minio_client: Optional[Minio] = None


def get_minio_client() -> Minio:
    """
    Return the process-wide MinIO client, creating it on first use.

    Returns:
        Minio: Configured MinIO client
    """
    global _minio_client

    if _minio_client is None:
        _minio_client = Minio(
            settings.S3_ENDPOINT,
            access_key=settings.S3_ACCESS_KEY_ID,
            secret_key=settings.S3_SECRET_ACCESS_KEY,
            secure=settings.S3_SECURE,
            region=settings.S3_REGION,
        )

    return _minio_client
