"""
Pytest configuration and shared fixtures for Quota Gateway tests.

Redis and the object store are replaced by in-memory doubles that implement
the same surface the gateway uses, so the whole dependency graph runs
without external services.
"""
import os
import sys
import threading
from datetime import datetime, timezone
from typing import Dict, Generator, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from minio.error import S3Error

# Add app to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.main import app
from app.api.deps import get_object_store, get_redis, get_settings
from app.core.config import Settings
from app.storage import ObjectInfo, UsageCounter


def make_s3_error(code: str = "InternalError", key: str = "object") -> S3Error:
    """Build an S3Error the way the SDK raises it."""
    return S3Error(
        code=code,
        message=f"{code} for {key}",
        resource=f"/files/{key}",
        request_id="test-request",
        host_id="test-host",
        response=MagicMock(),
        bucket_name="files",
        object_name=key,
    )


class FakeRedis:
    """
    Thread-safe in-memory stand-in for the Redis commands the gateway uses.

    Values are kept as strings, matching ``decode_responses=True``.
    """

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()
        self.ttls: Dict[str, int] = {}

    def get(self, key):
        with self._lock:
            return self._data.get(key)

    def set(self, key, value, nx=False):
        with self._lock:
            if nx and key in self._data:
                return None
            self._data[key] = str(value)
            return True

    def setex(self, key, ttl, value):
        with self._lock:
            self._data[key] = str(value)
            self.ttls[key] = ttl
            return True

    def incrby(self, key, amount=1):
        with self._lock:
            value = int(self._data.get(key, 0)) + int(amount)
            self._data[key] = str(value)
            return value

    def exists(self, *keys):
        with self._lock:
            return sum(1 for k in keys if k in self._data)

    def delete(self, *keys):
        with self._lock:
            removed = 0
            for k in keys:
                if self._data.pop(k, None) is not None:
                    removed += 1
                self.ttls.pop(k, None)
            return removed

    def keys(self, pattern="*"):
        prefix = pattern.rstrip("*")
        with self._lock:
            return [k for k in self._data if k.startswith(prefix)]

    def register_script(self, script):
        """Only the usage counter's conditional increment is supported."""
        def run(keys=(), args=()):
            key, amount = keys[0], int(args[0])
            with self._lock:
                if key not in self._data:
                    return None
                value = int(self._data[key]) + amount
                self._data[key] = str(value)
                return value
        return run

    def ping(self):
        return True


class FakeObjectStore:
    """
    In-memory bucket implementing the object store adapter surface.

    ``fail_delete`` / ``fail_metadata`` hold keys whose delete or metadata
    rewrite should raise an S3Error.
    """

    def __init__(self):
        self.objects: Dict[str, ObjectInfo] = {}
        self.payloads: Dict[str, bytes] = {}
        self.fail_delete = set()
        self.fail_metadata = set()
        self.copies = 0

    def add(self, key: str, size: int, content_type: str = "text/plain", **metadata) -> ObjectInfo:
        info = ObjectInfo(
            key=key,
            size=size,
            content_type=content_type,
            content_disposition=f'inline; filename="{key.rsplit("/", 1)[-1]}"',
            metadata={k: str(v) for k, v in metadata.items()},
            last_modified=datetime.now(timezone.utc),
        )
        self.objects[key] = info
        self.payloads[key] = b"x" * size
        return info

    def _copy(self, info: ObjectInfo) -> ObjectInfo:
        return ObjectInfo(
            key=info.key,
            size=info.size,
            content_type=info.content_type,
            content_disposition=info.content_disposition,
            metadata=dict(info.metadata),
            last_modified=info.last_modified,
        )

    def head(self, key: str) -> Optional[ObjectInfo]:
        info = self.objects.get(key)
        return self._copy(info) if info else None

    def list_objects(self):
        for info in list(self.objects.values()):
            yield self._copy(info)

    def put(self, key, data, length, content_type, content_disposition, metadata):
        payload = data.read()
        self.payloads[key] = payload
        self.objects[key] = ObjectInfo(
            key=key,
            size=length,
            content_type=content_type,
            content_disposition=content_disposition,
            metadata=dict(metadata),
            last_modified=datetime.now(timezone.utc),
        )

    def replace_metadata(self, info: ObjectInfo, metadata):
        if info.key in self.fail_metadata or info.key not in self.objects:
            raise make_s3_error("InternalError" if info.key in self.fail_metadata else "NoSuchKey", info.key)
        stored = self.objects[info.key]
        stored.metadata = dict(metadata)
        stored.content_type = info.content_type
        stored.content_disposition = info.content_disposition
        self.copies += 1

    def delete(self, key: str):
        if key in self.fail_delete:
            raise make_s3_error("AccessDenied", key)
        self.objects.pop(key, None)
        self.payloads.pop(key, None)

    def ping(self):
        return True

    @property
    def total_bytes(self) -> int:
        return sum(info.size for info in self.objects.values())


@pytest.fixture
def s3_error():
    """Factory for SDK errors."""
    return make_s3_error


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def usage(fake_redis: FakeRedis, object_store: FakeObjectStore) -> UsageCounter:
    return UsageCounter(fake_redis, object_store)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with signing credentials and a small quota."""
    return Settings(
        S3_ENDPOINT="files.example.com",
        S3_SECURE=True,
        S3_REGION="auto",
        S3_BUCKET="files",
        S3_ACCESS_KEY_ID="AKIDEXAMPLE",
        S3_SECRET_ACCESS_KEY="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        STORAGE_LIMIT_BYTES=1000,
        MAX_FILES_PER_BATCH=20,
        RETENTION_DAYS=7,
        UPLOAD_URL_EXPIRY_SECONDS=600,
        CRON_TOKEN="cron",
    )


@pytest.fixture(scope="function")
def client(
    test_settings: Settings,
    fake_redis: FakeRedis,
    object_store: FakeObjectStore,
) -> Generator[TestClient, None, None]:
    """Create a test client with Redis, object store and settings overridden."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_object_store] = lambda: object_store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def unsigned_client(client: TestClient, test_settings: Settings) -> TestClient:
    """Test client whose settings carry no signing credentials."""
    unsigned = test_settings.model_copy(update={
        "S3_ACCESS_KEY_ID": None,
        "S3_SECRET_ACCESS_KEY": None,
    })
    app.dependency_overrides[get_settings] = lambda: unsigned
    return client

