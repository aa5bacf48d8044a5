"""
Object Store Adapter

Thin wrapper over the MinIO SDK exposing only what the gateway needs:
metadata lookups, a full paginated listing, writes, metadata rewrites and
deletes. ``NoSuchKey`` style errors become ``None`` so callers can treat
absence as data rather than as an exception.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO, Dict, Iterator, Mapping, Optional
from urllib.parse import quote

from minio import Minio
from minio.commonconfig import CopySource, REPLACE
from minio.error import S3Error

logger = logging.getLogger(__name__)

USER_META_PREFIX = "x-amz-meta-"
NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchObject", "ResourceNotFound"})
# attributes the sweep and confirm rely on
GATEWAY_ATTRIBUTES = frozenset({"pinned", "last_accessed", "confirmed"})


@dataclass
class ObjectInfo:
    """
    Object header as seen by the gateway
    """
    key: str
    size: int
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    last_modified: Optional[datetime] = None

    @property
    def pinned(self) -> bool:
        return self.metadata.get("pinned") == "true"

    @property
    def last_accessed(self) -> Optional[str]:
        return self.metadata.get("last_accessed")

    @property
    def confirmed(self) -> bool:
        return self.metadata.get("confirmed") == "true"


def user_metadata(headers: Optional[Mapping[str, str]], prefixed_only: bool = True) -> Dict[str, str]:
    """
    Extract custom metadata from response headers or listing metadata.

    Keys are lower-cased with the ``x-amz-meta-`` prefix removed. Listings
    from some servers return bare keys, hence ``prefixed_only=False``.
    """
    result: Dict[str, str] = {}
    for key, value in (headers or {}).items():
        lowered = key.lower()
        if lowered.startswith(USER_META_PREFIX):
            result[lowered[len(USER_META_PREFIX):]] = value
        elif not prefixed_only and not lowered.startswith(("content-", "x-amz-")):
            result[lowered] = value
    return result


def content_disposition_for(filename: str) -> str:
    """inline disposition, RFC 5987 encoded when the name is not plain ASCII"""
    try:
        filename.encode("ascii")
    except UnicodeEncodeError:
        return f"inline; filename*=UTF-8''{quote(filename, safe='')}"
    escaped = filename.replace("\\", "\\\\").replace('"', '\\"')
    return f'inline; filename="{escaped}"'


class MinioObjectStore:
    """
    Single-bucket object store backed by the MinIO SDK

    Works against MinIO, Cloudflare R2 and AWS S3.
    """

    def __init__(self, minio_client: Minio, bucket_name: str):
        self.client = minio_client
        self.bucket_name = bucket_name

    def head(self, key: str) -> Optional[ObjectInfo]:
        """
        Metadata-only lookup.

        Returns:
            ObjectInfo, or None if the object does not exist
        """
        try:
            stat = self.client.stat_object(self.bucket_name, key)
        except S3Error as e:
            if e.code in NOT_FOUND_CODES:
                return None
            raise

        headers = stat.metadata or {}
        return ObjectInfo(
            key=key,
            size=int(stat.size or 0),
            content_type=stat.content_type,
            content_disposition=headers.get("Content-Disposition"),
            metadata=user_metadata(headers),
            last_modified=stat.last_modified,
        )

    def list_objects(self) -> Iterator[ObjectInfo]:
        """
        Enumerate the whole bucket.

        The SDK iterator requests page after page, following continuation
        tokens until the listing is no longer truncated. Only MinIO returns
        user metadata inline; AWS S3 and R2 list it as empty, so any object
        listed without the gateway's attributes is stat-ed individually.
        """
        objects = self.client.list_objects(
            self.bucket_name,
            recursive=True,
            include_user_meta=True,
        )

        for obj in objects:
            if obj.is_dir:
                continue

            metadata = user_metadata(obj.metadata, prefixed_only=False)
            if not GATEWAY_ATTRIBUTES.intersection(metadata):
                info = self.head(obj.object_name)
                if info is None:
                    # deleted between listing and stat
                    continue
                yield info
                continue

            yield ObjectInfo(
                key=obj.object_name,
                size=int(obj.size or 0),
                content_type=obj.content_type,
                metadata=metadata,
                last_modified=obj.last_modified,
            )

    def put(
        self,
        key: str,
        data: BinaryIO,
        length: int,
        content_type: Optional[str],
        content_disposition: Optional[str],
        metadata: Dict[str, str],
    ) -> None:
        headers: Dict[str, str] = dict(metadata)
        if content_disposition:
            headers["Content-Disposition"] = content_disposition

        self.client.put_object(
            self.bucket_name,
            key,
            data,
            length=length,
            content_type=content_type or "application/octet-stream",
            metadata=headers,
            part_size=0 if length >= 0 else 10 * 1024 * 1024,
        )

    def replace_metadata(self, info: ObjectInfo, metadata: Dict[str, str]) -> None:
        """
        Rewrite an object's custom metadata.

        Implemented as a server-side copy onto itself with the REPLACE
        directive: the payload never leaves the store and stays byte for
        byte identical, while Content-Type and Content-Disposition are
        carried over from ``info``.
        """
        headers: Dict[str, str] = dict(metadata)
        if info.content_type:
            headers["Content-Type"] = info.content_type
        if info.content_disposition:
            headers["Content-Disposition"] = info.content_disposition

        self.client.copy_object(
            self.bucket_name,
            info.key,
            CopySource(self.bucket_name, info.key),
            metadata=headers,
            metadata_directive=REPLACE,
        )

    def delete(self, key: str) -> None:
        self.client.remove_object(self.bucket_name, key)

    def ping(self) -> bool:
        try:
            return self.client.bucket_exists(self.bucket_name)
        except S3Error as e:
            logger.error(f"Bucket check failed for '{self.bucket_name}': {e}")
            return False
