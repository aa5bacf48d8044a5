"""
Presigned URL Signing

Query-string signed URLs (AWS Signature Version 4) for direct-to-store
uploads, produced by the MinIO SDK. A presigned URL authorises exactly one
method on exactly one object key until it expires; the secret key never
appears in the URL, only the derived signature.

Verification re-signs the request described by the URL (method, key,
issue time, expiry) and compares signatures, which is what the store does
when the URL is used.
"""
import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, unquote, urlsplit

from minio import Minio

from app.core.errors import SigningConfigurationError

logger = logging.getLogger(__name__)

ALGORITHM = "AWS4-HMAC-SHA256"
SIGNED_HEADERS = "host"
AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"


@dataclass
class PresignedURL:
    """
    Presigned URL with metadata
    """
    url: str
    object_name: str
    bucket_name: str
    method: str  # PUT, GET
    expires_in_seconds: int
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) > self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'object_name': self.object_name,
            'bucket_name': self.bucket_name,
            'method': self.method,
            'expires_in_seconds': self.expires_in_seconds,
            'created_at': self.created_at.isoformat(),
            'expires_at': self.expires_at.isoformat(),
        }


@dataclass
class SignatureCheck:
    """
    Outcome of verifying a presigned URL
    """
    valid: bool
    error: Optional[str] = None


def _query_value(params: Dict[str, list], name: str) -> Optional[str]:
    values = params.get(name)
    return values[0] if values else None


class RequestSigner:
    """
    Presigner for one bucket

    The signer holds the long-term credentials in its own MinIO client;
    callers only ever receive URLs carrying a derived signature scoped to a
    single key and method. Objects are addressed path-style.
    """

    MAX_EXPIRY = timedelta(days=7)
    # tolerated clock difference for URLs that claim a future issue time
    MAX_CLOCK_SKEW = timedelta(minutes=15)

    def __init__(
        self,
        access_key_id: Optional[str],
        secret_access_key: Optional[str],
        endpoint: str,
        bucket_name: str,
        region: str = "auto",
        secure: bool = True,
    ):
        """
        Initialize request signer

        Args:
            access_key_id: Access key id embedded in the credential scope
            secret_access_key: Secret used only to derive signatures
            endpoint: Store host[:port], also the signed host header
            bucket_name: Target bucket
            region: Signing region ("auto" for R2); set so the SDK never
                    looks the bucket region up over the network
            secure: https when True
        """
        self.access_key_id = access_key_id
        self.bucket_name = bucket_name
        self.host = endpoint
        self.region = region
        self.configured = bool(access_key_id and secret_access_key)

        self.client = Minio(
            endpoint,
            access_key=access_key_id if self.configured else None,
            secret_key=secret_access_key if self.configured else None,
            secure=secure,
            region=region,
        )

    @classmethod
    def from_settings(cls, settings) -> "RequestSigner":
        return cls(
            access_key_id=settings.S3_ACCESS_KEY_ID,
            secret_access_key=settings.S3_SECRET_ACCESS_KEY,
            endpoint=settings.S3_ENDPOINT,
            bucket_name=settings.S3_BUCKET,
            region=settings.S3_REGION,
            secure=settings.S3_SECURE,
        )

    def _require_credentials(self) -> None:
        if not self.configured:
            raise SigningConfigurationError(
                "Upload signing is not configured (missing S3 credentials)"
            )

    def _credential(self, issued_at: datetime) -> str:
        return f"{self.access_key_id}/{issued_at:%Y%m%d}/{self.region}/s3/aws4_request"

    def _sign_url(self, method: str, key: str, expires: timedelta, issued_at: datetime) -> str:
        return self.client.get_presigned_url(
            method,
            self.bucket_name,
            key,
            expires=expires,
            request_date=issued_at,
        )

    def presign(
        self,
        key: str,
        method: str = "PUT",
        expires_in_seconds: int = 600,
        now: Optional[datetime] = None,
    ) -> PresignedURL:
        """
        Generate a presigned URL for one object and one method

        Args:
            key: Object key in bucket
            method: HTTP method the URL authorises
            expires_in_seconds: Validity window, capped at 7 days
            now: Issue time (defaults to the current UTC time)

        Returns:
            PresignedURL

        Raises:
            SigningConfigurationError: If credentials are not configured
        """
        self._require_credentials()

        if expires_in_seconds < 1:
            raise ValueError("expires_in_seconds must be at least 1")

        expires = timedelta(seconds=expires_in_seconds)
        if expires > self.MAX_EXPIRY:
            logger.warning(f"Expiry time {expires} exceeds maximum {self.MAX_EXPIRY}, capping")
            expires = self.MAX_EXPIRY

        created_at = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).replace(microsecond=0)
        method = method.upper()
        url = self._sign_url(method, key, expires, created_at)

        logger.debug(f"Presigned {method} for '{key}' (expires in {expires.total_seconds():.0f}s)")

        return PresignedURL(
            url=url,
            object_name=key,
            bucket_name=self.bucket_name,
            method=method,
            expires_in_seconds=int(expires.total_seconds()),
            created_at=created_at,
            expires_at=created_at + expires,
        )

    def verify(self, url: str, method: str = "PUT", now: Optional[datetime] = None) -> SignatureCheck:
        """
        Verify a presigned URL the way the store would.

        The URL is re-signed from the method, key, issue time and expiry it
        claims, so any change to one of them is a signature mismatch.
        """
        self._require_credentials()
        now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)

        parts = urlsplit(url)
        params = parse_qs(parts.query, keep_blank_values=True)
        signature = _query_value(params, "X-Amz-Signature")

        if not signature or _query_value(params, "X-Amz-Algorithm") != ALGORITHM:
            return SignatureCheck(False, "missing_signature")
        if _query_value(params, "X-Amz-SignedHeaders") != SIGNED_HEADERS:
            return SignatureCheck(False, "unsupported_signed_headers")
        if parts.netloc != self.host:
            return SignatureCheck(False, "host_mismatch")

        bucket_prefix = f"/{self.bucket_name}/"
        if not parts.path.startswith(bucket_prefix):
            return SignatureCheck(False, "signature_mismatch")
        key = unquote(parts.path[len(bucket_prefix):])

        try:
            issued_at = datetime.strptime(
                _query_value(params, "X-Amz-Date") or "", AMZ_DATE_FORMAT
            ).replace(tzinfo=timezone.utc)
            expires = int(_query_value(params, "X-Amz-Expires") or "")
        except ValueError:
            return SignatureCheck(False, "malformed")

        if _query_value(params, "X-Amz-Credential") != self._credential(issued_at):
            return SignatureCheck(False, "credential_mismatch")

        if expires < 1 or expires > int(self.MAX_EXPIRY.total_seconds()):
            return SignatureCheck(False, "invalid_expiry")
        if issued_at - self.MAX_CLOCK_SKEW > now:
            return SignatureCheck(False, "not_yet_valid")
        if now > issued_at + timedelta(seconds=expires):
            return SignatureCheck(False, "expired")

        resigned = self._sign_url(method.upper(), key, timedelta(seconds=expires), issued_at)
        expected = _query_value(parse_qs(urlsplit(resigned).query), "X-Amz-Signature") or ""
        if not hmac.compare_digest(expected, signature):
            return SignatureCheck(False, "signature_mismatch")

        return SignatureCheck(True)
