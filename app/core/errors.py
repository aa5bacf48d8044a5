"""
Gateway error taxonomy.

Every error carries the HTTP status it maps to and an optional machine
readable ``reason``; the exception handler in ``app.main`` renders them as
``{"ok": false, "message": ..., "reason": ...}``.

Counter drift has no error type: it is logged, never raised.
"""
from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    reason: Optional[str] = None

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if reason is not None:
            self.reason = reason

    def extra(self) -> Dict[str, Any]:
        """Additional fields merged into the error body."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"ok": False, "message": self.message}
        if self.reason:
            body["reason"] = self.reason
        body.update(self.extra())
        return body


class BatchValidationError(GatewayError):
    """Empty, malformed or oversized batch (400 / 413)."""

    status_code = 400
    reason = "invalid"


class UnsupportedFileTypeError(GatewayError):
    """A file in the batch failed every type check."""

    status_code = 415
    reason = "type"

    def __init__(self, filename: str, content_type: str):
        super().__init__(
            f"Unsupported type: {content_type or 'unknown'} ({filename})"
        )
        self.filename = filename
        self.content_type = content_type


class QuotaExceededError(GatewayError):
    """Raised when storage quota would be reached or exceeded"""

    status_code = 413
    reason = "quota"

    def __init__(self, used_bytes: int, limit_bytes: int, batch_bytes: int = 0):
        super().__init__(
            f"Storage is full ({used_bytes / (1024 ** 3):.2f}GB of "
            f"{limit_bytes / (1024 ** 3):.2f}GB used). "
            f"Delete some old files before uploading more."
        )
        self.used_bytes = used_bytes
        self.limit_bytes = limit_bytes
        self.batch_bytes = batch_bytes

    def extra(self) -> Dict[str, Any]:
        return {"usedBytes": self.used_bytes, "limitBytes": self.limit_bytes}


class ObjectNotFoundError(GatewayError):
    status_code = 404
    reason = "not_found"

    def __init__(self, key: str):
        super().__init__(f"Not found: {key}")
        self.key = key


class SigningConfigurationError(GatewayError):
    """Signing credentials are missing; a server fault, not a client one."""

    status_code = 500
    reason = "config"


class SweepForbiddenError(GatewayError):
    status_code = 403
    reason = "forbidden"

    def __init__(self):
        super().__init__("forbidden")
