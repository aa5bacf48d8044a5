"""
Unit tests for presigned URL signing.
Tests RequestSigner from app/storage/signing.py
"""
import pytest
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

from minio import Minio

from app.core.errors import SigningConfigurationError
from app.storage import RequestSigner


ISSUED_AT = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
SECRET = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"


@pytest.fixture
def signer() -> RequestSigner:
    return RequestSigner(
        access_key_id="AKIDEXAMPLE",
        secret_access_key=SECRET,
        endpoint="files.example.com",
        bucket_name="files",
        region="auto",
    )


@pytest.mark.unit
class TestPresign:
    """Test RequestSigner.presign."""

    def test_presign_put_url_shape(self, signer):
        """Test URL points at the object path-style and carries SigV4 params."""
        presigned = signer.presign("abc/report.pdf", now=ISSUED_AT)

        parts = urlsplit(presigned.url)
        query = parse_qs(parts.query)
        assert parts.scheme == "https"
        assert parts.netloc == "files.example.com"
        assert parts.path == "/files/abc/report.pdf"
        assert query["X-Amz-Algorithm"] == ["AWS4-HMAC-SHA256"]
        assert query["X-Amz-Credential"] == ["AKIDEXAMPLE/20250301/auto/s3/aws4_request"]
        assert query["X-Amz-Date"] == ["20250301T120000Z"]
        assert query["X-Amz-Expires"] == ["600"]
        assert query["X-Amz-SignedHeaders"] == ["host"]
        assert len(query["X-Amz-Signature"][0]) == 64

        assert presigned.method == "PUT"
        assert presigned.expires_at == ISSUED_AT + timedelta(seconds=600)

    def test_secret_never_in_url(self, signer):
        """Test the long-term secret does not leak into the URL."""
        presigned = signer.presign("abc/report.pdf", now=ISSUED_AT)

        assert SECRET not in presigned.url
        assert "K7MDENG" not in presigned.url

    def test_non_ascii_key_is_encoded(self, signer):
        """Test keys are URI-encoded and still verify."""
        presigned = signer.presign("abc/résumé final.pdf", now=ISSUED_AT)

        assert "/files/abc/r%C3%A9sum%C3%A9%20final.pdf" in presigned.url
        assert signer.verify(presigned.url, "PUT", now=ISSUED_AT).valid

    def test_presign_without_credentials(self):
        """Test missing credentials raise a configuration error (500)."""
        signer = RequestSigner(None, None, "files.example.com", "files")

        with pytest.raises(SigningConfigurationError) as exc_info:
            signer.presign("abc/report.pdf")

        assert exc_info.value.status_code == 500

    def test_expiry_capped_at_seven_days(self, signer):
        """Test expiry beyond the maximum is capped."""
        presigned = signer.presign("abc/report.pdf", expires_in_seconds=30 * 86400, now=ISSUED_AT)

        assert presigned.expires_in_seconds == 7 * 86400
        assert "X-Amz-Expires=604800" in presigned.url

    def test_non_positive_expiry_rejected(self, signer):
        """Test zero expiry is refused."""
        with pytest.raises(ValueError):
            signer.presign("abc/report.pdf", expires_in_seconds=0)

    def test_is_expired(self, signer):
        """Test PresignedURL.is_expired around the window edge."""
        presigned = signer.presign("abc/report.pdf", now=ISSUED_AT)

        assert not presigned.is_expired(ISSUED_AT + timedelta(seconds=600))
        assert presigned.is_expired(ISSUED_AT + timedelta(seconds=601))


@pytest.mark.unit
class TestVerify:
    """Test RequestSigner.verify."""

    def test_valid_just_before_expiry(self, signer):
        """Test a 600s URL still verifies at issue time + 599s."""
        presigned = signer.presign("abc/report.pdf", expires_in_seconds=600, now=ISSUED_AT)

        check = signer.verify(presigned.url, "PUT", now=ISSUED_AT + timedelta(seconds=599))

        assert check.valid
        assert check.error is None

    def test_expired_just_after_expiry(self, signer):
        """Test a 600s URL fails verification at issue time + 601s."""
        presigned = signer.presign("abc/report.pdf", expires_in_seconds=600, now=ISSUED_AT)

        check = signer.verify(presigned.url, "PUT", now=ISSUED_AT + timedelta(seconds=601))

        assert not check.valid
        assert check.error == "expired"

    def test_other_method_rejected(self, signer):
        """Test a PUT URL does not authorise GET."""
        presigned = signer.presign("abc/report.pdf", now=ISSUED_AT)

        check = signer.verify(presigned.url, "GET", now=ISSUED_AT)

        assert not check.valid
        assert check.error == "signature_mismatch"

    def test_other_key_rejected(self, signer):
        """Test the signature is bound to the object key."""
        presigned = signer.presign("abc/report.pdf", now=ISSUED_AT)
        tampered = presigned.url.replace("/abc/report.pdf", "/abc/other.pdf")

        check = signer.verify(tampered, "PUT", now=ISSUED_AT)

        assert not check.valid
        assert check.error == "signature_mismatch"

    def test_extended_expiry_rejected(self, signer):
        """Test widening X-Amz-Expires invalidates the signature."""
        presigned = signer.presign("abc/report.pdf", now=ISSUED_AT)
        tampered = presigned.url.replace("X-Amz-Expires=600", "X-Amz-Expires=6000")

        check = signer.verify(tampered, "PUT", now=ISSUED_AT + timedelta(seconds=700))

        assert not check.valid
        assert check.error == "signature_mismatch"

    def test_other_secret_rejected(self, signer):
        """Test a URL signed with another secret does not verify."""
        forger = RequestSigner("AKIDEXAMPLE", "not-the-secret", "files.example.com", "files")
        forged = forger.presign("abc/report.pdf", now=ISSUED_AT)

        check = signer.verify(forged.url, "PUT", now=ISSUED_AT)

        assert not check.valid
        assert check.error == "signature_mismatch"

    def test_other_host_rejected(self, signer):
        presigned = signer.presign("abc/report.pdf", now=ISSUED_AT)
        moved = presigned.url.replace("files.example.com", "evil.example.com")

        assert signer.verify(moved, "PUT", now=ISSUED_AT).error == "host_mismatch"

    def test_missing_signature(self, signer):
        presigned = signer.presign("abc/report.pdf", now=ISSUED_AT)
        stripped = presigned.url.split("&X-Amz-Signature=")[0]

        assert signer.verify(stripped, "PUT", now=ISSUED_AT).error == "missing_signature"

    def test_future_issue_time_rejected(self, signer):
        """Test URLs issued well in the future are not yet valid."""
        presigned = signer.presign("abc/report.pdf", now=ISSUED_AT + timedelta(hours=1))

        check = signer.verify(presigned.url, "PUT", now=ISSUED_AT)

        assert check.error == "not_yet_valid"

    def test_other_access_key_rejected(self, signer):
        """Test a URL issued under another access key is refused."""
        other = RequestSigner("AKIDOTHER", SECRET, "files.example.com", "files")
        issued = other.presign("abc/report.pdf", now=ISSUED_AT)

        assert signer.verify(issued.url, "PUT", now=ISSUED_AT).error == "credential_mismatch"

    def test_accepts_url_from_minio_client(self, signer):
        """Test URLs minted by an independently configured MinIO client verify."""
        client = Minio(
            "files.example.com",
            access_key="AKIDEXAMPLE",
            secret_key=SECRET,
            secure=True,
            region="auto",
        )
        url = client.get_presigned_url(
            "PUT",
            "files",
            "abc/Q1 report (final) ü.pdf",
            expires=timedelta(seconds=600),
            request_date=ISSUED_AT,
        )

        assert signer.presign("abc/Q1 report (final) ü.pdf", now=ISSUED_AT).url == url
        assert signer.verify(url, "PUT", now=ISSUED_AT + timedelta(seconds=1)).valid
