"""
Quota endpoint.
Reports current usage against the storage ceiling.
"""
from fastapi import APIRouter, Depends

from app.api.deps import get_quota_gate
from app.schemas import QuotaResponse
from app.storage import QuotaGate

router = APIRouter()


@router.get("/quota", response_model=QuotaResponse)
def get_quota(quota: QuotaGate = Depends(get_quota_gate)):
    """
    Current usage, the ceiling, and whether an upload could start at all.
    """
    admission = quota.admit(0)

    return QuotaResponse(
        used_bytes=admission.used_bytes,
        limit_bytes=admission.limit_bytes,
        ok_to_upload=admission.allowed,
    )
