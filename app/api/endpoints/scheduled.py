"""
Scheduled retention sweep trigger.
Meant to be hit by a cron job; guarded by a shared token.
"""
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_settings, get_sweeper
from app.core.config import Settings
from app.core.errors import SweepForbiddenError
from app.schemas import SweepResponse
from app.storage import RetentionSweeper

router = APIRouter()


@router.get("/__scheduled", response_model=SweepResponse, tags=["scheduled"])
def run_scheduled_sweep(
    token: Optional[str] = Query(default=None),
    settings: Settings = Depends(get_settings),
    sweeper: RetentionSweeper = Depends(get_sweeper),
):
    """
    Run one full retention sweep pass.

    **Returns:** 403 if ``token`` does not match the configured cron token
    """
    if not token or not secrets.compare_digest(token, settings.CRON_TOKEN):
        raise SweepForbiddenError()

    result = sweeper.sweep()
    return SweepResponse(deleted=result.deleted_count, freed_bytes=result.freed_bytes)
