"""Internal API endpoints - cycle trigger and test alert."""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..schemas.status import AlertTestResponse, ChannelStatus, CycleResponse
from ..services.alerter import AlertEvent, alerter_service
from ..services.orchestrator import check_orchestrator
from ..storage import Storage
from .guards import rate_limit, require_worker_token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/internal",
    tags=["internal"],
    dependencies=[
        Depends(rate_limit("internal", settings.admin_rate_limit_per_min)),
        Depends(require_worker_token),
    ],
)


@router.post("/run-checks", response_model=CycleResponse)
async def run_checks():
    """Run one check cycle. Returns busy=true if a cycle is already running."""
    try:
        summary = await check_orchestrator.run_cycle()
    except SQLAlchemyError:
        logger.exception("Check cycle failed")
        raise HTTPException(status_code=503, detail="Check cycle failed")

    return CycleResponse(
        checked=summary.checked,
        total_enabled=summary.total_enabled,
        busy=summary.busy,
        at=datetime.utcnow(),
    )


@router.post("/test-alert", response_model=AlertTestResponse)
async def test_alert(db: AsyncSession = Depends(get_db)):
    """Send a test event to every configured alert channel."""
    result = await alerter_service.send_alert(
        Storage(db),
        AlertEvent(event="test", summary="This is a test alert from StackWatch"),
    )
    return AlertTestResponse(
        any_sent=result.any_sent,
        **{name: ChannelStatus(**vars(channel)) for name, channel in result.channels.items()},
    )
