import asyncio
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import MonitoringDep, NowDep, require_cron_token
from app.exceptions.custom import PersistenceError
from app.schemas.monitoring import CheckoutStatus, MonitoringSnapshot

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/checkout-status", response_model=CheckoutStatus)
async def checkout_status(service: MonitoringDep, now: NowDep) -> CheckoutStatus:
    try:
        return await asyncio.to_thread(service.checkout_status, now)
    except PersistenceError:
        logger.exception("Failed to fetch checkout status")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch checkout status"},
        )


@router.get(
    "/api/monitoring",
    response_model=MonitoringSnapshot,
    dependencies=[Depends(require_cron_token)],
)
async def monitoring_snapshot(service: MonitoringDep, now: NowDep) -> MonitoringSnapshot:
    return await asyncio.to_thread(service.snapshot, now)


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}
