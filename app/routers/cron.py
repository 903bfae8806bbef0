import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import CheckoutReminderDep, NowDep, SettingsDep, require_cron_token
from app.schemas.notifications import CronRunResponse

logger = logging.getLogger(__name__)

router = APIRouter()

NOTIFICATIONS_PATH = "/api/cron/notifications"


def _server_error(details: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.post(
    NOTIFICATIONS_PATH,
    response_model=CronRunResponse,
    dependencies=[Depends(require_cron_token)],
)
async def run_notifications(
    service: CheckoutReminderDep,
    settings: SettingsDep,
    now: NowDep,
) -> CronRunResponse:
    try:
        report = await asyncio.wait_for(
            service.run_once(now), timeout=settings.batch_timeout_seconds
        )
    except TimeoutError:
        logger.error("Notification run timed out after %ss", settings.batch_timeout_seconds)
        return _server_error(
            f"Batch run timed out after {settings.batch_timeout_seconds:g}s"
        )
    except Exception as exc:
        logger.exception("Cron job error")
        return _server_error(str(exc) or type(exc).__name__)

    return CronRunResponse(success=True, timestamp=now, results=report)


@router.api_route(
    NOTIFICATIONS_PATH,
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def notifications_method_not_allowed() -> JSONResponse:
    return JSONResponse(
        status_code=405,
        content={"error": "Method not allowed"},
        headers={"Allow": "POST"},
    )
