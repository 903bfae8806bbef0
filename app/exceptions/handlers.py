import logging
from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import AuthError, PersistenceError

logger = logging.getLogger(__name__)


async def auth_error_handler(_request: Request, exc: AuthError) -> JSONResponse:
    logger.warning("Rejected request: %s", exc.message)
    return JSONResponse(status_code=401, content={"error": "Unauthorized"})


async def persistence_error_handler(_request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("Database error: %s", exc.message)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "details": exc.message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
