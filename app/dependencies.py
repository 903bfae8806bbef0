import hmac
from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends, Header, Request

from app.config import Settings
from app.exceptions.custom import AuthError
from app.services.checkout_reminders import CheckoutReminderService
from app.services.monitoring import MonitoringService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_checkout_reminder_service(request: Request) -> CheckoutReminderService:
    return request.app.state.checkout_reminder_service


def get_monitoring_service(request: Request) -> MonitoringService:
    return request.app.state.monitoring_service


def get_now() -> datetime:
    return datetime.now(timezone.utc)


SettingsDep = Annotated[Settings, Depends(get_settings)]
CheckoutReminderDep = Annotated[CheckoutReminderService, Depends(get_checkout_reminder_service)]
MonitoringDep = Annotated[MonitoringService, Depends(get_monitoring_service)]
NowDep = Annotated[datetime, Depends(get_now)]


def require_cron_token(
    settings: SettingsDep,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Reject unless the request carries ``Bearer <CRON_SECRET_TOKEN>``.

    An unset token rejects everything.
    """
    expected = settings.cron_secret_token
    if not expected:
        raise AuthError("cron secret token not configured")
    if not authorization or not hmac.compare_digest(
        authorization.encode(), f"Bearer {expected}".encode()
    ):
        raise AuthError("invalid or missing bearer token")
