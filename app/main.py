import logging
import sys
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

import httpx
from fastapi import FastAPI

from app.config import Settings
from app.db import create_db_engine, create_session_factory, run_migrations
from app.exceptions.custom import AuthError, PersistenceError
from app.exceptions.handlers import auth_error_handler, persistence_error_handler
from app.routers.cron import router as cron_router
from app.routers.monitoring import router as monitoring_router
from app.services.bookings import BookingRepository
from app.services.checkout_reminders import CheckoutReminderService
from app.services.dispatcher import NotificationDispatcher
from app.services.email import EmailService
from app.services.ledger import NotificationLedger
from app.services.mnotify import MNotifyService
from app.services.monitoring import MonitoringService


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    engine = create_db_engine(settings.database_url)
    run_migrations(engine)
    session_factory = create_session_factory(engine)
    tz = ZoneInfo(settings.timezone)

    async with httpx.AsyncClient(timeout=30.0) as client:
        mnotify = MNotifyService(client, settings.mnotify_api_key, settings.mnotify_sender_id)
        email = EmailService(client, settings.resend_api_key, settings.email_from)
        dispatcher = NotificationDispatcher(mnotify, email)

        bookings = BookingRepository(session_factory)
        ledger = NotificationLedger(session_factory, tz)

        app.state.settings = settings
        app.state.session_factory = session_factory
        app.state.checkout_reminder_service = CheckoutReminderService(
            bookings,
            ledger,
            dispatcher,
            tz=tz,
            property_name=settings.property_name,
            guest_channels=settings.guest_channel_list,
            retry_failed_same_day=settings.retry_failed_same_day,
            send_delay=settings.send_delay_seconds,
        )
        app.state.monitoring_service = MonitoringService(bookings, tz)

        yield

    engine.dispose()


app = FastAPI(title="Platinum Checkout Notifier", lifespan=lifespan)

app.add_exception_handler(AuthError, auth_error_handler)
app.add_exception_handler(PersistenceError, persistence_error_handler)

app.include_router(cron_router)
app.include_router(monitoring_router)
