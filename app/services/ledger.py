"""Persisted per-day notification ledger.

One row per (booking, type, local day). The unique constraint on the
notifications table turns ``claim`` into an atomic check-and-record, so
overlapping batch runs in different processes cannot both send.
"""

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.exceptions.custom import PersistenceError
from app.mappers.checkout_window import day_bounds, local_day
from app.models import Notification, NotificationChannel, NotificationStatus, NotificationType
from app.schemas.notifications import ChannelResult

logger = logging.getLogger(__name__)

_CHANNEL_NAMES = {
    "email": NotificationChannel.EMAIL,
    "sms": NotificationChannel.SMS,
    "whatsapp": NotificationChannel.WHATSAPP,
    "voice": NotificationChannel.VOICE,
}


def summarize_results(
    results: list[ChannelResult],
) -> tuple[NotificationChannel, NotificationStatus]:
    """Collapse per-channel outcomes into the ledger's channel and status.

    Channels skipped for lack of contact info are not counted as failures.
    """
    attempted = [r for r in results if r.outcome != "unavailable"]
    names = {r.channel for r in attempted}
    if not names:
        channel = NotificationChannel.NONE
    elif names == {"email", "sms"}:
        channel = NotificationChannel.EMAIL_SMS
    elif len(names) == 1:
        channel = _CHANNEL_NAMES.get(next(iter(names)), NotificationChannel.MULTI)
    else:
        channel = NotificationChannel.MULTI

    succeeded = [r for r in attempted if r.success]
    if not succeeded:
        status = NotificationStatus.FAILED
    elif len(succeeded) == len(attempted):
        status = NotificationStatus.SENT
    else:
        status = NotificationStatus.PARTIAL
    return channel, status


class NotificationLedger:
    def __init__(self, session_factory: sessionmaker, tz: ZoneInfo):
        self._session_factory = session_factory
        self._tz = tz

    def has_sent_today(
        self, booking_id: str, notification_type: NotificationType, now: datetime
    ) -> bool:
        start, end = day_bounds(now, self._tz)
        stmt = select(func.count(Notification.id)).where(
            Notification.booking_id == booking_id,
            Notification.type == notification_type,
            Notification.created_at >= start,
            Notification.created_at < end,
        )
        try:
            with self._session_factory() as db:
                return db.execute(stmt).scalar_one() > 0
        except SQLAlchemyError as exc:
            raise PersistenceError(f"ledger lookup failed for booking {booking_id}: {exc}") from exc

    def has_delivered(self, booking_id: str, notification_type: NotificationType) -> bool:
        """True if any earlier day already reached the guest (SENT or PARTIAL)."""
        stmt = select(func.count(Notification.id)).where(
            Notification.booking_id == booking_id,
            Notification.type == notification_type,
            Notification.status.in_((NotificationStatus.SENT, NotificationStatus.PARTIAL)),
        )
        try:
            with self._session_factory() as db:
                return db.execute(stmt).scalar_one() > 0
        except SQLAlchemyError as exc:
            raise PersistenceError(f"ledger lookup failed for booking {booking_id}: {exc}") from exc

    def claim(
        self,
        booking_id: str,
        notification_type: NotificationType,
        user_id: str,
        now: datetime,
        title: str,
        message: str,
    ) -> Notification | None:
        """Insert a PENDING row for today, or return None if one already exists."""
        row = Notification(
            booking_id=booking_id,
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            channel=NotificationChannel.NONE,
            status=NotificationStatus.PENDING,
            sent_on=local_day(now, self._tz),
            created_at=now,
        )
        try:
            with self._session_factory() as db:
                db.add(row)
                db.commit()
        except IntegrityError:
            logger.info(
                "booking=%s type=%s already claimed for %s",
                booking_id, notification_type, row.sent_on,
            )
            return None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"ledger claim failed for booking {booking_id}: {exc}") from exc
        return row

    def record(
        self,
        booking_id: str | None,
        notification_type: NotificationType,
        user_id: str,
        channel: NotificationChannel,
        status: NotificationStatus,
        now: datetime,
        title: str,
        message: str,
    ) -> Notification:
        row = Notification(
            booking_id=booking_id,
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            channel=channel,
            status=status,
            sent_on=local_day(now, self._tz),
            created_at=now,
            sent_at=now if status in (NotificationStatus.SENT, NotificationStatus.PARTIAL) else None,
        )
        try:
            with self._session_factory() as db:
                db.add(row)
                db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"ledger record failed for user {user_id}: {exc}") from exc
        return row

    def finalize(
        self,
        record_id: str,
        channel: NotificationChannel,
        status: NotificationStatus,
        now: datetime,
    ) -> None:
        values: dict = {"channel": channel, "status": status}
        if status in (NotificationStatus.SENT, NotificationStatus.PARTIAL):
            values["sent_at"] = now
        stmt = (
            update(Notification)
            .where(Notification.id == record_id, Notification.status == NotificationStatus.PENDING)
            .values(**values)
        )
        try:
            with self._session_factory() as db:
                db.execute(stmt)
                db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"ledger finalize failed for {record_id}: {exc}") from exc

    def release(self, record_id: str) -> None:
        """Delete a claim that is still PENDING so a later run may retry."""
        stmt = delete(Notification).where(
            Notification.id == record_id, Notification.status == NotificationStatus.PENDING
        )
        try:
            with self._session_factory() as db:
                db.execute(stmt)
                db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"ledger release failed for {record_id}: {exc}") from exc
