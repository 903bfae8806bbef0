from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker

from app.exceptions.custom import PersistenceError
from app.mappers.checkout_window import day_bounds
from app.models import STAFF_ROLES, Booking, BookingStatus, Room, User

ACTIVE_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)


def _with_guest_and_room(stmt):
    return stmt.options(
        selectinload(Booking.user),
        selectinload(Booking.room).selectinload(Room.block),
    )


class BookingRepository:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _all(self, stmt, what: str) -> list:
        try:
            with self._session_factory() as db:
                return list(db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to load {what}: {exc}") from exc

    def _count(self, stmt, what: str) -> int:
        try:
            with self._session_factory() as db:
                return db.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to count {what}: {exc}") from exc

    def active_stays(self, now: datetime) -> list[Booking]:
        """Checked-in bookings whose stay spans *now*."""
        stmt = _with_guest_and_room(
            select(Booking)
            .where(
                Booking.status == BookingStatus.CHECKED_IN,
                Booking.check_in <= now,
                Booking.check_out >= now,
            )
            .order_by(Booking.check_out)
        )
        return self._all(stmt, "active stays")

    def upcoming_checkouts(
        self,
        now: datetime,
        hours: int = 48,
        statuses: tuple[BookingStatus, ...] = (BookingStatus.CHECKED_IN,),
    ) -> list[Booking]:
        stmt = _with_guest_and_room(
            select(Booking)
            .where(
                Booking.status.in_(statuses),
                Booking.check_out >= now,
                Booking.check_out <= now + timedelta(hours=hours),
            )
            .order_by(Booking.check_out)
        )
        return self._all(stmt, "upcoming checkouts")

    def overdue_checkouts(
        self,
        now: datetime,
        statuses: tuple[BookingStatus, ...] = (BookingStatus.CHECKED_IN,),
    ) -> list[Booking]:
        stmt = _with_guest_and_room(
            select(Booking)
            .where(Booking.status.in_(statuses), Booking.check_out < now)
            .order_by(Booking.check_out)
        )
        return self._all(stmt, "overdue checkouts")

    def todays_check_ins(self, now: datetime, tz: ZoneInfo) -> list[Booking]:
        start, end = day_bounds(now, tz)
        stmt = _with_guest_and_room(
            select(Booking)
            .where(
                Booking.status.in_(ACTIVE_STATUSES),
                Booking.check_in >= start,
                Booking.check_in < end,
            )
            .order_by(Booking.check_in)
        )
        return self._all(stmt, "today's check-ins")

    def staff_users(self) -> list[User]:
        stmt = select(User).where(User.role.in_(STAFF_ROLES)).order_by(User.first_name)
        return self._all(stmt, "staff users")

    def checkout_counts(self, now: datetime, tz: ZoneInfo) -> dict[str, int]:
        active = Booking.status.in_(ACTIVE_STATUSES)
        start, end = day_bounds(now, tz)
        base = select(func.count(Booking.id))
        overdue = self._count(base.where(active, Booking.check_out < now), "overdue checkouts")
        upcoming = self._count(
            base.where(
                active,
                Booking.check_out >= now,
                Booking.check_out <= now + timedelta(hours=2),
            ),
            "upcoming checkouts",
        )
        today = self._count(
            base.where(active, Booking.check_out >= start, Booking.check_out < end),
            "today's checkouts",
        )
        return {"overdue": overdue, "upcoming": upcoming, "today": today}
