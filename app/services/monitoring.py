from datetime import datetime
from zoneinfo import ZoneInfo

from app.mappers.checkout_window import (
    CRITICAL_HOURS,
    check_in_display,
    classify,
    effective_check_in,
)
from app.models import Booking
from app.schemas.monitoring import (
    CheckInEntry,
    CheckoutStatus,
    MonitoredBooking,
    MonitoringSnapshot,
)
from app.services.bookings import BookingRepository

UPCOMING_HOURS = 48


def _monitored(booking: Booking, now: datetime) -> MonitoredBooking:
    return MonitoredBooking(
        booking_id=booking.id,
        guest_name=booking.user.full_name,
        email=booking.user.email,
        phone=booking.user.phone,
        room=booking.room.label,
        check_in=booking.check_in,
        check_out=booking.check_out,
        status=booking.status,
        window=classify(now, booking.check_out),
    )


class MonitoringService:
    def __init__(self, bookings: BookingRepository, tz: ZoneInfo):
        self._bookings = bookings
        self._tz = tz

    def snapshot(self, now: datetime) -> MonitoringSnapshot:
        upcoming = [
            _monitored(b, now)
            for b in self._bookings.upcoming_checkouts(now, hours=UPCOMING_HOURS)
        ]
        overdue = [_monitored(b, now) for b in self._bookings.overdue_checkouts(now)]

        check_ins: list[CheckInEntry] = []
        for b in self._bookings.todays_check_ins(now, self._tz):
            arrival = effective_check_in(b.check_in, self._tz)
            check_ins.append(CheckInEntry(
                booking_id=b.id,
                guest_name=b.user.full_name,
                phone=b.user.phone,
                room=b.room.label,
                check_in=arrival,
                status=b.status,
                display=check_in_display(now, arrival),
            ))

        return MonitoringSnapshot(
            current_time=now,
            upcoming_checkouts=upcoming,
            overdue_checkouts=overdue,
            todays_check_ins=check_ins,
            critical_count=sum(
                1 for m in upcoming if m.window.hours_until <= CRITICAL_HOURS
            ),
        )

    def checkout_status(self, now: datetime) -> CheckoutStatus:
        counts = self._bookings.checkout_counts(now, self._tz)
        return CheckoutStatus(
            overdue_count=counts["overdue"],
            upcoming_count=counts["upcoming"],
            today_check_outs=counts["today"],
            total_critical=counts["overdue"] + counts["upcoming"],
        )
