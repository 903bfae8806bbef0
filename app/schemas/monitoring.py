from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class UrgencyTier(StrEnum):
    critical = "critical"
    high = "high"
    medium = "medium"
    low = "low"


TIER_RANK = {
    UrgencyTier.low: 0,
    UrgencyTier.medium: 1,
    UrgencyTier.high: 2,
    UrgencyTier.critical: 3,
}


class CheckoutWindow(BaseModel):
    tier: UrgencyTier
    overdue: bool
    hours_until: int  # truncated toward zero, negative when overdue
    minutes_until: int
    display: str  # "45 minutes", "3h 20m", "2d 4h" or "2h 5m overdue"


class MonitoredBooking(BaseModel):
    booking_id: str
    guest_name: str
    email: str | None = None
    phone: str | None = None
    room: str
    check_in: datetime
    check_out: datetime
    status: str
    window: CheckoutWindow


class CheckInEntry(BaseModel):
    booking_id: str
    guest_name: str
    phone: str | None = None
    room: str
    check_in: datetime
    status: str
    display: str  # "in 2h 10m", "arrived 45m ago"


class MonitoringSnapshot(BaseModel):
    current_time: datetime
    upcoming_checkouts: list[MonitoredBooking]
    overdue_checkouts: list[MonitoredBooking]
    todays_check_ins: list[CheckInEntry]
    critical_count: int


class CheckoutStatus(BaseModel):
    overdue_count: int
    upcoming_count: int
    today_check_outs: int
    total_critical: int
