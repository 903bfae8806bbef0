from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ChannelResult(BaseModel):
    channel: str  # "email" | "sms" | "whatsapp" | "voice"
    success: bool
    outcome: str  # "sent" | "unavailable" | "delivery_failed" | "provider_error"
    message: str | None = None
    recipient: str | None = None


class NotifiedGuest(BaseModel):
    booking_id: str
    guest: str
    room: str
    check_out: datetime
    days_remaining: int
    completion_percentage: int
    channels: list[ChannelResult] = []


class RunReport(BaseModel):
    processed: int = 0
    emails_sent: int = 0
    sms_sent: int = 0
    whatsapp_sent: int = 0
    voice_calls_sent: int = 0
    staff_notified: int = 0
    overdue_alerts_sent: int = 0
    skipped_duplicates: int = 0
    notified: list[NotifiedGuest] = []
    channel_failures: list[ChannelResult] = []
    errors: list[str] = []


class CronRunResponse(BaseModel):
    success: bool
    timestamp: datetime
    results: RunReport
