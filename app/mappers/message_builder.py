"""Pure builders for guest and staff notification texts."""

from dataclasses import dataclass
from datetime import datetime
from html import escape
from zoneinfo import ZoneInfo

CHECKOUT_TIME_TEXT = "11:00 AM"


@dataclass(frozen=True)
class RenderedMessage:
    """One notification rendered for every channel it may go out on."""

    email_subject: str
    email_html: str
    sms: str
    whatsapp: str
    voice: str

    @classmethod
    def plain(cls, text: str, subject: str = "") -> "RenderedMessage":
        html = "<p>" + escape(text).replace("\n", "<br>") + "</p>"
        return cls(email_subject=subject, email_html=html, sms=text, whatsapp=text, voice=text)

    def text_for(self, channel: str) -> str:
        if channel == "email":
            return self.email_html
        if channel == "whatsapp":
            return self.whatsapp
        if channel == "voice":
            return self.voice
        return self.sms


@dataclass(frozen=True)
class DigestEntry:
    guest: str
    room: str
    days_remaining: int
    check_out: str = ""
    completion_percentage: int = 0
    sms_status: str = ""


def _plural_days(n: int) -> str:
    return f"{n} day" if n == 1 else f"{n} days"


def format_checkout(check_out: datetime, tz: ZoneInfo) -> str:
    """'March 05, 2026 at 11:00 AM' in the property's local time."""
    return check_out.astimezone(tz).strftime("%B %d, %Y at %I:%M %p")


def build_stay_progress_message(
    first_name: str,
    full_name: str,
    room: str,
    check_out: datetime,
    days_left: int,
    tz: ZoneInfo,
    property_name: str,
) -> RenderedMessage:
    checkout_text = format_checkout(check_out, tz)
    subject = f"Your Stay is Almost Complete - {property_name}"
    prop = escape(property_name)
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #2563eb;">Your Stay Progress</h2>'
        f"<p>Dear {escape(full_name)},</p>"
        f"<p>We hope you're enjoying your stay at {prop}! We wanted to remind you "
        "that you've completed 75% of your reservation.</p>"
        '<div style="background-color: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        '<h3 style="margin-top: 0;">Booking Details:</h3>'
        f"<p><strong>Room:</strong> {escape(room)}</p>"
        f"<p><strong>Check-out Date:</strong> {escape(checkout_text)}</p>"
        f"<p><strong>Remaining Days:</strong> {_plural_days(days_left)}</p>"
        "</div>"
        "<p>Here are a few reminders for your departure:</p>"
        "<ul>"
        f"<li>Check-out time is {CHECKOUT_TIME_TEXT}</li>"
        "<li>Please ensure all personal belongings are packed</li>"
        "<li>Room key should be returned at the front desk</li>"
        "<li>Any outstanding charges will be processed automatically</li>"
        "</ul>"
        "<p>If you need to extend your stay or have any questions, please contact "
        "our front desk at any time.</p>"
        f"<p>Thank you for choosing {prop}!</p>"
        '<p style="color: #6b7280; font-size: 14px;">'
        f"Best regards,<br>The {prop} Team</p>"
        "</div>"
    )
    sms = (
        f"Hi {first_name}! You've completed 75% of your stay at {property_name} "
        f"(Room {room}). Check-out is on {checkout_text}. "
        f"Thank you for staying with us! - {property_name}"
    )
    whatsapp = (
        f"Hello {first_name}, you've completed 75% of your stay in Room {room}. "
        f"Check-out: {checkout_text} ({_plural_days(days_left)} left). "
        f"Reply here if you'd like to extend. - {property_name}"
    )
    voice = (
        f"Hello {first_name}. This is {property_name}. "
        f"This is a reminder that your check-out from room {room} "
        f"is on {checkout_text}. Thank you for staying with us."
    )
    return RenderedMessage(
        email_subject=subject,
        email_html=html,
        sms=sms,
        whatsapp=whatsapp,
        voice=voice,
    )


def build_overdue_alert(
    guest_name: str, room: str, overdue_text: str, property_name: str
) -> str:
    return (
        f"URGENT: {guest_name} in Room {room} is {overdue_text} for checkout. "
        f"Please contact immediately. - {property_name}"
    )


def build_staff_digest(entries: list[DigestEntry], property_name: str) -> str:
    """SMS body for the per-run staff digest, sent even when nobody was notified."""
    if not entries:
        return (
            f"Checkout reminder run complete: no guests required notification. "
            f"- {property_name}"
        )
    count = len(entries)
    noun = "guest" if count == 1 else "guests"
    lines = [f"{count} {noun} notified:"]
    for entry in entries:
        lines.append(
            f"- {entry.guest}, Room {entry.room} ({_plural_days(entry.days_remaining)} remaining)"
        )
    lines.append(f"- {property_name}")
    return "\n".join(lines)


def build_staff_summary_email(
    entries: list[DigestEntry], date_text: str
) -> tuple[str, str]:
    """Return (subject, html) for the staff summary email."""
    subject = f"Daily Checkout Reminders - {date_text}"
    rows = "".join(
        "<tr>"
        f"<td>{escape(e.guest)}</td>"
        f"<td>{escape(e.room)}</td>"
        f"<td>{escape(e.check_out)}</td>"
        f"<td>{e.days_remaining}</td>"
        f"<td>{e.completion_percentage}%</td>"
        f"<td>{escape(e.sms_status)}</td>"
        "</tr>"
        for e in entries
    )
    sent = sum(1 for e in entries if e.sms_status == "Sent")
    failed = sum(1 for e in entries if e.sms_status == "Failed")
    no_phone = sum(1 for e in entries if e.sms_status == "No phone")
    html = (
        "<h2>Daily Checkout Reminder Summary</h2>"
        "<p>The following guests have been notified about their upcoming checkout "
        "(75% of stay completed):</p>"
        '<table border="1" cellpadding="10" cellspacing="0" '
        'style="border-collapse: collapse; width: 100%;">'
        '<thead><tr style="background-color: #f5f5f5;">'
        "<th>Guest Name</th><th>Room</th><th>Checkout Date</th>"
        "<th>Days Remaining</th><th>Stay Completion</th><th>SMS Status</th>"
        "</tr></thead>"
        f"<tbody>{rows}</tbody></table>"
        "<p><strong>SMS Summary:</strong></p>"
        "<ul>"
        f"<li>Successful SMS: {sent}</li>"
        f"<li>Failed SMS: {failed}</li>"
        f"<li>No phone number: {no_phone}</li>"
        "</ul>"
    )
    return subject, html
