"""Batch run that sends 75%-of-stay reminders, overdue alerts and the staff digest.

Per booking: eligible → classified → either skipped as a duplicate or
dispatched → recorded in the ledger. Failures are collected into the
run report; only the initial booking query may abort a run.

Database work runs in worker threads so a slow query neither blocks the
event loop nor escapes the endpoint's run timeout.
"""

import asyncio
import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from app.mappers.checkout_window import (
    classify,
    days_remaining,
    is_near_mark,
    seventy_five_percent_mark,
    stay_completion,
)
from app.mappers.message_builder import (
    DigestEntry,
    RenderedMessage,
    build_overdue_alert,
    build_staff_digest,
    build_staff_summary_email,
    build_stay_progress_message,
    format_checkout,
)
from app.models import (
    Booking,
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationType,
    User,
)
from app.schemas.notifications import ChannelResult, NotifiedGuest, RunReport
from app.services.bookings import BookingRepository
from app.services.dispatcher import EMAIL, SMS, ContactInfo, NotificationDispatcher
from app.services.ledger import NotificationLedger, summarize_results

logger = logging.getLogger(__name__)

_SENT_COUNTERS = {
    "email": "emails_sent",
    "sms": "sms_sent",
    "whatsapp": "whatsapp_sent",
    "voice": "voice_calls_sent",
}


def contact_for(user: User) -> ContactInfo:
    return ContactInfo(name=user.full_name, email=user.email, phone=user.phone)


def _sms_status(results: list[ChannelResult]) -> str:
    for r in results:
        if r.channel == SMS:
            if r.outcome == "unavailable":
                return "No phone"
            return "Sent" if r.success else "Failed"
    return "Not sent"


class CheckoutReminderService:
    def __init__(
        self,
        bookings: BookingRepository,
        ledger: NotificationLedger,
        dispatcher: NotificationDispatcher,
        *,
        tz: ZoneInfo,
        property_name: str,
        guest_channels: list[str],
        retry_failed_same_day: bool = False,
        send_delay: float = 0.1,
    ) -> None:
        self._bookings = bookings
        self._ledger = ledger
        self._dispatcher = dispatcher
        self._tz = tz
        self._property_name = property_name
        self._guest_channels = guest_channels
        self._retry_failed_same_day = retry_failed_same_day
        self._send_delay = send_delay

    async def run_once(self, now: datetime) -> RunReport:
        report = RunReport()

        # Not caught: without the booking set there is nothing to report.
        stays = await asyncio.to_thread(self._bookings.active_stays, now)

        digest: list[DigestEntry] = []
        for booking in stays:
            report.processed += 1
            try:
                notified = await self._process_stay(booking, now, report)
            except Exception as exc:
                logger.exception("Error processing booking %s", booking.id)
                report.errors.append(f"Booking {booking.id}: {exc}")
                continue
            if notified is None:
                continue
            report.notified.append(notified)
            digest.append(DigestEntry(
                guest=notified.guest,
                room=notified.room,
                days_remaining=notified.days_remaining,
                check_out=format_checkout(notified.check_out, self._tz),
                completion_percentage=notified.completion_percentage,
                sms_status=_sms_status(notified.channels),
            ))

        try:
            staff = await asyncio.to_thread(self._bookings.staff_users)
        except Exception as exc:
            logger.exception("Failed to load staff users")
            report.errors.append(f"Staff lookup failed: {exc}")
            staff = []

        await self._send_overdue_alerts(now, staff, report)
        await self._notify_staff(now, staff, digest, report)

        logger.info(
            "Checkout reminder run: processed=%d notified=%d emails=%d sms=%d "
            "staff=%d overdue_alerts=%d errors=%d",
            report.processed, len(report.notified), report.emails_sent, report.sms_sent,
            report.staff_notified, report.overdue_alerts_sent, len(report.errors),
        )
        return report

    async def _claim(
        self,
        booking_id: str,
        kind: NotificationType,
        user_id: str,
        now: datetime,
        title: str,
        message: str,
    ) -> Notification | None:
        pending = asyncio.ensure_future(asyncio.to_thread(
            self._ledger.claim, booking_id, kind, user_id, now, title=title, message=message,
        ))
        try:
            return await asyncio.shield(pending)
        except asyncio.CancelledError:
            # The insert may still commit after we stop waiting for it.
            pending.add_done_callback(lambda done: self._abandon_late_claim(done, now))
            raise

    def _abandon_late_claim(self, done: asyncio.Future, now: datetime) -> None:
        if done.cancelled() or done.exception() is not None:
            return
        claim = done.result()
        if claim is not None:
            self._abandon_claim(claim.id, now)

    def _abandon_claim(self, claim_id: str, now: datetime) -> None:
        """Settle a claim whose dispatch never completed, following the retry policy.

        Runs on the loop thread: it must finish even while the task is being
        cancelled.
        """
        try:
            if self._retry_failed_same_day:
                self._ledger.release(claim_id)
            else:
                self._ledger.finalize(
                    claim_id, NotificationChannel.NONE, NotificationStatus.FAILED, now
                )
        except Exception:
            logger.exception("Could not settle abandoned claim %s", claim_id)

    def _settle(
        self,
        claim_id: str,
        channel: NotificationChannel,
        status: NotificationStatus,
        now: datetime,
    ) -> None:
        if status == NotificationStatus.FAILED and self._retry_failed_same_day:
            self._ledger.release(claim_id)
            logger.info("claim %s: all channels failed, released for retry", claim_id)
        else:
            self._ledger.finalize(claim_id, channel, status, now)

    async def _process_stay(
        self, booking: Booking, now: datetime, report: RunReport
    ) -> NotifiedGuest | None:
        mark = seventy_five_percent_mark(booking.check_in, booking.check_out)
        if not is_near_mark(now, mark):
            return None

        kind = NotificationType.SEVENTY_FIVE_PERCENT_STAY
        if await asyncio.to_thread(self._ledger.has_sent_today, booking.id, kind, now):
            logger.info("booking=%s skip: 75%% notice already sent today", booking.id)
            report.skipped_duplicates += 1
            return None
        # The ±2h window can straddle local midnight.
        if await asyncio.to_thread(self._ledger.has_delivered, booking.id, kind):
            logger.info("booking=%s skip: 75%% notice delivered on an earlier day", booking.id)
            report.skipped_duplicates += 1
            return None

        guest = booking.user
        room = booking.room.label
        claim = await self._claim(
            booking.id, kind, guest.id, now,
            title="75% Stay Completion Notice",
            message=f"Stay completion notification for Room {room}",
        )
        if claim is None:
            report.skipped_duplicates += 1
            return None

        left = days_remaining(now, booking.check_out)
        try:
            message = build_stay_progress_message(
                first_name=guest.first_name,
                full_name=guest.full_name,
                room=room,
                check_out=booking.check_out,
                days_left=left,
                tz=self._tz,
                property_name=self._property_name,
            )
            if self._send_delay and report.notified:
                await asyncio.sleep(self._send_delay)
            results = await self._dispatcher.send(
                contact_for(guest), self._guest_channels, message
            )
        except BaseException:
            self._abandon_claim(claim.id, now)
            raise

        self._tally(booking.id, results, report)
        channel, status = summarize_results(results)
        await self._settle_shielded(claim.id, channel, status, now)

        if status == NotificationStatus.FAILED:
            return None
        return NotifiedGuest(
            booking_id=booking.id,
            guest=guest.full_name,
            room=room,
            check_out=booking.check_out,
            days_remaining=left,
            completion_percentage=round(
                stay_completion(now, booking.check_in, booking.check_out)
            ),
            channels=results,
        )

    async def _settle_shielded(
        self,
        claim_id: str,
        channel: NotificationChannel,
        status: NotificationStatus,
        now: datetime,
    ) -> None:
        # Shielded so a cancelled run still records what was delivered.
        try:
            await asyncio.shield(
                asyncio.to_thread(self._settle, claim_id, channel, status, now)
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            self._abandon_claim(claim_id, now)
            raise

    def _tally(self, booking_id: str, results: list[ChannelResult], report: RunReport) -> None:
        for r in results:
            if r.success:
                counter = _SENT_COUNTERS[r.channel]
                setattr(report, counter, getattr(report, counter) + 1)
                continue
            report.channel_failures.append(r)
            if r.outcome != "unavailable":
                report.errors.append(
                    f"{r.channel.upper()} failed for booking {booking_id}: {r.message}"
                )

    async def _send_overdue_alerts(
        self, now: datetime, staff: list[User], report: RunReport
    ) -> None:
        recipients = [contact_for(s) for s in staff if s.phone]
        if not recipients:
            return

        try:
            overdue = await asyncio.to_thread(self._bookings.overdue_checkouts, now)
        except Exception as exc:
            logger.exception("Failed to load overdue checkouts")
            report.errors.append(f"Overdue lookup failed: {exc}")
            return

        kind = NotificationType.OVERDUE_ALERT
        for booking in overdue:
            try:
                if await asyncio.to_thread(self._ledger.has_sent_today, booking.id, kind, now):
                    continue
                window = classify(now, booking.check_out)
                room = booking.room.label
                text = build_overdue_alert(
                    booking.user.full_name, room, window.display, self._property_name
                )
                claim = await self._claim(
                    booking.id, kind, booking.user.id, now,
                    title="Overdue Checkout Alert", message=text,
                )
                if claim is None:
                    continue

                results: list[ChannelResult] = []
                try:
                    for contact in recipients:
                        results.extend(await self._dispatcher.send(
                            contact, [SMS], RenderedMessage.plain(text)
                        ))
                except BaseException:
                    self._abandon_claim(claim.id, now)
                    raise

                for r in results:
                    if not r.success:
                        report.errors.append(
                            f"Overdue alert for booking {booking.id} to {r.recipient}: {r.message}"
                        )

                channel, status = summarize_results(results)
                await self._settle_shielded(claim.id, channel, status, now)
                if status != NotificationStatus.FAILED:
                    report.overdue_alerts_sent += 1
            except Exception as exc:
                logger.exception("Error sending overdue alert for booking %s", booking.id)
                report.errors.append(f"Overdue alert for booking {booking.id}: {exc}")

    async def _notify_staff(
        self,
        now: datetime,
        staff: list[User],
        digest: list[DigestEntry],
        report: RunReport,
    ) -> None:
        """Digest goes out every run, including runs that notified nobody."""
        text = build_staff_digest(digest, self._property_name)
        subject = html = ""
        if digest:
            date_text = now.astimezone(self._tz).strftime("%b %d, %Y")
            subject, html = build_staff_summary_email(digest, date_text)
        message = RenderedMessage(
            email_subject=subject, email_html=html, sms=text, whatsapp=text, voice=text,
        )

        for member in staff:
            contact = contact_for(member)
            channels: list[str] = []
            if contact.has_phone:
                channels.append(SMS)
            if digest and contact.has_email:
                channels.append(EMAIL)
            if not channels:
                continue
            try:
                results = await self._dispatcher.send(contact, channels, message)
                for r in results:
                    if not r.success:
                        report.errors.append(
                            f"Staff {r.channel} to {member.full_name} failed: {r.message}"
                        )
                channel, status = summarize_results(results)
                await asyncio.to_thread(
                    self._ledger.record,
                    None,
                    NotificationType.GENERAL_ANNOUNCEMENT,
                    member.id,
                    channel,
                    status,
                    now,
                    title="Daily Checkout Reminders Sent",
                    message=text,
                )
                if status != NotificationStatus.FAILED:
                    report.staff_notified += 1
            except Exception as exc:
                logger.exception("Error notifying staff member %s", member.id)
                report.errors.append(f"Staff {member.full_name}: {exc}")
