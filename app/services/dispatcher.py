import logging
from dataclasses import dataclass

import httpx

from app.exceptions.custom import (
    ChannelDeliveryError,
    ChannelUnavailable,
    DeliveryFailed,
    EmailError,
    MNotifyError,
    ProviderError,
    RateLimitError,
)
from app.mappers.message_builder import RenderedMessage
from app.schemas.notifications import ChannelResult
from app.services.email import EmailService
from app.services.mnotify import MNotifyService

logger = logging.getLogger(__name__)

EMAIL = "email"
SMS = "sms"
WHATSAPP = "whatsapp"
VOICE = "voice"

PHONE_CHANNELS = (SMS, WHATSAPP, VOICE)
ALL_CHANNELS = (EMAIL, *PHONE_CHANNELS)


@dataclass(frozen=True)
class ContactInfo:
    name: str
    email: str | None = None
    phone: str | None = None

    @property
    def has_email(self) -> bool:
        return bool(self.email and self.email.strip())

    @property
    def has_phone(self) -> bool:
        return bool(self.phone and self.phone.strip())

    @property
    def capabilities(self) -> frozenset[str]:
        caps: set[str] = set()
        if self.has_email:
            caps.add(EMAIL)
        if self.has_phone:
            caps.update(PHONE_CHANNELS)
        return frozenset(caps)

    def address_for(self, channel: str) -> str | None:
        return self.email if channel == EMAIL else self.phone


def _describe_error(exc: Exception) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return f"Timed out ({type(exc).__name__})"
    if isinstance(exc, httpx.ConnectError):
        return "Connection error"
    text = str(exc).strip()
    return text or type(exc).__name__


class NotificationDispatcher:
    """Sends one rendered message over several channels, one attempt each.

    A failing channel never prevents the others from being tried and
    never raises out of ``send``.
    """

    def __init__(self, mnotify: MNotifyService, email: EmailService):
        self._mnotify = mnotify
        self._email = email

    async def send(
        self,
        contact: ContactInfo,
        channels: list[str] | tuple[str, ...],
        message: RenderedMessage,
    ) -> list[ChannelResult]:
        results: list[ChannelResult] = []
        for channel in channels:
            recipient = contact.address_for(channel)
            try:
                await self._deliver(channel, contact, message)
            except ChannelDeliveryError as exc:
                logger.warning(
                    "%s to %s failed (%s): %s", channel, contact.name, exc.outcome, exc.message
                )
                results.append(ChannelResult(
                    channel=channel,
                    success=False,
                    outcome=exc.outcome,
                    message=exc.message,
                    recipient=recipient,
                ))
                continue
            results.append(ChannelResult(
                channel=channel, success=True, outcome="sent", recipient=recipient,
            ))
        return results

    async def _deliver(
        self, channel: str, contact: ContactInfo, message: RenderedMessage
    ) -> None:
        if channel not in ALL_CHANNELS:
            raise ChannelUnavailable(channel, f"unknown channel {channel!r}")
        if channel not in contact.capabilities:
            missing = "email address" if channel == EMAIL else "phone number"
            raise ChannelUnavailable(channel, f"no {missing}")

        try:
            if channel == EMAIL:
                await self._email.send_custom_email(
                    to=contact.email, subject=message.email_subject, html=message.email_html,
                )
                return
            await self._deliver_phone(channel, contact.phone, message.text_for(channel))
        except ChannelDeliveryError:
            raise
        except (EmailError, MNotifyError) as exc:
            # An HTTP status means the provider answered and refused
            if exc.status_code is not None:
                raise DeliveryFailed(channel, exc.message) from exc
            raise ProviderError(channel, exc.message) from exc
        except (RateLimitError, httpx.HTTPError) as exc:
            raise ProviderError(channel, _describe_error(exc)) from exc
        except Exception as exc:
            logger.exception("Unexpected %s provider failure for %s", channel, contact.name)
            raise ProviderError(channel, _describe_error(exc)) from exc

    async def _deliver_phone(self, channel: str, phone: str, text: str) -> None:
        if channel == SMS:
            result = await self._mnotify.send_sms(phone, text)
        elif channel == WHATSAPP:
            result = await self._mnotify.send_whatsapp(phone, text)
        else:
            result = await self._mnotify.send_voice_call(phone, text)
        if not result.ok:
            raise DeliveryFailed(channel, result.message or f"{channel} sending failed")
