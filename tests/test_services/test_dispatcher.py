import httpx
import pytest
import respx
from httpx import Response

from app.mappers.message_builder import RenderedMessage
from app.services.dispatcher import ContactInfo, NotificationDispatcher
from app.services.email import EMAILS_URL, EmailService
from app.services.mnotify import SMS_URL, VOICE_URL, WHATSAPP_URL, MNotifyService

MESSAGE = RenderedMessage(
    email_subject="Subject",
    email_html="<p>Body</p>",
    sms="sms body",
    whatsapp="whatsapp body",
    voice="voice body",
)
GUEST = ContactInfo(name="Ama Mensah", email="ama@example.com", phone="+233241234567")


def _dispatcher(client, mnotify_key="mn-key", resend_key="re-key"):
    return NotificationDispatcher(
        MNotifyService(client, mnotify_key, "Platinum"),
        EmailService(client, resend_key, "noreply@example.com"),
    )


def test_contact_capabilities():
    assert GUEST.capabilities == {"email", "sms", "whatsapp", "voice"}
    assert ContactInfo(name="x", email="  ").capabilities == frozenset()
    assert ContactInfo(name="x", phone="+233").capabilities == {"sms", "whatsapp", "voice"}


@respx.mock
@pytest.mark.asyncio
async def test_send_all_channels_success():
    respx.post(EMAILS_URL).mock(return_value=Response(200, json={"id": "e1"}))
    sms = respx.post(url__startswith=SMS_URL).mock(
        return_value=Response(200, json={"status": "success"})
    )
    whatsapp = respx.post(WHATSAPP_URL).mock(return_value=Response(200, json={"status": "success"}))
    voice = respx.post(VOICE_URL).mock(return_value=Response(200, json={"code": "2000"}))

    async with httpx.AsyncClient() as client:
        results = await _dispatcher(client).send(
            GUEST, ["email", "sms", "whatsapp", "voice"], MESSAGE
        )

    assert [r.channel for r in results] == ["email", "sms", "whatsapp", "voice"]
    assert all(r.success and r.outcome == "sent" for r in results)
    assert results[0].recipient == "ama@example.com"
    assert results[1].recipient == "+233241234567"
    assert b"sms body" in sms.calls[0].request.content
    assert b"whatsapp body" in whatsapp.calls[0].request.content
    assert b"voice body" in voice.calls[0].request.content


@respx.mock
@pytest.mark.asyncio
async def test_email_failure_does_not_block_sms():
    respx.post(EMAILS_URL).mock(side_effect=httpx.ConnectError("boom"))
    sms = respx.post(url__startswith=SMS_URL).mock(
        return_value=Response(200, json={"status": "success"})
    )

    async with httpx.AsyncClient() as client:
        results = await _dispatcher(client).send(GUEST, ["email", "sms"], MESSAGE)

    assert sms.called
    email_result, sms_result = results
    assert email_result.success is False
    assert email_result.outcome == "provider_error"
    assert email_result.message == "Connection error"
    assert sms_result.success is True


@pytest.mark.asyncio
async def test_missing_contact_is_unavailable():
    async with httpx.AsyncClient() as client:
        results = await _dispatcher(client).send(
            ContactInfo(name="No Phone", email="np@example.com"), ["sms"], MESSAGE
        )

    assert len(results) == 1
    assert results[0].success is False
    assert results[0].outcome == "unavailable"
    assert results[0].message == "no phone number"
    assert results[0].recipient is None


@pytest.mark.asyncio
async def test_unknown_channel_is_unavailable():
    async with httpx.AsyncClient() as client:
        results = await _dispatcher(client).send(GUEST, ["pigeon"], MESSAGE)

    assert results[0].outcome == "unavailable"


@respx.mock
@pytest.mark.asyncio
async def test_provider_rejection_is_delivery_failed():
    respx.post(url__startswith=SMS_URL).mock(
        return_value=Response(200, json={"status": "error", "message": "Insufficient balance"})
    )
    respx.post(EMAILS_URL).mock(return_value=Response(422, json={"message": "Invalid to"}))

    async with httpx.AsyncClient() as client:
        results = await _dispatcher(client).send(GUEST, ["sms", "email"], MESSAGE)

    sms_result, email_result = results
    assert sms_result.outcome == "delivery_failed"
    assert sms_result.message == "Insufficient balance"
    assert email_result.outcome == "delivery_failed"
    assert email_result.message == "Invalid to"


@respx.mock
@pytest.mark.asyncio
async def test_rate_limit_is_provider_error():
    respx.post(url__startswith=SMS_URL).mock(return_value=Response(429, text="slow"))

    async with httpx.AsyncClient() as client:
        results = await _dispatcher(client).send(GUEST, ["sms"], MESSAGE)

    assert results[0].outcome == "provider_error"
    assert "Rate limit" in results[0].message


@pytest.mark.asyncio
async def test_unconfigured_provider_is_provider_error():
    async with httpx.AsyncClient() as client:
        results = await _dispatcher(client, mnotify_key="", resend_key="").send(
            GUEST, ["email", "sms"], MESSAGE
        )

    assert [r.outcome for r in results] == ["provider_error", "provider_error"]
    assert results[0].message == "Resend API key not configured"
    assert results[1].message == "MNotify API key not configured"


@respx.mock
@pytest.mark.asyncio
async def test_timeout_is_provider_error():
    respx.post(url__startswith=SMS_URL).mock(side_effect=httpx.ReadTimeout("slow"))

    async with httpx.AsyncClient() as client:
        results = await _dispatcher(client).send(GUEST, ["sms"], MESSAGE)

    assert results[0].outcome == "provider_error"
    assert results[0].message.startswith("Timed out")
