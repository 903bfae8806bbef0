import logging
import re

import httpx

from app.exceptions.custom import MNotifyError, RateLimitError
from app.schemas.mnotify import MNotifyBalance, MNotifyResponse

logger = logging.getLogger(__name__)

SMS_URL = "https://api.mnotify.com/api/sms/quick"
WHATSAPP_URL = "https://api.mnotify.com/api/whatsapp/send"
VOICE_URL = "https://api.mnotify.com/api/voice/quick"
BALANCE_URL = "https://api.mnotify.net/api/balance/sms"

_PHONE_NOISE = re.compile(r"[\s\-()]")


def clean_phone(phone: str) -> str:
    """Strip spaces, dashes and parentheses: '+233 (24) 123-4567' → '+233241234567'."""
    return _PHONE_NOISE.sub("", phone)


class MNotifyService:
    def __init__(self, client: httpx.AsyncClient, api_key: str, sender_id: str):
        self._client = client
        self._api_key = api_key
        self._sender_id = sender_id
        self._headers = {"Accept": "application/json"}
        if not api_key:
            logger.warning("MNotify API key not configured, SMS/WhatsApp/voice disabled")

    def _require_key(self) -> None:
        if not self._api_key:
            raise MNotifyError("MNotify API key not configured")

    async def _post(self, url: str, payload: dict, params: dict | None = None) -> MNotifyResponse:
        resp = await self._client.post(
            url, json=payload, params=params, headers=self._headers
        )
        if resp.status_code == 429:
            raise RateLimitError("MNotify")
        if resp.status_code >= 400:
            raise MNotifyError(resp.text, status_code=resp.status_code)
        return MNotifyResponse(**resp.json())

    async def send_sms(
        self, recipient: str, message: str, sender_id: str | None = None
    ) -> MNotifyResponse:
        self._require_key()
        payload = {
            "recipient": [clean_phone(recipient)],
            "message": message,
            "sender": sender_id or self._sender_id,
        }
        result = await self._post(SMS_URL, payload, params={"key": self._api_key})
        logger.info("SMS to %s: status=%s code=%s", recipient, result.status, result.code)
        return result

    async def send_whatsapp(
        self,
        recipient: str,
        message: str,
        media_url: str | None = None,
        media_type: str | None = None,
    ) -> MNotifyResponse:
        self._require_key()
        payload: dict = {
            "key": self._api_key,
            "to": clean_phone(recipient),
            "msg": message,
        }
        if media_url and media_type:
            payload["media_url"] = media_url
            payload["media_type"] = media_type
        result = await self._post(WHATSAPP_URL, payload)
        logger.info("WhatsApp to %s: status=%s code=%s", recipient, result.status, result.code)
        return result

    async def send_voice_call(
        self,
        recipient: str,
        message: str,
        voice: str = "female",
        language: str = "en",
    ) -> MNotifyResponse:
        self._require_key()
        payload = {
            "key": self._api_key,
            "to": clean_phone(recipient),
            "msg": message,
            "voice": voice,
            "lang": language,
        }
        result = await self._post(VOICE_URL, payload)
        logger.info("Voice call to %s: status=%s code=%s", recipient, result.status, result.code)
        return result

    async def check_balance(self) -> MNotifyBalance:
        self._require_key()
        resp = await self._client.post(
            BALANCE_URL, json={"key": self._api_key}, headers=self._headers
        )
        if resp.status_code >= 400:
            raise MNotifyError(resp.text, status_code=resp.status_code)
        data = resp.json()
        return MNotifyBalance(
            balance=float(data.get("balance") or 0),
            currency=data.get("currency") or "GHS",
        )
