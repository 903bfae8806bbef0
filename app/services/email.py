import logging

import httpx

from app.exceptions.custom import EmailError, RateLimitError

logger = logging.getLogger(__name__)

EMAILS_URL = "https://api.resend.com/emails"


class EmailService:
    def __init__(self, client: httpx.AsyncClient, api_key: str, sender: str):
        self._client = client
        self._api_key = api_key
        self._sender = sender
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    async def send_custom_email(
        self, to: str, subject: str, html: str, sender: str | None = None
    ) -> str:
        """Send one HTML email through Resend. Returns the Resend message id."""
        if not self._api_key:
            raise EmailError("Resend API key not configured")

        payload = {
            "from": sender or self._sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        resp = await self._client.post(EMAILS_URL, json=payload, headers=self._headers)

        if resp.status_code == 429:
            raise RateLimitError("Resend")
        if resp.status_code >= 400:
            try:
                detail = resp.json().get("message") or resp.text
            except ValueError:
                detail = resp.text
            raise EmailError(detail, status_code=resp.status_code)

        message_id = resp.json().get("id", "")
        logger.info("Email sent to %s: id=%s", to, message_id)
        return message_id
