"""Resend email adapter: sends through the Resend HTTP API."""

import requests

from ordering.notification.channel.email_port import EmailPort
from ordering.utils.logging import get_logger

logger = get_logger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class ResendEmailAdapter(EmailPort):
    def __init__(self, api_key: str, default_from: str, timeout: float = 10.0, session=None):
        self.api_key = api_key
        self.default_from = default_from
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
        from_email: str | None = None,
    ) -> dict:
        payload = {
            "from": from_email or self.default_from,
            "to": [to],
            "subject": subject,
            "html": html_body,
        }
        if text_body:
            payload["text"] = text_body

        try:
            response = self.session.post(
                RESEND_API_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Resend request failed", to=to, error=str(exc))
            return {"message_id": None, "status": "failed", "error": str(exc)}

        if not response.ok:
            error = f"Resend API error {response.status_code}: {response.text}"
            logger.warning("Resend rejected email", to=to, status_code=response.status_code)
            return {"message_id": None, "status": "failed", "error": error}

        return {"message_id": response.json().get("id"), "status": "sent"}
