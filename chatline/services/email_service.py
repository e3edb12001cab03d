"""
Outbound email through the Resend HTTP API.

Sending is best effort: failures are logged and reported as False, never
raised into the request that triggered them.
"""

from datetime import UTC, datetime
from html import escape

import httpx

from ..config.models import EmailConfig
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

WELCOME_SUBJECT = "Welcome to Chatline"


def build_welcome_email(username: str, client_url: str) -> str:
    """HTML body of the welcome email."""
    name = escape(username)
    year = datetime.now(UTC).year
    return f"""
    <div style="font-family: Arial, sans-serif; background-color: #f9fafb; padding: 32px;">
      <div style="max-width: 600px; margin: auto; background: #ffffff; border-radius: 8px; padding: 32px;">
        <h2 style="color: #111827;">Welcome, {name}</h2>
        <p style="color: #374151; font-size: 16px; line-height: 1.5;">
          Your account has been created. You can now start chatting.
        </p>
        <p><a href="{escape(client_url, quote=True)}">Open Chatline</a></p>
        <hr style="margin: 32px 0;" />
        <p style="color: #9ca3af; font-size: 12px;">&copy; {year} Chatline</p>
      </div>
    </div>
    """


class EmailService:
    """Thin client for the Resend send endpoint."""

    def __init__(self, config: EmailConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def send(self, to: str, subject: str, html: str) -> bool:
        """
        Send one email.

        Returns:
            True if the provider accepted the message
        """
        if not self.enabled:
            logger.debug("Email disabled, skipping send", subject=subject)
            return False

        sender = f"{self.config.from_name} <{self.config.from_address}>"
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds, transport=self._transport) as client:
                response = await client.post(
                    self.config.api_url,
                    headers={"Authorization": f"Bearer {self.config.resend_api_key}"},
                    json={"from": sender, "to": [to], "subject": subject, "html": html},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Email provider rejected the request",
                status_code=e.response.status_code,
                subject=subject,
            )
            return False
        except httpx.HTTPError as e:
            logger.warning("Email send failed", error=str(e), error_type=type(e).__name__, subject=subject)
            return False

        logger.info("Email sent", subject=subject, status_code=response.status_code)
        return True

    async def send_welcome(self, to: str, username: str) -> bool:
        return await self.send(to, WELCOME_SUBJECT, build_welcome_email(username, self.config.client_url))
