"""
Resend Email Client for Order Service

HTTP client for the Resend transactional email API
"""

import httpx
import logging
from typing import Optional

from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ..protocols import EmailDeliveryError

logger = logging.getLogger(__name__)


class ResendEmailClient:
    """Client for the Resend ``/emails`` endpoint"""

    def __init__(
        self,
        api_key: str,
        mail_from: str,
        base_url: str = "https://api.resend.com",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Resend client

        Args:
            api_key: Resend API key
            mail_from: Sender, e.g. '"SuperMart" <no-reply@SuperMart.com>'
            base_url: Resend API base URL
            timeout: Request timeout in seconds
            http_client: Preconfigured httpx client (tests)
        """
        self.mail_from = mail_from
        self.base_url = base_url.rstrip('/')
        self.client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json"
            },
            timeout=timeout
        )
        logger.info(f"ResendEmailClient initialized with base_url: {self.base_url}")

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, max=4),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def send_email(self, to: str, subject: str, html: str) -> Optional[str]:
        """
        Send one HTML email

        Args:
            to: Recipient address
            subject: Subject line
            html: HTML body

        Returns:
            Provider message id

        Raises:
            EmailDeliveryError: provider answered with a non-2xx status
        """
        email_data = {
            "from": self.mail_from,
            "to": [to],
            "subject": subject,
            "html": html
        }

        response = await self.client.post("/emails", json=email_data)
        if response.status_code >= 300:
            raise EmailDeliveryError(f"Email API error: {response.status_code} - {response.text}")

        message_id = response.json().get("id")
        logger.info(f"Email sent to {to}: {message_id}")
        return message_id
