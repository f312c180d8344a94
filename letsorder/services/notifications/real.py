"""
SendGrid Invite Mailer

Delivers invite emails through SendGrid. Click tracking is switched off so
the single-use join link reaches the recipient unwrapped; a tracking
redirect would put the invite token in SendGrid's logs.
"""

import asyncio
import logging
from typing import Optional

from python_http_client.exceptions import HTTPError as SendGridHTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Category, ClickTracking, Mail, TrackingSettings

from letsorder.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from letsorder.core.config import get_settings

logger = logging.getLogger(__name__)

ACCEPTED_STATUS_CODES = (200, 201, 202)


class RealNotificationService(BaseNotificationService):
    """Staging/production mailer backed by SendGrid."""

    def __init__(self, api_key: Optional[str] = None, from_email: Optional[str] = None):
        settings = get_settings()
        api_key = api_key or settings.sendgrid_api_key
        self.from_email = from_email or settings.sendgrid_from_email
        self.client = SendGridAPIClient(api_key) if api_key else None

        if self.client is None:
            logger.warning("SENDGRID_API_KEY not set; invite emails will not be delivered")
        else:
            logger.info(f"SendGrid mailer ready (from {self.from_email})")

    @property
    def provider_name(self) -> str:
        return "sendgrid"

    def _build_message(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str],
    ) -> Mail:
        message = Mail(
            from_email=self.from_email,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text,
        )
        message.tracking_settings = TrackingSettings(
            click_tracking=ClickTracking(enable=False, enable_text=False)
        )
        message.category = Category("manager-invite")
        return message

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        if self.client is None:
            return NotificationResult(
                success=False,
                error_message="SendGrid not configured",
                provider=self.provider_name,
            )

        message = self._build_message(to_email, subject, body_html, body_text)
        try:
            # SendGridAPIClient.send blocks on HTTP; keep it off the event loop
            response = await asyncio.to_thread(self.client.send, message)
        except SendGridHTTPError as e:
            logger.error(f"SendGrid rejected email to {to_email}: {e.status_code}")
            return NotificationResult(
                success=False,
                error_message=f"SendGrid HTTP {e.status_code}",
                provider=self.provider_name,
            )
        except OSError as e:
            logger.error(f"SendGrid unreachable: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider=self.provider_name,
            )

        accepted = response.status_code in ACCEPTED_STATUS_CODES
        logger.info(f"SendGrid answered {response.status_code} for email to {to_email}")
        return NotificationResult(
            success=accepted,
            message_id=response.headers.get("X-Message-Id"),
            error_message=None if accepted else f"SendGrid HTTP {response.status_code}",
            provider=self.provider_name,
        )

    async def health_check(self) -> bool:
        return self.client is not None
