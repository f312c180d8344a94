"""
Mock Invite Mailer

Development stand-in: nothing leaves the process. Each email is logged and
appended to ``outbox`` so tests and local runs can pick up the join link.
"""

import uuid
import logging
from dataclasses import dataclass
from typing import Optional

from letsorder.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    message_id: str
    to: str
    subject: str
    body_text: Optional[str]


class MockNotificationService(BaseNotificationService):

    def __init__(self):
        self.outbox: list[SentEmail] = []

    @property
    def provider_name(self) -> str:
        return "mock"

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        sent = SentEmail(
            message_id=f"mock-{uuid.uuid4().hex[:12]}",
            to=to_email,
            subject=subject,
            body_text=body_text,
        )
        self.outbox.append(sent)
        logger.info(f"[mock mail] to={to_email} subject={subject!r} id={sent.message_id}")
        logger.debug(f"[mock mail] body:\n{body_text}")
        return NotificationResult(success=True, message_id=sent.message_id, provider=self.provider_name)

    def sent_to(self, email: str) -> list[SentEmail]:
        return [m for m in self.outbox if m.to == email]

    async def health_check(self) -> bool:
        return True
