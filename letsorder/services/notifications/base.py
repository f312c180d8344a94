"""
Notification Service Abstract Base Class

Defines the interface for delivering manager invite emails.
Supports both Mock (development) and SendGrid (staging/production)
implementations.
"""

import html
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    async def send_manager_invite(
        self,
        to_email: str,
        restaurant_name: str,
        invite_url: str,
        can_manage_menu: bool,
        expires_at_text: str,
    ) -> NotificationResult:
        """Email an invite link to a prospective manager."""
        scope = "including the menu and tables" if can_manage_menu else "and its orders"
        subject = f"You're invited to manage {restaurant_name}"
        body_text = (
            f"You have been invited to help manage {restaurant_name} {scope}.\n\n"
            f"Accept the invitation here: {invite_url}\n\n"
            f"This link expires on {expires_at_text}."
        )
        body_html = (
            f"<p>You have been invited to help manage <strong>{html.escape(restaurant_name)}</strong> {scope}.</p>"
            f"<p><a href=\"{html.escape(invite_url)}\">Accept the invitation</a></p>"
            f"<p>This link expires on {expires_at_text}.</p>"
        )
        return await self.send_email(to_email, subject, body_html, body_text)

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
