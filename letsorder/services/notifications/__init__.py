"""
Invite mailer selection: the mock outbox in development, SendGrid
everywhere else. One instance per process.
"""

import logging
from functools import lru_cache

from letsorder.core.config import get_settings
from letsorder.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from letsorder.services.notifications.mock import MockNotificationService, SentEmail
from letsorder.services.notifications.real import RealNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    settings = get_settings()
    if settings.is_development:
        service: BaseNotificationService = MockNotificationService()
    else:
        service = RealNotificationService()
    logger.info(f"Invite mailer: {service.provider_name} ({settings.env_mode.value} mode)")
    return service


def reset_notification_service() -> None:
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "BaseNotificationService",
    "NotificationResult",
    "MockNotificationService",
    "RealNotificationService",
    "SentEmail",
]
