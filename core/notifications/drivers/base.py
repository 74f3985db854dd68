"""
Driver contract shared by every notification channel.

A driver delivers one message to one user over one channel.  Ordinary
delivery failures (no phone number, provider timeout, HTTP error) are
reported through the returned :class:`DeliveryResult`; drivers raise
only when they are misconfigured.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Protocol

from django.conf import settings

logger = logging.getLogger('core.notifications')


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message: str
    driver: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class NotificationDriver(Protocol):
    def send(self, user, subject: str, message: str, data: Optional[dict] = None) -> DeliveryResult: ...

    def is_configured(self) -> bool: ...

    def get_name(self) -> str: ...

    def get_channel(self) -> str: ...


class BaseDriver:
    """Result builders and delivery logging for concrete drivers."""

    name = 'base'
    channel = ''

    def get_name(self) -> str:
        return self.name

    def get_channel(self) -> str:
        return self.channel

    def is_configured(self) -> bool:
        return True

    def send(self, user, subject: str, message: str, data: Optional[dict] = None) -> DeliveryResult:
        raise NotImplementedError

    def log_notification(self, user, subject: str, result: DeliveryResult) -> None:
        if not settings.NOTIFICATIONS.get('LOG_ENABLED', True):
            return
        level = logging.INFO if result.success else logging.WARNING
        logger.log(level, 'notification %s via %s: %s', 'sent' if result.success else 'failed',
                   self.get_name(), result.message, extra={
                       'driver': self.get_name(),
                       'channel': self.get_channel(),
                       'user_id': getattr(user, 'pk', None),
                       'user_email': getattr(user, 'email', None),
                       'subject': subject,
                       'success': result.success,
                       'metadata': result.metadata,
                   })

    def success_response(self, metadata: Optional[dict] = None) -> DeliveryResult:
        return DeliveryResult(True, 'Notification sent successfully', self.get_name(), dict(metadata or {}))

    def error_response(self, message: str, metadata: Optional[dict] = None) -> DeliveryResult:
        return DeliveryResult(False, message, self.get_name(), dict(metadata or {}))
