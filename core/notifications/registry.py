"""
Channel -> backend -> driver dispatch table.

The backend for each channel is picked from ``settings.NOTIFICATIONS``
(``EMAIL_DRIVER``, ``SMS_DRIVER``, ``PUSH_DRIVER``); an unknown backend
name falls back to ``mock``.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings

from .drivers import (
    DatabaseDriver,
    FirebaseDriver,
    MailgunDriver,
    MockEmailDriver,
    MockPushDriver,
    MockSmsDriver,
    NotificationDriver,
    TwilioDriver,
)

logger = logging.getLogger('core.notifications')

DRIVERS: dict[str, dict[str, type]] = {
    'email': {'mock': MockEmailDriver, 'mailgun': MailgunDriver},
    'sms': {'mock': MockSmsDriver, 'twilio': TwilioDriver},
    'push': {'mock': MockPushDriver, 'firebase': FirebaseDriver},
    'database': {'database': DatabaseDriver},
}

BACKEND_SETTINGS = {
    'email': 'EMAIL_DRIVER',
    'sms': 'SMS_DRIVER',
    'push': 'PUSH_DRIVER',
}

# channel names used by notification events
CHANNEL_ALIASES = {
    'mail': 'email',
}


def resolve_channel(channel: str) -> str:
    return CHANNEL_ALIASES.get(channel, channel)


def backend_for(channel: str) -> str:
    key = BACKEND_SETTINGS.get(channel)
    if key is None:
        return next(iter(DRIVERS[channel]))
    return settings.NOTIFICATIONS.get(key, 'mock')


def get_driver(channel: str) -> Optional[NotificationDriver]:
    """Driver instance for ``channel``, or None when the channel is unknown."""
    channel = resolve_channel(channel)
    backends = DRIVERS.get(channel)
    if backends is None:
        return None
    backend = backend_for(channel)
    driver_cls = backends.get(backend)
    if driver_cls is None:
        logger.warning('unknown %s driver %r, using mock', channel, backend)
        driver_cls = backends['mock']
    return driver_cls()


def available_channels() -> list[str]:
    return list(DRIVERS)
