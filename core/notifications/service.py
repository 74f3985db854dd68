"""
Ad-hoc notifications (free-form title/body) outside the event classes.

The in-app record is always written first; the remaining channels are
filtered through the user's ``NotificationPreference`` rows for the
notification type and then sent or queued one by one.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from core.models import Notification, NotificationPreference

from .dispatcher import queueing_enabled
from .drivers import DatabaseDriver, DeliveryResult
from .metrics import DELIVERY_ATTEMPTS, QUEUED_JOBS
from .registry import get_driver, resolve_channel

logger = logging.getLogger('core.notifications')

SEND_MESSAGE_TYPE = 'notification.send'

TYPE_ALIASES = {'emergency': 'alert'}
KNOWN_TYPES = {value for value, _ in Notification.TYPE_CHOICES}


def normalize_type(notification_type: str) -> str:
    notification_type = TYPE_ALIASES.get(notification_type, notification_type)
    return notification_type if notification_type in KNOWN_TYPES else 'system'


def enabled_channels(user, notification_type: str, requested: Iterable[str]) -> list[str]:
    """Requested channels the user has not switched off for this type."""
    requested = [resolve_channel(c) for c in requested]
    prefs = dict(
        NotificationPreference.objects.filter(user=user, notification_type=notification_type)
        .values_list('channel', 'is_enabled')
    )
    if not prefs:
        return requested
    return [c for c in requested if prefs.get(c, False)]


def send_now(user, channel: str, subject: str, message: str, data: dict) -> DeliveryResult:
    driver = get_driver(channel)
    if driver is None:
        return DeliveryResult(False, f'Unknown channel: {channel}', 'none')
    if not driver.is_configured():
        return DeliveryResult(False, 'Driver not configured', driver.get_name())
    result = driver.send(user, subject, message, data)
    DELIVERY_ATTEMPTS.labels(
        channel=channel, driver=result.driver, outcome='success' if result.success else 'failure',
    ).inc()
    return result


def queue_send(user, channel: str, subject: str, message: str, data: dict, queue: str) -> bool:
    layer = get_channel_layer()
    if layer is None:
        return False
    try:
        async_to_sync(layer.send)(queue, {
            'type': SEND_MESSAGE_TYPE,
            'user_id': user.pk,
            'channel': channel,
            'subject': subject,
            'message': message,
            'data': data,
        })
    except Exception:
        logger.warning('could not queue %s notification for user %s', channel, user.pk, exc_info=True)
        return False
    QUEUED_JOBS.labels(queue=queue).inc()
    return True


class NotificationService:
    def __init__(self, queue: Optional[str] = None):
        conf = settings.NOTIFICATIONS
        self.queue = queue or conf['QUEUE_NAME']
        self.high_priority_queue = conf.get('HIGH_PRIORITY_QUEUE') or self.queue

    def send(self, user, notification_type: str, title: str, body: str,
             channels: Iterable[str] = ('database', 'email'), data: Optional[dict] = None,
             priority: str = 'normal', action_url: str = '', **related: Any) -> dict[str, Any]:
        notification_type = normalize_type(notification_type)
        data = dict(data or {})
        record_result = DatabaseDriver().send(user, title, body, {
            'type': notification_type,
            'priority': priority,
            'payload': data,
            'action_url': action_url,
            **related,
        })

        results: dict[str, Any] = {'database': record_result.to_dict()}
        queue = self.high_priority_queue if priority in ('high', 'critical') else self.queue
        for channel in enabled_channels(user, notification_type, channels):
            if channel == 'database':
                continue
            driver = get_driver(channel)
            if driver is None or not driver.is_configured():
                results[channel] = {'success': False, 'message': 'Driver not configured',
                                    'driver': driver.get_name() if driver else 'none', 'metadata': {}}
                continue
            payload = {**data, 'type': notification_type, 'priority': priority}
            if queueing_enabled() and queue_send(user, channel, title, body, payload, queue):
                results[channel] = {'success': True, 'message': 'Queued', 'driver': driver.get_name(),
                                    'metadata': {'queue': queue}}
            else:
                results[channel] = send_now(user, channel, title, body, payload).to_dict()

        return {
            'notification_id': record_result.metadata.get('notification_id'),
            'results': results,
        }

    def send_bulk(self, user_ids: Iterable[int], notification_type: str, title: str, body: str,
                  channels: Iterable[str] = ('database',), data: Optional[dict] = None,
                  priority: str = 'normal') -> dict[str, Any]:
        User = get_user_model()
        user_ids = list(user_ids)
        users = {u.pk: u for u in User.objects.filter(pk__in=user_ids, is_active=True)}
        summary: dict[str, Any] = {'total': len(user_ids), 'sent': 0, 'failed': 0, 'results': {}}
        for user_id in user_ids:
            user = users.get(user_id)
            if user is None:
                summary['failed'] += 1
                summary['results'][user_id] = {'success': False, 'message': 'User not found'}
                continue
            outcome = self.send(user, notification_type, title, body, channels, data, priority)
            summary['sent'] += 1
            summary['results'][user_id] = outcome
        return summary

    @staticmethod
    def mark_as_read(user, notification_id: int) -> bool:
        updated = Notification.objects.filter(pk=notification_id, user=user, read_at__isnull=True) \
            .update(read_at=timezone.now())
        return bool(updated)

    @staticmethod
    def mark_all_as_read(user) -> int:
        return Notification.objects.filter(user=user, read_at__isnull=True).update(read_at=timezone.now())

    @staticmethod
    def unread_count(user) -> int:
        return Notification.objects.filter(user=user, read_at__isnull=True).count()
