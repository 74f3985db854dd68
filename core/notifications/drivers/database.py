from __future__ import annotations

import logging
from typing import Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from core.models import Notification

from .base import BaseDriver, DeliveryResult

logger = logging.getLogger('core.notifications')


def user_group(user_id) -> str:
    return f'notifications.user.{user_id}'


class DatabaseDriver(BaseDriver):
    """Persists the in-app notification and pushes it to the user's open sockets.

    ``data`` may carry ``type``, ``priority``, ``action_url``,
    ``payload`` (stored as the record's JSON data) and the ids of the
    related assessment or referral.
    """

    name = 'database'
    channel = 'database'

    def send(self, user, subject: str, message: str, data: Optional[dict] = None) -> DeliveryResult:
        data = data or {}
        record = Notification.objects.create(
            user=user,
            type=data.get('type', 'system'),
            title=subject[:255],
            body=message,
            priority=data.get('priority', 'normal'),
            data=data.get('payload', {}),
            action_url=data.get('action_url') or '',
            related_assessment_id=data.get('related_assessment_id'),
            related_referral_id=data.get('related_referral_id'),
        )
        self.broadcast(record)
        result = self.success_response({'notification_id': record.pk})
        self.log_notification(user, subject, result)
        return result

    def broadcast(self, record: Notification) -> None:
        layer = get_channel_layer()
        if layer is None:
            return
        event = {
            'type': 'notification.created',
            'notification': {
                'id': record.pk,
                'type': record.type,
                'title': record.title,
                'body': record.body,
                'priority': record.priority,
                'data': record.data,
                'action_url': record.action_url,
                'created_at': record.created_at.isoformat(),
            },
        }
        try:
            async_to_sync(layer.group_send)(user_group(record.user_id), event)
        except Exception:
            # record already stored, a failed push does not fail delivery
            logger.warning('websocket push failed for notification %s', record.pk, exc_info=True)
