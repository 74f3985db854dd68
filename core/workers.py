"""
Background delivery of queued notifications.

Run with::

    python manage.py runworker notifications high-priority

Each message on those channels is one delivery attempt on one channel.
Failures are logged and counted by the dispatcher; nothing is re-queued.
"""
import logging

from channels.consumer import SyncConsumer
from django.contrib.auth import get_user_model

from core.notifications.dispatcher import deliver_job
from core.notifications.service import send_now

logger = logging.getLogger('core.notifications')


class NotificationWorker(SyncConsumer):
    def notification_deliver(self, message):
        result = deliver_job(message)
        if result is not None and not result.success:
            logger.warning('queued %s delivery failed: %s', message.get('channel'), result.message)

    def notification_send(self, message):
        User = get_user_model()
        user = User.objects.filter(pk=message['user_id']).first()
        if user is None:
            logger.warning('dropping %s notification, user %s is gone', message['channel'], message['user_id'])
            return
        result = send_now(user, message['channel'], message['subject'], message['message'], message.get('data') or {})
        if not result.success:
            logger.warning('queued %s send failed: %s', message['channel'], result.message)
