"""
Event dispatch.

``notify`` makes one independent delivery attempt per channel the event
declares.  With queueing enabled every attempt becomes a job on the
event's queue (see ``core.workers``); otherwise, or when the job cannot
be enqueued, the attempt is delivered inline.  Attempts do not share
state: a failing channel never blocks or rolls back another one, and
nothing is retried here.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ImproperlyConfigured, ObjectDoesNotExist

from .drivers import DeliveryResult
from .events import NotificationEvent
from .metrics import DELIVERY_ATTEMPTS, QUEUED_JOBS
from .registry import get_driver, resolve_channel

logger = logging.getLogger('core.notifications')

JOB_MESSAGE_TYPE = 'notification.deliver'


def queueing_enabled() -> bool:
    conf = settings.NOTIFICATIONS
    return bool(conf.get('QUEUE_ENABLED')) and conf.get('QUEUE_CONNECTION', 'sync') != 'sync'


def deliver(user, event: NotificationEvent, channel: str) -> DeliveryResult:
    """Render ``event`` for ``channel`` and hand it to the configured driver."""
    driver = get_driver(channel)
    if driver is None:
        result = DeliveryResult(False, f'Unknown channel: {channel}', 'none')
    elif not driver.is_configured():
        result = DeliveryResult(False, 'Driver not configured', driver.get_name())
    else:
        try:
            subject, message, data = event.render(channel, user)
            result = driver.send(user, subject, message, data)
        except ImproperlyConfigured:
            raise
        except Exception as exc:
            logger.exception('%s delivery of %s to user %s raised', channel, type(event).__name__, user.pk)
            result = DeliveryResult(False, f'Delivery failed: {exc}', driver.get_name())

    DELIVERY_ATTEMPTS.labels(
        channel=resolve_channel(channel), driver=result.driver,
        outcome='success' if result.success else 'failure',
    ).inc()
    return result


def enqueue(user, event: NotificationEvent, channel: str) -> bool:
    layer = get_channel_layer()
    if layer is None:
        return False
    queue = event.queue()
    message = {
        'type': JOB_MESSAGE_TYPE,
        'user_id': user.pk,
        'channel': channel,
        'job': event.to_job(),
    }
    try:
        async_to_sync(layer.send)(queue, message)
    except Exception:
        logger.warning('could not enqueue %s on %s, delivering inline', type(event).__name__, queue, exc_info=True)
        return False
    QUEUED_JOBS.labels(queue=queue).inc()
    return True


def notify(user, event: NotificationEvent) -> dict[str, Optional[DeliveryResult]]:
    """Dispatch ``event`` to ``user`` on every channel it declares.

    Returns channel -> result for attempts delivered inline and
    channel -> None for attempts handed to the queue.
    """
    outcomes: dict[str, Optional[DeliveryResult]] = {}
    use_queue = queueing_enabled()
    for channel in event.via(user):
        if use_queue and enqueue(user, event, channel):
            outcomes[channel] = None
        else:
            outcomes[channel] = deliver(user, event, channel)
    return outcomes


def notify_many(users: Iterable, event: NotificationEvent) -> int:
    count = 0
    for user in users:
        notify(user, event)
        count += 1
    return count


def deliver_job(message: dict) -> Optional[DeliveryResult]:
    """Run one queued attempt; used by the worker."""
    User = get_user_model()
    try:
        user = User.objects.get(pk=message['user_id'])
        event = NotificationEvent.from_job(message['job'])
    except ObjectDoesNotExist:
        logger.warning('dropping notification job, recipient or entity is gone', extra={'job': message.get('job')})
        return None
    return deliver(user, event, message['channel'])
