from __future__ import annotations

from typing import Optional

import requests
from django.conf import settings

from core.models import PushNotificationLog

from .base import BaseDriver, DeliveryResult

FCM_ENDPOINT = 'https://fcm.googleapis.com/fcm/send'


class MockPushDriver(BaseDriver):
    name = 'mock'
    channel = 'push'

    def send(self, user, subject: str, message: str, data: Optional[dict] = None) -> DeliveryResult:
        data = data or {}
        log = PushNotificationLog.objects.create(
            user=user, title=subject, body=message, data=data, driver=self.name,
            status='sent', platform=data.get('platform', 'web'), device_token=data.get('device_token', ''),
        )
        result = self.success_response({'push_log_id': log.pk})
        self.log_notification(user, subject, result)
        return result


class FirebaseDriver(BaseDriver):
    """Firebase Cloud Messaging over the legacy HTTP endpoint."""

    name = 'firebase'
    channel = 'push'

    def is_configured(self) -> bool:
        return bool(settings.FIREBASE.get('SERVER_KEY'))

    def send(self, user, subject: str, message: str, data: Optional[dict] = None) -> DeliveryResult:
        data = data or {}
        if not self.is_configured():
            return self.error_response('Firebase is not configured')
        token = data.get('device_token')
        if not token:
            result = self.error_response('No device token for push notification')
            self.log_notification(user, subject, result)
            return result

        payload = {
            'to': token,
            'notification': {'title': subject, 'body': message},
            'data': {k: v for k, v in data.items() if k not in ('device_token', 'html')},
        }
        headers = {'Authorization': f"key={settings.FIREBASE['SERVER_KEY']}"}
        try:
            r = requests.post(FCM_ENDPOINT, json=payload, headers=headers,
                              timeout=settings.NOTIFICATION_HTTP_TIMEOUT)
            r.raise_for_status()
            body = r.json()
        except (requests.RequestException, ValueError) as exc:
            result = self.error_response(f'Firebase request failed: {exc}')
        else:
            if body.get('failure'):
                result = self.error_response('Firebase rejected the message', {'response': body})
            else:
                PushNotificationLog.objects.create(
                    user=user, title=subject, body=message, data=payload['data'], driver=self.name,
                    status='sent', platform=data.get('platform', 'android'), device_token=token,
                )
                result = self.success_response({'multicast_id': body.get('multicast_id')})
        self.log_notification(user, subject, result)
        return result
