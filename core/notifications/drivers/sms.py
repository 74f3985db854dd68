from __future__ import annotations

from typing import Optional

import requests
from django.conf import settings

from core.models import SmsLog

from .base import BaseDriver, DeliveryResult


class MockSmsDriver(BaseDriver):
    """Records the message in ``SmsLog`` instead of contacting a provider."""

    name = 'mock'
    channel = 'sms'

    def send(self, user, subject: str, message: str, data: Optional[dict] = None) -> DeliveryResult:
        phone = getattr(user, 'phone', '')
        if not phone:
            result = self.error_response('User has no phone number')
            self.log_notification(user, subject, result)
            return result

        log = SmsLog.objects.create(
            user=user, phone=phone, subject=subject, message=message,
            data=data or {}, driver=self.name, status='sent',
        )
        result = self.success_response({'phone': phone, 'sms_log_id': log.pk})
        self.log_notification(user, subject, result)
        return result


class TwilioDriver(BaseDriver):
    name = 'twilio'
    channel = 'sms'

    def is_configured(self) -> bool:
        conf = settings.TWILIO
        return bool(conf.get('SID') and conf.get('TOKEN') and conf.get('FROM'))

    def send(self, user, subject: str, message: str, data: Optional[dict] = None) -> DeliveryResult:
        if not self.is_configured():
            return self.error_response('Twilio is not configured')
        phone = getattr(user, 'phone', '')
        if not phone:
            result = self.error_response('User has no phone number')
            self.log_notification(user, subject, result)
            return result

        conf = settings.TWILIO
        url = f"https://api.twilio.com/2010-04-01/Accounts/{conf['SID']}/Messages.json"
        try:
            r = requests.post(url, auth=(conf['SID'], conf['TOKEN']),
                              data={'From': conf['FROM'], 'To': phone, 'Body': message},
                              timeout=settings.NOTIFICATION_HTTP_TIMEOUT)
            r.raise_for_status()
            body = r.json()
        except (requests.RequestException, ValueError) as exc:
            result = self.error_response(f'Twilio request failed: {exc}', {'phone': phone})
        else:
            SmsLog.objects.create(
                user=user, phone=phone, subject=subject, message=message, data=data or {},
                driver=self.name, status=body.get('status', 'queued'), external_id=body.get('sid', ''),
            )
            result = self.success_response({'phone': phone, 'sid': body.get('sid')})
        self.log_notification(user, subject, result)
        return result
