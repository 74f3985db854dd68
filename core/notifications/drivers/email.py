from __future__ import annotations

from smtplib import SMTPException
from typing import Optional

import requests
from django.conf import settings
from django.core.mail import EmailMultiAlternatives

from .base import BaseDriver, DeliveryResult


class MockEmailDriver(BaseDriver):
    """Sends through Django's configured mail backend (console in dev, locmem in tests)."""

    name = 'mock'
    channel = 'email'

    def send(self, user, subject: str, message: str, data: Optional[dict] = None) -> DeliveryResult:
        data = data or {}
        if not getattr(user, 'email', ''):
            result = self.error_response('User has no email address')
            self.log_notification(user, subject, result)
            return result

        mail = EmailMultiAlternatives(subject, message, settings.DEFAULT_FROM_EMAIL, [user.email])
        if data.get('html'):
            mail.attach_alternative(data['html'], 'text/html')
        try:
            mail.send()
        except (SMTPException, OSError) as exc:
            result = self.error_response(f'Failed to send email: {exc}', {'email': user.email})
        else:
            result = self.success_response({'email': user.email, 'backend': settings.EMAIL_BACKEND})
        self.log_notification(user, subject, result)
        return result


class MailgunDriver(BaseDriver):
    name = 'mailgun'
    channel = 'email'

    def is_configured(self) -> bool:
        conf = settings.MAILGUN
        return bool(conf.get('DOMAIN') and conf.get('SECRET'))

    def send(self, user, subject: str, message: str, data: Optional[dict] = None) -> DeliveryResult:
        data = data or {}
        if not self.is_configured():
            return self.error_response('Mailgun is not configured')
        if not getattr(user, 'email', ''):
            result = self.error_response('User has no email address')
            self.log_notification(user, subject, result)
            return result

        conf = settings.MAILGUN
        url = f"https://{conf.get('ENDPOINT') or 'api.mailgun.net'}/v3/{conf['DOMAIN']}/messages"
        payload = {
            'from': settings.DEFAULT_FROM_EMAIL,
            'to': user.email,
            'subject': subject,
            'text': message,
        }
        if data.get('html'):
            payload['html'] = data['html']
        try:
            r = requests.post(url, auth=('api', conf['SECRET']), data=payload,
                              timeout=settings.NOTIFICATION_HTTP_TIMEOUT)
            r.raise_for_status()
            body = r.json()
        except (requests.RequestException, ValueError) as exc:
            result = self.error_response(f'Mailgun request failed: {exc}', {'email': user.email})
        else:
            result = self.success_response({'email': user.email, 'message_id': body.get('id')})
        self.log_notification(user, subject, result)
        return result
