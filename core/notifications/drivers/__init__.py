from .base import BaseDriver, DeliveryResult, NotificationDriver
from .database import DatabaseDriver
from .email import MailgunDriver, MockEmailDriver
from .push import FirebaseDriver, MockPushDriver
from .sms import MockSmsDriver, TwilioDriver

__all__ = [
    'BaseDriver',
    'DeliveryResult',
    'NotificationDriver',
    'DatabaseDriver',
    'MailgunDriver',
    'MockEmailDriver',
    'FirebaseDriver',
    'MockPushDriver',
    'MockSmsDriver',
    'TwilioDriver',
]
