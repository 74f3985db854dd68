"""
SMS one-time codes for multi-factor authentication.

Challenges are kept in the Django cache, never in the session: the code
is stored as a keyed hash, expires after ``MFA_CODE_TTL_SECONDS`` and is
invalidated after ``MFA_MAX_ATTEMPTS`` wrong guesses.
"""
import logging
import secrets
import time

from django.conf import settings
from django.core.cache import cache
from django.template.loader import render_to_string
from django.utils.crypto import constant_time_compare, salted_hmac
from rest_framework.exceptions import ValidationError

from core.notifications.drivers import DeliveryResult
from core.notifications.registry import get_driver
from core.services.audit import log_action

logger = logging.getLogger(__name__)

KEY_SALT = 'core.services.mfa'


def cache_key(user) -> str:
    return f'mfa:challenge:{user.pk}'


def attempts_key(user) -> str:
    return f'mfa:attempts:{user.pk}'


def hash_code(user, code: str) -> str:
    return salted_hmac(KEY_SALT, f'{user.pk}:{code}').hexdigest()


def generate_code() -> str:
    return f'{secrets.randbelow(10 ** 6):06d}'


def issue_challenge(user) -> DeliveryResult:
    """Create a fresh code (replacing any pending one) and send it by SMS."""
    ttl = settings.MFA_CODE_TTL_SECONDS
    code = generate_code()
    cache.set(cache_key(user), {
        'hash': hash_code(user, code),
        'expires_at': time.time() + ttl,
    }, timeout=ttl)
    cache.set(attempts_key(user), 0, timeout=ttl)

    driver = get_driver('sms')
    if not driver.is_configured():
        return DeliveryResult(False, 'Driver not configured', driver.get_name())
    message = render_to_string('sms/mfa_code.txt', {
        'app_name': settings.APP_NAME, 'code': code, 'minutes': max(1, ttl // 60),
    }).strip()
    return driver.send(user, 'Verification code', message, {'purpose': 'mfa'})


def verify_challenge(user, code: str) -> None:
    """Consume the pending challenge; raises ValidationError on any failure."""
    keys = [cache_key(user), attempts_key(user)]
    challenge = cache.get(keys[0])
    if not challenge or challenge['expires_at'] <= time.time():
        cache.delete_many(keys)
        raise ValidationError({'code': ['Verification code expired. Request a new code.']})

    if constant_time_compare(challenge['hash'], hash_code(user, str(code).strip())):
        cache.delete_many(keys)
        return

    # incr is atomic on the shared cache, so parallel guesses cannot reuse a count
    try:
        attempts = cache.incr(keys[1])
    except ValueError:
        attempts = settings.MFA_MAX_ATTEMPTS
    if attempts >= settings.MFA_MAX_ATTEMPTS:
        cache.delete_many(keys)
        logger.warning('mfa challenge for user %s locked after %s attempts', user.pk, attempts)
        raise ValidationError({'code': ['Too many failed attempts. Request a new code.']})
    raise ValidationError({'code': ['Invalid verification code.']})


def start_enrollment(user, phone: str, request=None) -> DeliveryResult:
    user.phone = phone
    user.save(update_fields=['phone'])
    result = issue_challenge(user)
    log_action(user=user, action='mfa.challenge', object_type='user', object_id=user.pk,
               detail={'sent': result.success}, request=request)
    return result


def complete_enrollment(user, code: str, request=None) -> None:
    verify_challenge(user, code)
    user.mfa_enabled = True
    user.mfa_method = 'sms'
    user.save(update_fields=['mfa_enabled', 'mfa_method'])
    log_action(user=user, action='mfa.enabled', object_type='user', object_id=user.pk, request=request)


def disable(user, request=None) -> None:
    user.mfa_enabled = False
    user.mfa_method = ''
    user.save(update_fields=['mfa_enabled', 'mfa_method'])
    cache.delete_many([cache_key(user), attempts_key(user)])
    log_action(user=user, action='mfa.disabled', object_type='user', object_id=user.pk, request=request)
