"""
Named rate-limit policies.

Each throttle class below is bound to one entry of
``settings.RATE_LIMIT_POLICIES``; the quota is per minute and has a
production and a non-production value selected by ``settings.ENV``.
Counters live in the default Django cache.
"""
from __future__ import annotations

import logging

from django.conf import settings
from rest_framework.throttling import SimpleRateThrottle

logger = logging.getLogger(__name__)


class PolicyRateThrottle(SimpleRateThrottle):
    policy = 'api'
    cache_format = 'throttle_%(scope)s_%(ident)s'

    def get_policy(self) -> dict:
        return settings.RATE_LIMIT_POLICIES[self.policy]

    def get_rate(self) -> str:
        column = 'prod' if getattr(settings, 'ENV', 'dev') == 'prod' else 'default'
        return f"{self.get_policy()[column]}/min"

    def get_cache_key(self, request, view):
        user = getattr(request, 'user', None)
        if self.get_policy().get('by', 'user') == 'user' and user and user.is_authenticated:
            ident = f'user:{user.pk}'
        else:
            ident = f'ip:{self.get_ident(request)}'
        return self.cache_format % {'scope': self.policy, 'ident': ident}

    def throttle_failure(self) -> bool:
        logger.warning('rate limit exceeded', extra={'policy': self.policy, 'key': self.key})
        return False


class ApiRateThrottle(PolicyRateThrottle):
    policy = 'api'


class MobileRateThrottle(PolicyRateThrottle):
    policy = 'mobile'


class AuthRateThrottle(PolicyRateThrottle):
    policy = 'auth'


class PublicRateThrottle(PolicyRateThrottle):
    policy = 'public'


class ExportRateThrottle(PolicyRateThrottle):
    policy = 'export'


class BulkRateThrottle(PolicyRateThrottle):
    policy = 'bulk'
