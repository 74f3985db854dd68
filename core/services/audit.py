import logging
from typing import Optional, Any, Dict

from django.contrib.auth import get_user_model
from rest_framework.throttling import BaseThrottle

from core.models import AuditEvent

logger = logging.getLogger(__name__)

User = get_user_model()


def client_ip(request) -> Optional[str]:
    """Caller address as the rate limiter sees it (honours ``NUM_PROXIES``)."""
    if request is None:
        return None
    return BaseThrottle().get_ident(request) or None


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[int] = None, detail: Optional[Dict[str, Any]] = None,
               request=None) -> AuditEvent:
    event = AuditEvent.objects.create(
        user=user if isinstance(user, User) and user.pk else None,
        action=action,
        object_type=object_type, object_id=object_id,
        detail=detail or {},
        ip=client_ip(request),
    )
    logger.debug('audit %s %s:%s by %s', action, object_type, object_id, event.user_id)
    return event
