from django.utils import timezone

from core.models import TrustedDevice
from core.services.audit import client_ip


def trust_device(user, *, device_id: str, device_name: str = '', request=None) -> tuple[TrustedDevice, bool]:
    """Register or refresh a trusted device; one row per (user, device_id)."""
    agent = request.META.get('HTTP_USER_AGENT', '')[:500] if request is not None else ''
    defaults = {
        'ip_address': client_ip(request),
        'user_agent': agent,
        'last_login_at': timezone.now(),
    }
    if device_name:
        defaults['device_name'] = device_name
    return TrustedDevice.objects.update_or_create(user=user, device_id=device_id, defaults=defaults)


def is_trusted(user, device_id: str) -> bool:
    return bool(device_id) and TrustedDevice.objects.filter(user=user, device_id=device_id).exists()


def revoke(user, device_id: str) -> bool:
    deleted, _ = TrustedDevice.objects.filter(user=user, device_id=device_id).delete()
    return bool(deleted)
