import logging

from django.contrib.auth import get_user_model
from django.db.models import Q
from django.utils import timezone

from core.models import EmergencyAlert
from core.notifications import notify_many
from core.notifications.events import EmergencyAlertNotification
from core.roles import STAFF_ROLES
from core.services.audit import log_action

logger = logging.getLogger(__name__)

User = get_user_model()


def alert_recipients(alert: EmergencyAlert):
    qs = User.objects.filter(is_active=True, groups__name__in=STAFF_ROLES).distinct()
    if alert.target_audience == 'facility' and alert.target_facility_id:
        qs = qs.filter(facility_id=alert.target_facility_id)
    return qs


def active_alerts(user=None):
    now = timezone.now()
    qs = EmergencyAlert.objects.filter(is_active=True).filter(Q(expires_at__isnull=True) | Q(expires_at__gt=now))
    if user is not None:
        qs = qs.filter(Q(target_audience='all') | Q(target_facility_id=user.facility_id))
    return qs.order_by('-created_at')


def broadcast_alert(*, user, data: dict, request=None) -> EmergencyAlert:
    alert = EmergencyAlert.objects.create(created_by=user, **data)
    recipients = list(alert_recipients(alert))
    alert.recipients_count = len(recipients)
    alert.save(update_fields=['recipients_count'])
    log_action(user=user, action='alert.created', object_type='emergency_alert', object_id=alert.pk,
               detail={'severity': alert.severity, 'recipients': alert.recipients_count}, request=request)
    sent = notify_many(recipients, EmergencyAlertNotification(alert))
    logger.info('emergency alert %s dispatched to %s recipients', alert.pk, sent)
    return alert
