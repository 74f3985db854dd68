"""
Notification events.

Each event binds one domain entity plus optional free-text
annotations, declares the channels it is delivered over (``via``) and
renders a payload per channel.  Events are immutable; a queued event is
serialised with :meth:`NotificationEvent.to_job` and rebuilt from the
database by the worker with :meth:`NotificationEvent.from_job`.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Optional

from django.conf import settings
from django.template.loader import render_to_string

from core.models import Appointment, Assessment, EmergencyAlert, Referral


@dataclass(frozen=True)
class MailMessage:
    subject: str
    text: str
    html: str
    priority: str = 'normal'


def frontend_url(path: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/{path.lstrip('/')}"


def display_level(level: Optional[str]) -> str:
    return (level or 'unknown').replace('_', ' ').title()


class NotificationEvent:
    """Base behaviour; concrete events are frozen dataclasses."""

    entity_field: ClassVar[str] = ''
    model: ClassVar[type] = None
    channels: ClassVar[tuple[str, ...]] = ('mail', 'database')
    queue_setting: ClassVar[str] = 'QUEUE_NAME'
    notification_type: ClassVar[str] = 'system'
    title: ClassVar[str] = ''
    template: ClassVar[str] = ''

    @property
    def entity(self):
        return getattr(self, self.entity_field)

    def via(self, notifiable) -> tuple[str, ...]:
        return self.channels

    def queue(self) -> str:
        return settings.NOTIFICATIONS.get(self.queue_setting) or settings.NOTIFICATIONS['QUEUE_NAME']

    def priority(self) -> str:
        return 'normal'

    def subject(self) -> str:
        return f"{self.title} - {settings.APP_NAME}"

    def summary(self, notifiable) -> str:
        raise NotImplementedError

    def mail_context(self, notifiable) -> dict[str, Any]:
        return {
            'app_name': settings.APP_NAME,
            'notifiable': notifiable,
            'greeting': f"Hello {notifiable.full_name},",
            self.entity_field: self.entity,
            'payload': self.to_database(notifiable),
        }

    def to_mail(self, notifiable) -> MailMessage:
        context = self.mail_context(notifiable)
        return MailMessage(
            subject=self.subject(),
            text=render_to_string(f'emails/{self.template}.txt', context),
            html=render_to_string(f'emails/{self.template}.html', context),
            priority=self.priority(),
        )

    def to_database(self, notifiable) -> dict[str, Any]:
        raise NotImplementedError

    def to_array(self, notifiable) -> dict[str, Any]:
        """Payload for push and any other channel without its own rendering."""
        return self.to_database(notifiable)

    def to_sms(self, notifiable) -> str:
        return f"[{settings.APP_NAME}] {self.summary(notifiable)}"

    def related_ids(self) -> dict[str, Any]:
        return {}

    def render(self, channel: str, notifiable) -> tuple[str, str, dict[str, Any]]:
        """(subject, message, data) for the driver behind ``channel``."""
        if channel in ('mail', 'email'):
            mail = self.to_mail(notifiable)
            return mail.subject, mail.text, {'html': mail.html, 'priority': mail.priority}
        if channel == 'database':
            payload = self.to_database(notifiable)
            return self.title, self.summary(notifiable), {
                'type': self.notification_type,
                'priority': self.priority(),
                'action_url': payload.get('action_url') or payload.get('acknowledge_url', ''),
                'payload': payload,
                **self.related_ids(),
            }
        if channel == 'sms':
            return self.title, self.to_sms(notifiable), {}
        return self.title, self.summary(notifiable), self.to_array(notifiable)

    def annotations(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != self.entity_field}

    def to_job(self) -> dict[str, Any]:
        return {
            'event': type(self).__name__,
            'entity_id': self.entity.pk,
            'annotations': self.annotations(),
        }

    @classmethod
    def from_job(cls, job: dict[str, Any]) -> 'NotificationEvent':
        event_cls = EVENT_TYPES[job['event']]
        entity = event_cls.model.objects.get(pk=job['entity_id'])
        return event_cls(**{event_cls.entity_field: entity}, **job.get('annotations', {}))


@dataclass(frozen=True)
class AssessmentValidated(NotificationEvent):
    assessment: Assessment
    clinician_notes: str = ''
    action_url: str = ''

    entity_field = 'assessment'
    model = Assessment
    notification_type = 'assessment'
    title = 'Assessment Validated'
    template = 'assessment_validated'

    def priority(self) -> str:
        return 'high' if self.assessment.is_high_risk() else 'normal'

    def summary(self, notifiable) -> str:
        return (f"Your assessment {self.assessment.external_id} has been validated. "
                f"Risk level: {display_level(self.assessment.final_risk_level)}.")

    def mail_context(self, notifiable) -> dict[str, Any]:
        context = super().mail_context(notifiable)
        context['risk_level_display'] = display_level(self.assessment.final_risk_level)
        return context

    def to_database(self, notifiable) -> dict[str, Any]:
        a = self.assessment
        return {
            'assessment_id': a.pk,
            'assessment_external_id': a.external_id,
            'risk_level': a.final_risk_level,
            'risk_score': a.final_risk_score,
            'clinician_notes': self.clinician_notes,
            'action_url': self.action_url or frontend_url(f'assessments/{a.pk}'),
        }

    def related_ids(self) -> dict[str, Any]:
        return {'related_assessment_id': self.assessment.pk}


@dataclass(frozen=True)
class AssessmentRejected(NotificationEvent):
    assessment: Assessment
    reason: str = ''
    action_url: str = ''

    entity_field = 'assessment'
    model = Assessment
    notification_type = 'assessment'
    title = 'Assessment Needs Review'
    template = 'assessment_rejected'

    NEXT_STEPS: ClassVar[tuple[str, ...]] = (
        'Review the clinician feedback',
        'Update your symptoms or vital signs if they have changed',
        'Submit a new assessment or contact your health worker',
    )

    def summary(self, notifiable) -> str:
        return f"Your assessment {self.assessment.external_id} needs review."

    def to_database(self, notifiable) -> dict[str, Any]:
        a = self.assessment
        return {
            'assessment_id': a.pk,
            'assessment_external_id': a.external_id,
            'status': a.status,
            'reason': self.reason,
            'next_steps': list(self.NEXT_STEPS),
            'action_url': self.action_url or frontend_url(f'assessments/{a.pk}'),
        }

    def related_ids(self) -> dict[str, Any]:
        return {'related_assessment_id': self.assessment.pk}


@dataclass(frozen=True)
class ReferralAssigned(NotificationEvent):
    referral: Referral
    action_url: str = ''

    entity_field = 'referral'
    model = Referral
    notification_type = 'referral'
    title = 'New Patient Referral Assigned'
    template = 'referral_assigned'

    def is_urgent(self) -> bool:
        return self.referral.priority == 'critical' or self.referral.urgency == 'emergency'

    def priority(self) -> str:
        return 'critical' if self.is_urgent() else 'high'

    def summary(self, notifiable) -> str:
        return f"Referral #{self.referral.pk} ({self.referral.priority} priority) has been assigned to you."

    def assessment_summary(self) -> str:
        a = self.referral.assessment
        level = a.final_risk_level or a.ml_risk_level or 'unknown'
        score = a.final_risk_score if a.final_risk_score is not None else a.ml_risk_score
        summary = f"{a.patient_full_name or a.external_id}: risk {level}"
        return summary if score is None else f"{summary} ({score})"

    def to_database(self, notifiable) -> dict[str, Any]:
        r = self.referral
        return {
            'referral_id': r.pk,
            'priority': r.priority,
            'reason': r.reason,
            'clinical_notes': r.clinical_notes,
            'assessment_summary': self.assessment_summary(),
            'action_url': self.action_url or frontend_url(f'referrals/{r.pk}'),
        }

    def related_ids(self) -> dict[str, Any]:
        return {'related_referral_id': self.referral.pk, 'related_assessment_id': self.referral.assessment_id}


@dataclass(frozen=True)
class EmergencyAlertNotification(NotificationEvent):
    alert: EmergencyAlert
    action_url: str = ''

    entity_field = 'alert'
    model = EmergencyAlert
    channels = ('mail', 'database', 'sms')
    queue_setting = 'HIGH_PRIORITY_QUEUE'
    notification_type = 'alert'
    title = 'Emergency Alert'
    template = 'emergency_alert'

    def subject(self) -> str:
        return f"URGENT: Emergency Alert - {settings.APP_NAME}"

    def priority(self) -> str:
        return 'critical' if self.alert.severity == 'critical' else 'high'

    def summary(self, notifiable) -> str:
        return f"{self.alert.title}: {self.alert.message}"

    def to_sms(self, notifiable) -> str:
        return f"URGENT [{settings.APP_NAME}] {self.summary(notifiable)}"[:320]

    def to_database(self, notifiable) -> dict[str, Any]:
        alert = self.alert
        return {
            'alert_id': alert.pk,
            'title': alert.title,
            'message': alert.message,
            'severity': alert.severity,
            'action_required': alert.severity in ('high', 'critical'),
            'acknowledge_url': self.action_url or frontend_url(f'alerts/{alert.pk}/acknowledge'),
        }


@dataclass(frozen=True)
class AppointmentConfirmation(NotificationEvent):
    appointment: Appointment
    action_url: str = ''

    entity_field = 'appointment'
    model = Appointment
    channels = ('mail', 'database', 'sms')
    notification_type = 'appointment'
    title = 'Appointment Confirmation'
    template = 'appointment_confirmation'

    def when(self) -> str:
        appt = self.appointment
        date = appt.appointment_date.strftime('%Y-%m-%d')
        return f"{date} at {appt.appointment_time.strftime('%H:%M')}" if appt.appointment_time else date

    def summary(self, notifiable) -> str:
        return f"Your {self.appointment.get_type_display().lower()} appointment on {self.when()} is confirmed."

    def to_database(self, notifiable) -> dict[str, Any]:
        appt = self.appointment
        return {
            'appointment_id': appt.pk,
            'appointment_date': appt.appointment_date.strftime('%Y-%m-%d'),
            'appointment_time': appt.appointment_time.strftime('%H:%M') if appt.appointment_time else None,
            'type': appt.type,
            'action_url': self.action_url or frontend_url(f'appointments/{appt.pk}'),
        }

    def related_ids(self) -> dict[str, Any]:
        return {'related_assessment_id': self.appointment.assessment_id} if self.appointment.assessment_id else {}


EVENT_TYPES: dict[str, type[NotificationEvent]] = {
    cls.__name__: cls
    for cls in (AssessmentValidated, AssessmentRejected, ReferralAssigned,
                EmergencyAlertNotification, AppointmentConfirmation)
}
