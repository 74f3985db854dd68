from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core.exceptions import Conflict
from core.models import Appointment
from core.notifications import notify
from core.notifications.events import AppointmentConfirmation, frontend_url
from core.notifications.service import NotificationService
from core.services.audit import log_action


def filter_appointments(qs, params: dict):
    if params.get('facility_id'):
        qs = qs.filter(facility_id=params['facility_id'])
    if params.get('doctor_id'):
        qs = qs.filter(doctor_id=params['doctor_id'])
    if params.get('status'):
        qs = qs.filter(status=params['status'])
    if params.get('type'):
        qs = qs.filter(type=params['type'])
    if params.get('date_from'):
        qs = qs.filter(appointment_date__gte=params['date_from'])
    if params.get('date_to'):
        qs = qs.filter(appointment_date__lte=params['date_to'])
    if params.get('search'):
        term = params['search']
        qs = qs.filter(
            Q(patient__first_name__icontains=term) | Q(patient__last_name__icontains=term)
            | Q(patient__username__icontains=term) | Q(reason_for_visit__icontains=term)
        )
    return qs.order_by('-appointment_date', '-appointment_time', '-id')


def ensure_open(appointment: Appointment, *allowed: str) -> None:
    if appointment.is_closed or (allowed and appointment.status not in allowed):
        raise Conflict(f'Appointment is already {appointment.status}.')


def appointment_notice(appointment: Appointment, title: str, body: str, recipients=None) -> dict:
    users = recipients or [appointment.patient_id]
    return NotificationService().send_bulk(
        users, 'appointment', title, body, channels=('database', 'email'),
        data={'appointment_id': appointment.pk, 'action_url': frontend_url(f'/appointments/{appointment.pk}')},
    )


def create_appointment(*, user, data: dict, request=None) -> Appointment:
    appointment = Appointment.objects.create(**data)
    log_action(user=user, action='appointment.created', object_type='appointment', object_id=appointment.pk,
               request=request)
    return appointment


def confirm_appointment(appointment: Appointment, *, user, request=None) -> Appointment:
    ensure_open(appointment, 'scheduled', 'confirmed')
    if appointment.status != 'confirmed':
        appointment.status = 'confirmed'
        appointment.confirmed_at = timezone.now()
        appointment.save(update_fields=['status', 'confirmed_at'])
        log_action(user=user, action='appointment.confirmed', object_type='appointment',
                   object_id=appointment.pk, request=request)
    notify(appointment.patient, AppointmentConfirmation(appointment))
    return appointment


def cancel_appointment(appointment: Appointment, *, user, reason: str, request=None) -> Appointment:
    ensure_open(appointment)
    appointment.status = 'cancelled'
    appointment.cancelled_at = timezone.now()
    appointment.cancelled_by = user
    appointment.cancellation_reason = reason
    appointment.save(update_fields=['status', 'cancelled_at', 'cancelled_by', 'cancellation_reason'])
    log_action(user=user, action='appointment.cancelled', object_type='appointment', object_id=appointment.pk,
               detail={'reason': reason}, request=request)
    appointment_notice(appointment, 'Appointment Cancelled',
                       f'Your appointment on {appointment.appointment_date} was cancelled: {reason}')
    return appointment


def reschedule_appointment(appointment: Appointment, *, user, date, time=None, reason: str = '',
                           request=None) -> Appointment:
    """Close ``appointment`` and book its replacement; returns the new appointment."""
    ensure_open(appointment, 'scheduled', 'confirmed')
    with transaction.atomic():
        replacement = Appointment.objects.create(
            patient_id=appointment.patient_id, doctor_id=appointment.doctor_id,
            facility_id=appointment.facility_id, assessment_id=appointment.assessment_id,
            appointment_date=date, appointment_time=time if time is not None else appointment.appointment_time,
            type=appointment.type, reason_for_visit=appointment.reason_for_visit,
            status='scheduled', rescheduled_from=appointment,
        )
        appointment.status = 'rescheduled'
        appointment.status_notes = f'Rescheduled to appointment #{replacement.pk}' + (f': {reason}' if reason else '')
        appointment.save(update_fields=['status', 'status_notes'])
        log_action(user=user, action='appointment.rescheduled', object_type='appointment',
                   object_id=appointment.pk, detail={'new_appointment_id': replacement.pk, 'reason': reason},
                   request=request)

    recipients = [appointment.patient_id]
    if appointment.doctor_id and appointment.doctor_id != user.pk:
        recipients.append(appointment.doctor_id)
    appointment_notice(replacement, 'Appointment Rescheduled',
                       f'Appointment moved from {appointment.appointment_date} to {replacement.appointment_date}.',
                       recipients)
    return replacement


def check_in_appointment(appointment: Appointment, *, user, request=None) -> Appointment:
    ensure_open(appointment, 'scheduled', 'confirmed')
    appointment.status = 'checked_in'
    appointment.checked_in_at = timezone.now()
    appointment.checked_in_by = user
    appointment.save(update_fields=['status', 'checked_in_at', 'checked_in_by'])
    log_action(user=user, action='appointment.checked_in', object_type='appointment', object_id=appointment.pk,
               request=request)
    return appointment


def complete_appointment(appointment: Appointment, *, user, visit_summary: str = '', next_steps: str = '',
                         request=None) -> Appointment:
    ensure_open(appointment)
    appointment.status = 'completed'
    appointment.completed_at = timezone.now()
    appointment.visit_summary = visit_summary
    appointment.next_steps = next_steps
    appointment.save(update_fields=['status', 'completed_at', 'visit_summary', 'next_steps'])
    log_action(user=user, action='appointment.completed', object_type='appointment', object_id=appointment.pk,
               request=request)
    return appointment
