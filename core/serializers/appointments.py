from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import serializers

from core.models import Appointment, Assessment, HealthcareFacility

from .fields import CleanCharField

User = get_user_model()


class AppointmentCreateSerializer(serializers.Serializer):
    patient = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True))
    doctor = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True), required=False,
                                                allow_null=True)
    facility = serializers.PrimaryKeyRelatedField(queryset=HealthcareFacility.objects.all(), required=False,
                                                  allow_null=True)
    assessment = serializers.PrimaryKeyRelatedField(queryset=Assessment.objects.all(), required=False,
                                                    allow_null=True)
    appointment_date = serializers.DateField()
    appointment_time = serializers.TimeField(required=False, allow_null=True)
    type = serializers.ChoiceField(choices=[c for c, _ in Appointment.TYPE_CHOICES], default='consultation')
    reason_for_visit = CleanCharField(max_length=2000, required=False, allow_blank=True, default='')


class AppointmentListQuerySerializer(serializers.Serializer):
    facility_id = serializers.IntegerField(min_value=1, required=False)
    doctor_id = serializers.IntegerField(min_value=1, required=False)
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES], required=False)
    type = serializers.ChoiceField(choices=[c for c, _ in Appointment.TYPE_CHOICES], required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    search = serializers.CharField(max_length=64, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    per_page = serializers.IntegerField(min_value=1, max_value=100, required=False)


class AppointmentCancelSerializer(serializers.Serializer):
    reason = CleanCharField(max_length=1000)


class AppointmentRescheduleSerializer(serializers.Serializer):
    appointment_date = serializers.DateField()
    appointment_time = serializers.TimeField(required=False, allow_null=True)
    reason = CleanCharField(max_length=1000, required=False, allow_blank=True, default='')

    def validate_appointment_date(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError('Appointment date cannot be in the past.')
        return value


class AppointmentCompleteSerializer(serializers.Serializer):
    visit_summary = CleanCharField(max_length=5000, required=False, allow_blank=True, default='')
    next_steps = CleanCharField(max_length=2000, required=False, allow_blank=True, default='')


def appointment_dict(a: Appointment) -> dict:
    return {
        'id': a.id,
        'patient_id': a.patient_id,
        'doctor_id': a.doctor_id,
        'facility_id': a.facility_id,
        'assessment_id': a.assessment_id,
        'appointment_date': a.appointment_date,
        'appointment_time': a.appointment_time,
        'type': a.type,
        'reason_for_visit': a.reason_for_visit,
        'status': a.status,
        'status_notes': a.status_notes,
        'confirmed_at': a.confirmed_at,
        'checked_in_at': a.checked_in_at,
        'completed_at': a.completed_at,
        'visit_summary': a.visit_summary,
        'next_steps': a.next_steps,
        'cancelled_at': a.cancelled_at,
        'cancellation_reason': a.cancellation_reason,
        'rescheduled_from': a.rescheduled_from_id,
    }
