from django.contrib.auth import get_user_model
from rest_framework import serializers

from core.models import Assessment, HealthcareFacility, Referral

from .fields import CleanCharField

User = get_user_model()


class ReferralCreateSerializer(serializers.Serializer):
    assessment = serializers.PrimaryKeyRelatedField(queryset=Assessment.objects.all())
    target_facility = serializers.PrimaryKeyRelatedField(
        queryset=HealthcareFacility.objects.filter(is_active=True, accepts_referrals=True),
        required=False, allow_null=True,
    )
    source_facility = serializers.PrimaryKeyRelatedField(queryset=HealthcareFacility.objects.all(),
                                                         required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=[c for c, _ in Referral.PRIORITY_CHOICES], required=False)
    urgency = serializers.ChoiceField(choices=[c for c, _ in Referral.URGENCY_CHOICES], required=False)
    referral_type = CleanCharField(max_length=100, required=False, allow_blank=True)
    reason = CleanCharField(max_length=2000, required=False, allow_blank=True, default='')
    clinical_notes = CleanCharField(max_length=5000, required=False, allow_blank=True, default='')
    required_services = serializers.ListField(child=serializers.CharField(max_length=100), required=False)


class ReferralListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Referral.STATUS_CHOICES], required=False)
    priority = serializers.ChoiceField(choices=[c for c, _ in Referral.PRIORITY_CHOICES], required=False)
    assigned_to_me = serializers.BooleanField(required=False, default=False)
    target_facility = serializers.IntegerField(min_value=1, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    per_page = serializers.IntegerField(min_value=1, max_value=100, required=False)


class ReferralStatisticsQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    target_facility = serializers.IntegerField(min_value=1, required=False)
    source_facility = serializers.IntegerField(min_value=1, required=False)


class ReferralAssignSerializer(serializers.Serializer):
    doctor = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True))
    notes = CleanCharField(max_length=2000, required=False, allow_blank=True, default='')


class ReferralStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Referral.STATUS_CHOICES])
    notes = CleanCharField(max_length=2000, required=False, allow_blank=True, default='')


def referral_dict(r: Referral, detail: bool = False) -> dict:
    data = {
        'id': r.id,
        'assessment_id': r.assessment_id,
        'source_facility_id': r.source_facility_id,
        'target_facility_id': r.target_facility_id,
        'referring_user_id': r.referring_user_id,
        'assigned_doctor_id': r.assigned_doctor_id,
        'priority': r.priority,
        'urgency': r.urgency,
        'referral_type': r.referral_type,
        'status': r.status,
        'created_at': r.created_at,
    }
    if detail:
        data.update({
            'reason': r.reason,
            'clinical_notes': r.clinical_notes,
            'required_services': r.required_services,
            'status_notes': r.status_notes,
            'accepted_at': r.accepted_at,
            'arrived_at': r.arrived_at,
            'completed_at': r.completed_at,
            'cancelled_at': r.cancelled_at,
            'history': [
                {
                    'action': h.action,
                    'previous_status': h.previous_status,
                    'new_status': h.new_status,
                    'notes': h.notes,
                    'user_id': h.user_id,
                    'created_at': h.created_at,
                }
                for h in r.history.all()
            ],
        })
    return data
