from rest_framework import serializers

from core.models import EmergencyAlert, HealthcareFacility

from .fields import CleanCharField


class EmergencyAlertCreateSerializer(serializers.Serializer):
    title = CleanCharField(max_length=255)
    message = CleanCharField(max_length=5000)
    severity = serializers.ChoiceField(choices=[c for c, _ in EmergencyAlert.SEVERITY_CHOICES], default='high')
    target_audience = serializers.ChoiceField(choices=[c for c, _ in EmergencyAlert.AUDIENCE_CHOICES],
                                              default='all')
    target_facility = serializers.PrimaryKeyRelatedField(queryset=HealthcareFacility.objects.all(),
                                                         required=False, allow_null=True)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get('target_audience') == 'facility' and not attrs.get('target_facility'):
            raise serializers.ValidationError({'target_facility': ['Required for facility alerts']})
        return attrs


def alert_dict(a: EmergencyAlert) -> dict:
    return {
        'id': a.id,
        'title': a.title,
        'message': a.message,
        'severity': a.severity,
        'target_audience': a.target_audience,
        'target_facility_id': a.target_facility_id,
        'expires_at': a.expires_at,
        'recipients_count': a.recipients_count,
        'created_by': a.created_by_id,
        'created_at': a.created_at,
    }
