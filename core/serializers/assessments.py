from rest_framework import serializers

from core.models import (
    RISK_LEVEL_CHOICES,
    Assessment,
    AssessmentComment,
    AssessmentRiskAdjustment,
    HealthcareFacility,
)

from .fields import CleanCharField

LEVELS = [value for value, _ in RISK_LEVEL_CHOICES]


class MobileAssessmentSerializer(serializers.Serializer):
    """Assessment pushed by the mobile intake app (online or from the offline queue)."""
    external_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    mobile_user_id = serializers.CharField(max_length=64)
    patient_first_name = CleanCharField(max_length=100, required=False, allow_blank=True)
    patient_last_name = CleanCharField(max_length=100, required=False, allow_blank=True)
    patient_date_of_birth = serializers.DateField(required=False, allow_null=True)
    patient_sex = serializers.CharField(max_length=10, required=False, allow_blank=True)
    patient_email = serializers.EmailField(required=False, allow_blank=True)
    patient_phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    assessment_date = serializers.DateTimeField()
    region = CleanCharField(max_length=100, required=False, allow_blank=True)
    facility = serializers.PrimaryKeyRelatedField(queryset=HealthcareFacility.objects.all(), required=False,
                                                  allow_null=True)
    ml_risk_score = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True)
    ml_risk_level = serializers.CharField(required=False, allow_blank=True)
    rule_based_score = serializers.IntegerField(min_value=0, max_value=100, required=False, allow_null=True)
    rule_based_level = serializers.CharField(required=False, allow_blank=True)
    final_risk_score = serializers.IntegerField(min_value=1, max_value=25)
    final_risk_level = serializers.CharField()
    urgency = serializers.ChoiceField(choices=[c for c, _ in Assessment.URGENCY_CHOICES], required=False,
                                      allow_blank=True)
    recommended_action = CleanCharField(required=False, allow_blank=True)
    symptoms = serializers.DictField(required=False)
    vital_signs = serializers.DictField(required=False)

    def _level(self, v):
        v = (v or '').strip().lower()
        if v and v not in LEVELS:
            raise serializers.ValidationError(f'Must be one of: {", ".join(LEVELS)}')
        return v

    def validate_final_risk_level(self, v):
        v = self._level(v)
        if not v:
            raise serializers.ValidationError('This field may not be blank.')
        return v

    def validate_ml_risk_level(self, v):
        return self._level(v)

    def validate_rule_based_level(self, v):
        return self._level(v)


class BulkAssessmentSerializer(serializers.Serializer):
    assessments = serializers.ListField(child=serializers.DictField(), min_length=1, max_length=100)


class AssessmentListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Assessment.STATUS_CHOICES], required=False)
    risk_level = serializers.ChoiceField(choices=LEVELS, required=False)
    urgency = serializers.ChoiceField(choices=[c for c, _ in Assessment.URGENCY_CHOICES], required=False)
    region = serializers.CharField(max_length=100, required=False)
    search = serializers.CharField(max_length=64, required=False)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    per_page = serializers.IntegerField(min_value=1, max_value=100, required=False)


class ValidateAssessmentSerializer(serializers.Serializer):
    validated_risk_score = serializers.IntegerField(min_value=0, max_value=100)
    validation_notes = CleanCharField(max_length=1000, required=False, allow_blank=True, default='')
    validation_agrees_with_ml = serializers.BooleanField()


class RejectAssessmentSerializer(serializers.Serializer):
    reason = CleanCharField(max_length=1000)
    notify_mobile_user = serializers.BooleanField(required=False, default=True)


class RiskAdjustmentSerializer(serializers.Serializer):
    new_risk_score = serializers.IntegerField(min_value=0, max_value=100)
    justification = CleanCharField(min_length=10, max_length=2000)


class ClinicalNoteSerializer(serializers.Serializer):
    content = CleanCharField(max_length=5000)
    visibility = serializers.ChoiceField(choices=[c for c, _ in AssessmentComment.VISIBILITY_CHOICES],
                                         default='internal')
    mobile_visible = serializers.BooleanField(required=False, default=False)
    parent_note_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class PatientListQuerySerializer(serializers.Serializer):
    search = serializers.CharField(max_length=64, required=False)
    risk_level = serializers.ChoiceField(choices=LEVELS, required=False)
    sex = serializers.CharField(max_length=10, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    per_page = serializers.IntegerField(min_value=1, max_value=100, required=False)


def assessment_dict(a: Assessment, detail: bool = False) -> dict:
    data = {
        'id': a.id,
        'external_id': a.external_id,
        'mobile_user_id': a.mobile_user_id,
        'patient_name': a.patient_full_name,
        'patient_sex': a.patient_sex,
        'assessment_date': a.assessment_date,
        'region': a.region,
        'facility_id': a.facility_id,
        'ml_risk_score': a.ml_risk_score,
        'ml_risk_level': a.ml_risk_level,
        'final_risk_score': a.final_risk_score,
        'final_risk_level': a.final_risk_level,
        'urgency': a.urgency,
        'status': a.status,
        'validated_by': a.validated_by_id,
        'validated_at': a.validated_at,
        'archived': a.is_archived,
        'created_at': a.created_at,
    }
    if detail:
        data.update({
            'patient_first_name': a.patient_first_name,
            'patient_last_name': a.patient_last_name,
            'patient_date_of_birth': a.patient_date_of_birth,
            'patient_email': a.patient_email,
            'patient_phone': a.patient_phone,
            'rule_based_score': a.rule_based_score,
            'rule_based_level': a.rule_based_level,
            'recommended_action': a.recommended_action,
            'symptoms': a.symptoms,
            'vital_signs': a.vital_signs,
            'validation_notes': a.validation_notes,
            'validation_agrees_with_ml': a.validation_agrees_with_ml,
            'clinical_validations': [
                {
                    'id': v.id,
                    'doctor_id': v.doctor_id,
                    'validated_score': v.validated_score,
                    'validated_level': v.validated_level,
                    'agreement_level': v.agreement_level,
                    'score_difference': v.score_difference,
                    'clinical_notes': v.clinical_notes,
                    'created_at': v.created_at,
                }
                for v in a.clinical_validations.order_by('-created_at', '-id')
            ],
            'referral_ids': list(a.referrals.values_list('id', flat=True)),
        })
    return data


def adjustment_dict(adj: AssessmentRiskAdjustment) -> dict:
    return {
        'id': adj.id,
        'assessment_id': adj.assessment_id,
        'adjusted_by': adj.adjusted_by_id,
        'old_risk_score': adj.old_risk_score,
        'new_risk_score': adj.new_risk_score,
        'old_risk_level': adj.old_risk_level,
        'new_risk_level': adj.new_risk_level,
        'score_difference': adj.score_difference,
        'justification': adj.justification,
        'alert_triggered': adj.alert_triggered,
        'metadata': adj.metadata,
        'created_at': adj.created_at,
    }


def author_dict(user) -> dict | None:
    if user is None:
        return None
    return {'id': user.pk, 'name': user.full_name}


def note_dict(root: AssessmentComment, versions: list) -> dict:
    latest = versions[-1]
    return {
        'id': root.id,
        'current_version': len(versions),
        'latest_content': latest.comment,
        'visibility': latest.visibility,
        'mobile_visible': latest.visibility == 'shared',
        'created_at': root.created_at,
        'updated_at': latest.created_at,
        'author': author_dict(root.user),
        'versions': [
            {
                'id': v.id,
                'version': number,
                'content': v.comment,
                'visibility': v.visibility,
                'author': author_dict(v.user),
                'created_at': v.created_at,
            }
            for number, v in enumerate(versions, start=1)
        ],
    }


def patient_dict(patient: dict) -> dict:
    data = {k: v for k, v in patient.items() if k not in ('assessments', 'latest_assessment')}
    if 'assessments' in patient:
        data['latest_assessment'] = assessment_dict(patient['latest_assessment'])
        data['assessments'] = [assessment_dict(a) for a in patient['assessments']]
    return data
