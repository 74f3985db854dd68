import logging
import uuid
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Avg, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from core.exceptions import Conflict
from core.models import (
    Assessment,
    AssessmentComment,
    AssessmentRiskAdjustment,
    ClinicalValidation,
    risk_level_for_score,
)
from core.notifications import notify
from core.notifications.events import AssessmentRejected, AssessmentValidated, frontend_url
from core.notifications.service import NotificationService
from core.services.audit import log_action

logger = logging.getLogger(__name__)

User = get_user_model()

SIGNIFICANT_DIFFERENCE = 15
# score changes at least this large alert the assessment owner
RISK_ALERT_THRESHOLD = 15

CSV_HEADER = [
    'ID', 'External ID', 'Assessment Date', 'Patient Name', 'Sex', 'Email', 'Phone', 'Region',
    'ML Risk Score', 'ML Risk Level', 'Final Risk Score', 'Final Risk Level', 'Urgency',
    'Recommended Action', 'Status', 'Validated By', 'Validated At',
    'Systolic BP', 'Diastolic BP', 'Heart Rate', 'BMI', 'Created At',
]


def new_external_id() -> str:
    return f"ASM-{uuid.uuid4().hex[:12].upper()}"


def filter_assessments(qs, params: dict):
    if params.get('status'):
        qs = qs.filter(status=params['status'])
    if params.get('risk_level'):
        qs = qs.filter(final_risk_level=params['risk_level'])
    if params.get('urgency'):
        qs = qs.filter(urgency=params['urgency'])
    if params.get('region'):
        qs = qs.filter(region=params['region'])
    if params.get('start_date'):
        qs = qs.filter(assessment_date__date__gte=params['start_date'])
    if params.get('end_date'):
        qs = qs.filter(assessment_date__date__lte=params['end_date'])
    if params.get('search'):
        term = params['search']
        qs = qs.filter(
            Q(patient_first_name__icontains=term) | Q(patient_last_name__icontains=term)
            | Q(external_id__icontains=term)
        )
    return qs


def create_from_mobile(data: dict) -> Assessment:
    data = dict(data)
    data['external_id'] = data.get('external_id') or new_external_id()
    if Assessment.objects.filter(external_id=data['external_id']).exists():
        raise Conflict('Assessment already exists (duplicate external_id).')
    if data.get('final_risk_level'):
        data['final_risk_level'] = data['final_risk_level'].lower()
    return Assessment.objects.create(status=Assessment.STATUS_PENDING, **data)


def bulk_sync(items: list, serializer_class) -> dict:
    """Store a batch of offline assessments; one failing item does not stop the rest."""
    results, succeeded, failed = [], 0, 0
    for index, raw in enumerate(items):
        s = serializer_class(data=raw)
        if not s.is_valid():
            results.append({'index': index, 'success': False, 'errors': s.errors})
            failed += 1
            continue
        external_id = s.validated_data.get('external_id')
        existing = Assessment.objects.filter(external_id=external_id).first() if external_id else None
        if existing:
            results.append({
                'index': index, 'success': False,
                'message': 'Assessment already exists (duplicate external_id)',
                'assessment_id': existing.pk, 'external_id': existing.external_id,
            })
            failed += 1
            continue
        with transaction.atomic():
            assessment = create_from_mobile(s.validated_data)
        results.append({'index': index, 'success': True, 'assessment_id': assessment.pk,
                        'external_id': assessment.external_id})
        succeeded += 1
    return {
        'summary': {'total': len(items), 'success': succeeded, 'failed': failed},
        'results': results,
    }


def ensure_mutable(assessment: Assessment) -> None:
    if assessment.is_archived:
        raise Conflict('Archived assessments are read-only.')


def agreement_level(assessment: Assessment, score: int, agrees_with_ml: bool) -> str:
    if agrees_with_ml:
        return 'complete_agreement'
    if assessment.ml_risk_score is not None and abs(score - assessment.ml_risk_score) >= SIGNIFICANT_DIFFERENCE:
        return 'significant_difference'
    return 'partial_agreement'


def notification_recipient(assessment: Assessment) -> Optional[User]:
    """The patient account matching the assessment, else the validating clinician."""
    if assessment.patient_email:
        owner = User.objects.filter(email__iexact=assessment.patient_email, is_active=True).first()
        if owner:
            return owner
    return assessment.validated_by


def validate_assessment(assessment: Assessment, *, clinician, score: int, agrees_with_ml: bool,
                        notes: str = '', request=None) -> Assessment:
    ensure_mutable(assessment)
    level = risk_level_for_score(score)
    with transaction.atomic():
        assessment.final_risk_score = score
        assessment.final_risk_level = level
        assessment.validation_notes = notes
        assessment.validation_agrees_with_ml = agrees_with_ml
        assessment.validated_by = clinician
        assessment.validated_at = timezone.now()
        assessment.status = Assessment.STATUS_VALIDATED
        assessment.save()
        ClinicalValidation.objects.create(
            assessment=assessment, doctor=clinician,
            original_ml_score=assessment.ml_risk_score, original_ml_level=assessment.ml_risk_level,
            validated_score=score, validated_level=level,
            agreement_level=agreement_level(assessment, score, agrees_with_ml),
            score_difference=None if assessment.ml_risk_score is None else score - assessment.ml_risk_score,
            clinical_notes=notes,
        )
        log_action(user=clinician, action='assessment.validated', object_type='assessment',
                   object_id=assessment.pk, detail={'score': score, 'level': level}, request=request)

    recipient = notification_recipient(assessment)
    if recipient is not None:
        notify(recipient, AssessmentValidated(assessment, clinician_notes=notes))
    return assessment


def reject_assessment(assessment: Assessment, *, clinician, reason: str, notify_owner: bool = True,
                      request=None) -> Assessment:
    ensure_mutable(assessment)
    with transaction.atomic():
        assessment.status = Assessment.STATUS_REJECTED
        assessment.validation_notes = reason
        assessment.validated_by = clinician
        assessment.validated_at = timezone.now()
        assessment.validation_agrees_with_ml = False
        assessment.save()
        ClinicalValidation.objects.create(
            assessment=assessment, doctor=clinician,
            original_ml_score=assessment.ml_risk_score, original_ml_level=assessment.ml_risk_level,
            validated_score=assessment.final_risk_score or assessment.ml_risk_score or 0,
            validated_level=assessment.final_risk_level or assessment.ml_risk_level or 'low',
            agreement_level='complete_disagreement',
            clinical_notes=reason,
        )
        log_action(user=clinician, action='assessment.rejected', object_type='assessment',
                   object_id=assessment.pk, detail={'reason': reason}, request=request)

    if notify_owner:
        recipient = notification_recipient(assessment)
        if recipient is not None:
            notify(recipient, AssessmentRejected(assessment, reason=reason))
    return assessment


def archive_assessment(assessment: Assessment, *, user, request=None) -> Assessment:
    ensure_mutable(assessment)
    now = timezone.now()
    # queryset update: save() refuses to touch archived rows
    Assessment.objects.filter(pk=assessment.pk).update(archived_at=now, updated_at=now)
    assessment.archived_at = now
    log_action(user=user, action='assessment.archived', object_type='assessment',
               object_id=assessment.pk, request=request)
    return assessment


def notify_assessment_owner(assessment: Assessment, *, actor, title: str, body: str, priority: str = 'normal',
                            channels=('database', 'email'), data: Optional[dict] = None,
                            recipient: Optional[User] = None) -> Optional[dict]:
    """In-app notice (plus opted-in channels) for whoever owns the assessment.

    Nobody is notified about their own action.
    """
    recipient = recipient or notification_recipient(assessment)
    if recipient is None or recipient == actor:
        return None
    return NotificationService().send(
        recipient, 'assessment', title, body, channels=channels,
        data={'assessment_id': assessment.pk, **(data or {})}, priority=priority,
        action_url=frontend_url(f'/assessments/{assessment.pk}'), related_assessment_id=assessment.pk,
    )


def adjust_risk_score(assessment: Assessment, *, clinician, score: int, justification: str,
                      request=None) -> AssessmentRiskAdjustment:
    ensure_mutable(assessment)
    old_score = assessment.final_risk_score if assessment.final_risk_score is not None \
        else assessment.ml_risk_score
    if old_score == score:
        raise ValidationError({'new_risk_score': ['New risk score must differ from the current score.']})
    old_level = assessment.final_risk_level or assessment.ml_risk_level
    new_level = risk_level_for_score(score)
    difference = None if old_score is None else score - old_score
    alert = difference is not None and abs(difference) >= RISK_ALERT_THRESHOLD
    # resolved before validated_by moves to the adjusting clinician
    recipient_before = notification_recipient(assessment)

    with transaction.atomic():
        assessment.final_risk_score = score
        assessment.final_risk_level = new_level
        assessment.validated_by = clinician
        assessment.validated_at = timezone.now()
        assessment.status = Assessment.STATUS_VALIDATED
        assessment.save()
        adjustment = AssessmentRiskAdjustment.objects.create(
            assessment=assessment, adjusted_by=clinician,
            old_risk_score=old_score, new_risk_score=score,
            old_risk_level=old_level, new_risk_level=new_level,
            score_difference=difference, justification=justification,
            alert_triggered=alert, metadata={'threshold': RISK_ALERT_THRESHOLD},
        )
        log_action(user=clinician, action='assessment.risk_adjusted', object_type='assessment',
                   object_id=assessment.pk,
                   detail={'old_score': old_score, 'new_score': score, 'alert_triggered': alert},
                   request=request)

    if alert:
        notify_assessment_owner(
            assessment, actor=clinician, recipient=recipient_before, title='Risk Score Adjusted',
            body=f'The risk score for assessment {assessment.external_id} changed from {old_score} to {score} '
            f'({new_level} risk).',
            data={'assessment_id': assessment.pk, 'adjustment_id': adjustment.pk,
                  'old_risk_score': old_score, 'new_risk_score': score, 'new_risk_level': new_level},
            priority='high',
        )
    return adjustment


def readable_notes(assessment: Assessment, viewer):
    """Notes on ``assessment`` the viewer may read: everything but other people's private notes."""
    return AssessmentComment.objects.filter(assessment=assessment, comment_type='clinical_note') \
        .filter(Q(visibility__in=('internal', 'shared')) | Q(user=viewer))


def clinical_notes(assessment: Assessment, viewer):
    """First versions of the readable notes, newest first."""
    return readable_notes(assessment, viewer).filter(parent=None).select_related('user') \
        .order_by('-created_at', '-id')


def note_versions(root: AssessmentComment) -> list:
    return [root, *root.versions.select_related('user').order_by('created_at', 'id')]


def store_clinical_note(assessment: Assessment, *, author, content: str, visibility: str = 'internal',
                        mobile_visible: bool = False, parent_note_id: Optional[int] = None,
                        request=None) -> AssessmentComment:
    """Add a note, or a new version of an existing note; returns the first version."""
    ensure_mutable(assessment)
    if mobile_visible:
        visibility = 'shared'
    root = None
    if parent_note_id is not None:
        parent = readable_notes(assessment, author).filter(pk=parent_note_id).select_related('parent').first()
        if parent is None:
            raise NotFound('Clinical note not found.')
        root = parent.parent or parent

    note = AssessmentComment.objects.create(
        assessment=assessment, user=author, comment=content, comment_type='clinical_note',
        visibility=visibility, parent=root,
    )
    log_action(user=author, action='assessment.note_added', object_type='assessment', object_id=assessment.pk,
               detail={'note_id': note.pk, 'visibility': visibility, 'version_of': root.pk if root else None},
               request=request)

    if visibility == 'shared':
        notify_assessment_owner(assessment, actor=author, title='New Clinical Note Available',
                                body=f'A clinician added a note to assessment {assessment.external_id}.',
                                channels=('database',), data={'note_id': (root or note).pk})
    return root or note


def statistics(qs) -> dict:
    by_level = {level: qs.filter(final_risk_level=level).count() for level in ('high', 'moderate', 'low')}
    avg = qs.aggregate(v=Avg('final_risk_score'))['v'] or 0
    return {
        'total_assessments': qs.count(),
        'pending_assessments': qs.filter(status=Assessment.STATUS_PENDING).count(),
        'validated_assessments': qs.filter(status=Assessment.STATUS_VALIDATED).count(),
        'rejected_assessments': qs.filter(status=Assessment.STATUS_REJECTED).count(),
        'high_risk_assessments': by_level['high'],
        'moderate_risk_assessments': by_level['moderate'],
        'low_risk_assessments': by_level['low'],
        'average_risk_score': round(float(avg), 1),
        'risk_distribution': by_level,
    }


def export_rows(qs):
    yield CSV_HEADER
    for a in qs.select_related('validated_by').order_by('-assessment_date', '-id').iterator():
        vitals = a.vital_signs or {}
        yield [
            a.pk, a.external_id, a.assessment_date or '', a.patient_full_name, a.patient_sex,
            a.patient_email, a.patient_phone, a.region,
            a.ml_risk_score, a.ml_risk_level, a.final_risk_score, a.final_risk_level, a.urgency,
            a.recommended_action, a.status,
            a.validated_by.full_name if a.validated_by else 'N/A', a.validated_at or '',
            vitals.get('systolic_bp', 'N/A'), vitals.get('diastolic_bp', 'N/A'),
            vitals.get('heart_rate', 'N/A'), vitals.get('bmi', 'N/A'), a.created_at,
        ]
