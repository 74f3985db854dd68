from typing import Optional

from django.db import transaction
from django.db.models import Case, Count, IntegerField, Value, When
from django.utils import timezone

from core.exceptions import Conflict
from core.models import Assessment, HealthcareFacility, Referral, ReferralHistory
from core.notifications import notify
from core.notifications.events import ReferralAssigned
from core.services.audit import log_action

EMERGENCY_SYMPTOMS = {'chest_pain', 'shortness_of_breath', 'severe_headache', 'loss_of_consciousness'}

TRANSITIONS = {
    Referral.STATUS_PENDING: {Referral.STATUS_ACCEPTED, Referral.STATUS_REJECTED, Referral.STATUS_CANCELLED},
    Referral.STATUS_ACCEPTED: {Referral.STATUS_IN_TRANSIT, Referral.STATUS_ARRIVED, Referral.STATUS_IN_PROGRESS,
                               Referral.STATUS_COMPLETED, Referral.STATUS_CANCELLED},
    Referral.STATUS_IN_TRANSIT: {Referral.STATUS_ARRIVED, Referral.STATUS_CANCELLED},
    Referral.STATUS_ARRIVED: {Referral.STATUS_IN_PROGRESS, Referral.STATUS_COMPLETED, Referral.STATUS_CANCELLED},
    Referral.STATUS_IN_PROGRESS: {Referral.STATUS_COMPLETED, Referral.STATUS_CANCELLED},
}

STATUS_TIMESTAMPS = {
    Referral.STATUS_ACCEPTED: 'accepted_at',
    Referral.STATUS_ARRIVED: 'arrived_at',
    Referral.STATUS_COMPLETED: 'completed_at',
    Referral.STATUS_CANCELLED: 'cancelled_at',
}

PRIORITY_ORDER = {'critical': 0, 'high': 1, 'medium': 2, 'low': 3}


def risk_score(assessment: Assessment) -> int:
    if assessment.final_risk_score is not None:
        return assessment.final_risk_score
    return assessment.ml_risk_score or 0


def determine_priority(assessment: Assessment) -> str:
    score = risk_score(assessment)
    if score >= 75:
        return 'critical'
    if score >= 50:
        return 'high'
    if score >= 25:
        return 'medium'
    return 'low'


def determine_urgency(assessment: Assessment) -> str:
    score = risk_score(assessment)
    symptoms = assessment.symptoms if isinstance(assessment.symptoms, dict) else {}
    if score >= 75 or EMERGENCY_SYMPTOMS & set(symptoms):
        return 'emergency'
    if score >= 50:
        return 'urgent'
    return 'routine'


def determine_referral_type(assessment: Assessment) -> str:
    score = risk_score(assessment)
    if score >= 75:
        return 'Emergency CVD Care'
    if score >= 50:
        return 'High Risk CVD Assessment'
    return 'CVD Risk Consultation'


def determine_required_services(assessment: Assessment) -> list:
    score = risk_score(assessment)
    services = ['Cardiology Consultation']
    if score >= 50:
        services += ['ECG', 'Laboratory Tests']
    if score >= 75:
        services += ['Emergency Care', 'Cardiac Monitoring']
    return services


def find_best_facility(assessment: Assessment) -> Optional[HealthcareFacility]:
    score = risk_score(assessment)
    level = 'tertiary' if score >= 75 else 'secondary' if score >= 50 else 'primary'
    candidates = HealthcareFacility.objects.filter(is_active=True, accepts_referrals=True)
    if assessment.region:
        regional = candidates.filter(level=level, region=assessment.region).first()
        if regional:
            return regional
    return candidates.filter(level=level).first() or candidates.order_by('id').first()


def record_history(referral: Referral, *, user, action: str, previous: str = '', new: str = '',
                   notes: str = '', metadata: Optional[dict] = None) -> ReferralHistory:
    return ReferralHistory.objects.create(
        referral=referral, user=user if getattr(user, 'pk', None) else None, action=action,
        previous_status=previous or '', new_status=new or '', notes=notes or '', metadata=metadata or {},
    )


def create_referral(assessment: Assessment, *, user, data: dict, request=None) -> Referral:
    with transaction.atomic():
        target = data.get('target_facility') or find_best_facility(assessment)
        referral = Referral.objects.create(
            assessment=assessment,
            source_facility=data.get('source_facility') or getattr(user, 'facility', None),
            target_facility=target,
            referring_user=user,
            priority=data.get('priority') or determine_priority(assessment),
            urgency=data.get('urgency') or determine_urgency(assessment),
            referral_type=data.get('referral_type') or determine_referral_type(assessment),
            reason=data.get('reason', ''),
            clinical_notes=data.get('clinical_notes', ''),
            required_services=data.get('required_services') or determine_required_services(assessment),
            status=Referral.STATUS_PENDING,
        )
        if assessment.status == Assessment.STATUS_PENDING and not assessment.is_archived:
            assessment.status = Assessment.STATUS_REQUIRES_REFERRAL
            assessment.save(update_fields=['status', 'updated_at'])
        record_history(referral, user=user, action='created', new=Referral.STATUS_PENDING,
                       metadata={'assessment_id': assessment.pk, 'risk_score': risk_score(assessment)})
        log_action(user=user, action='referral.created', object_type='referral', object_id=referral.pk,
                   request=request)
    return referral


def assign_referral(referral: Referral, *, doctor, user, notes: str = '', request=None) -> Referral:
    if referral.is_terminal:
        raise Conflict(f'Referral is already {referral.status}.')
    with transaction.atomic():
        previous_doctor = referral.assigned_doctor_id
        referral.assigned_doctor = doctor
        if notes:
            referral.status_notes = notes
        referral.save(update_fields=['assigned_doctor', 'status_notes', 'updated_at'])
        record_history(referral, user=user, action='assigned', previous=referral.status, new=referral.status,
                       notes=notes, metadata={'previous_doctor_id': previous_doctor, 'doctor_id': doctor.pk})
        log_action(user=user, action='referral.assigned', object_type='referral', object_id=referral.pk,
                   detail={'doctor_id': doctor.pk}, request=request)

    notify(doctor, ReferralAssigned(referral))
    return referral


def update_status(referral: Referral, new_status: str, *, user, notes: str = '', request=None) -> Referral:
    if new_status not in TRANSITIONS.get(referral.status, set()):
        raise Conflict(f'Cannot change referral status from {referral.status} to {new_status}.')
    with transaction.atomic():
        previous = referral.status
        referral.status = new_status
        fields = ['status', 'updated_at']
        stamp = STATUS_TIMESTAMPS.get(new_status)
        if stamp:
            setattr(referral, stamp, timezone.now())
            fields.append(stamp)
        if new_status == Referral.STATUS_ACCEPTED and referral.assigned_doctor_id is None:
            referral.assigned_doctor = user
            fields.append('assigned_doctor')
        if notes:
            referral.status_notes = notes
            fields.append('status_notes')
        referral.save(update_fields=fields)
        record_history(referral, user=user, action='status_changed', previous=previous, new=new_status, notes=notes)
        log_action(user=user, action='referral.status', object_type='referral', object_id=referral.pk,
                   detail={'from': previous, 'to': new_status}, request=request)
    return referral


def order_by_priority(qs):
    """Most urgent first, newest first within a priority."""
    rank = Case(*[When(priority=p, then=Value(i)) for p, i in PRIORITY_ORDER.items()],
                default=Value(len(PRIORITY_ORDER)), output_field=IntegerField())
    return qs.annotate(priority_rank=rank).order_by('priority_rank', '-created_at', '-id')


def statistics(qs) -> dict:
    """Counts, acceptance rate and mean hours from creation to acceptance."""
    by_status = dict(qs.values_list('status').annotate(n=Count('id')).order_by())
    accepted = qs.filter(accepted_at__isnull=False).count()
    rejected = by_status.get(Referral.STATUS_REJECTED, 0)
    decided = accepted + rejected
    waits = [(accepted_at - created_at).total_seconds() / 3600
             for created_at, accepted_at in qs.filter(accepted_at__isnull=False)
             .values_list('created_at', 'accepted_at')]
    return {
        'total_referrals': sum(by_status.values()),
        'pending': by_status.get(Referral.STATUS_PENDING, 0),
        'accepted': accepted,
        'completed': by_status.get(Referral.STATUS_COMPLETED, 0),
        'rejected': rejected,
        'acceptance_rate': round(accepted / decided * 100, 1) if decided else 0,
        'avg_response_time_hours': round(sum(waits) / len(waits), 1) if waits else 0,
        'critical_pending': qs.filter(status=Referral.STATUS_PENDING, priority='critical').count(),
    }
