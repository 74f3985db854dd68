"""
Patients as seen through their assessments.

There is no patient table: a patient is the set of assessments sharing
first name, last name, date of birth and sex.  The patient id is the
smallest assessment id in that set, so it stays stable as new
assessments arrive.
"""
from __future__ import annotations

from datetime import timedelta

from django.db.models import F, Q
from django.utils import timezone

from core.models import Assessment

IDENTITY_FIELDS = ('patient_first_name', 'patient_last_name', 'patient_date_of_birth', 'patient_sex')

# undated assessments sort after dated ones
NEWEST_FIRST = (F('assessment_date').desc(nulls_last=True), '-id')

ACTIVE_DAYS = 30
FOLLOW_UP_DAYS = 90


def identity(assessment: Assessment) -> tuple:
    return tuple(getattr(assessment, f) for f in IDENTITY_FIELDS)


def care_status(last_seen, now=None) -> str:
    if last_seen is None:
        return 'Discharged'
    age = (now or timezone.now()) - last_seen
    if age <= timedelta(days=ACTIVE_DAYS):
        return 'Active'
    if age <= timedelta(days=FOLLOW_UP_DAYS):
        return 'Follow-up'
    return 'Discharged'


def summarize(qs) -> list[dict]:
    """One summary per patient, most recently assessed first."""
    patients: dict[tuple, dict] = {}
    rows = qs.order_by(*NEWEST_FIRST).values(
        'id', *IDENTITY_FIELDS, 'patient_email', 'patient_phone', 'region',
        'final_risk_level', 'final_risk_score', 'assessment_date', 'created_at',
    )
    now = timezone.now()
    for row in rows.iterator():
        key = tuple(row[f] for f in IDENTITY_FIELDS)
        patient = patients.get(key)
        if patient is None:
            # first row seen is the latest assessment
            last_seen = row['assessment_date'] or row['created_at']
            patients[key] = {
                'id': row['id'],
                'first_name': row['patient_first_name'],
                'last_name': row['patient_last_name'],
                'full_name': f"{row['patient_first_name']} {row['patient_last_name']}".strip(),
                'date_of_birth': row['patient_date_of_birth'],
                'sex': row['patient_sex'],
                'email': row['patient_email'],
                'phone': row['patient_phone'],
                'region': row['region'],
                'last_assessment_date': last_seen,
                'latest_risk_level': row['final_risk_level'],
                'latest_risk_score': row['final_risk_score'],
                'total_assessments': 1,
                'status': care_status(last_seen, now),
            }
            continue
        patient['total_assessments'] += 1
        patient['id'] = min(patient['id'], row['id'])
    return list(patients.values())


def list_patients(params: dict) -> list[dict]:
    qs = Assessment.objects.all()
    if params.get('search'):
        term = params['search']
        qs = qs.filter(Q(patient_first_name__icontains=term) | Q(patient_last_name__icontains=term))
    if params.get('sex'):
        qs = qs.filter(patient_sex__iexact=params['sex'])
    patients = summarize(qs)
    if params.get('risk_level'):
        patients = [p for p in patients if p['latest_risk_level'] == params['risk_level']]
    return patients


def statistics() -> dict:
    patients = summarize(Assessment.objects.all())
    by_status = {'Active': 0, 'Follow-up': 0, 'Discharged': 0}
    for p in patients:
        by_status[p['status']] += 1
    return {
        'total_patients': len(patients),
        'active_patients': by_status['Active'],
        'follow_up_patients': by_status['Follow-up'],
        'discharged_patients': by_status['Discharged'],
        'high_risk_patients': sum(1 for p in patients if p['latest_risk_level'] == 'high'),
    }


def patient_assessments(anchor: Assessment):
    """Every assessment of the patient ``anchor`` belongs to, newest first."""
    lookup = {}
    for field, value in zip(IDENTITY_FIELDS, identity(anchor)):
        lookup[f'{field}__isnull' if value is None else field] = True if value is None else value
    return Assessment.objects.filter(**lookup).order_by(*NEWEST_FIRST)


def get_patient(anchor: Assessment) -> dict:
    assessments = list(patient_assessments(anchor))
    latest = assessments[0]
    return {
        'id': min(a.pk for a in assessments),
        'first_name': anchor.patient_first_name,
        'last_name': anchor.patient_last_name,
        'full_name': anchor.patient_full_name,
        'date_of_birth': anchor.patient_date_of_birth,
        'sex': anchor.patient_sex,
        'email': latest.patient_email,
        'phone': latest.patient_phone,
        'region': latest.region,
        'status': care_status(latest.assessment_date or latest.created_at),
        'total_assessments': len(assessments),
        'latest_assessment': latest,
        'assessments': assessments,
    }
