from datetime import timedelta

import pytest
from django.urls import reverse

from core.models import Notification, Referral, ReferralHistory

pytestmark = pytest.mark.django_db


@pytest.fixture
def nurse_client(client_for, make_user):
    return client_for(make_user('nurse1', 'nurse'))


@pytest.fixture
def doctor(make_user):
    return make_user('doctor1', 'doctor', first_name='Peter', last_name='Njoroge')


def create(client, assessment, **extra):
    return client.post(reverse('referral-list'), {'assessment': assessment.pk, **extra}, format='json')


def test_create_derives_routing_from_risk(nurse_client, facility, make_assessment):
    assessment = make_assessment(final_risk_score=82, final_risk_level='high', region='North')
    r = create(nurse_client, assessment, reason='Chest pain on exertion')

    assert r.status_code == 201
    data = r.data['data']
    assert (data['priority'], data['urgency'], data['status']) == ('critical', 'emergency', 'pending')
    assert data['referral_type'] == 'Emergency CVD Care'
    assert data['target_facility_id'] == facility.pk
    assessment.refresh_from_db()
    assert assessment.status == 'requires_referral'
    assert ReferralHistory.objects.get(referral_id=data['id']).action == 'created'


def test_create_on_archived_assessment_conflicts(nurse_client, make_assessment):
    assessment = make_assessment()
    type(assessment).objects.filter(pk=assessment.pk).update(archived_at='2026-01-01T00:00:00Z')
    assert create(nurse_client, assessment).status_code == 409


def test_nurse_cannot_assign(nurse_client, doctor, make_assessment):
    referral_id = create(nurse_client, make_assessment()).data['data']['id']
    r = nurse_client.post(reverse('referral-assign', args=[referral_id]), {'doctor': doctor.pk}, format='json')
    assert r.status_code == 403
    assert r.data['required_permissions'] == ['core.change_referral']


def test_assign_notifies_doctor(client_for, nurse_client, doctor, make_assessment):
    referral_id = create(nurse_client, make_assessment()).data['data']['id']
    r = client_for(doctor).post(reverse('referral-assign', args=[referral_id]),
                                {'doctor': doctor.pk, 'notes': 'Taking this one'}, format='json')

    assert r.status_code == 200
    assert r.data['data']['assigned_doctor_id'] == doctor.pk
    note = Notification.objects.get(user=doctor)
    assert note.type == 'referral'
    assert note.title == 'New Patient Referral Assigned'


def test_status_transitions(client_for, nurse_client, doctor, make_assessment):
    referral_id = create(nurse_client, make_assessment()).data['data']['id']
    c = client_for(doctor)
    url = reverse('referral-status', args=[referral_id])

    r = c.post(url, {'status': 'completed'}, format='json')
    assert r.status_code == 409

    assert c.post(url, {'status': 'accepted'}, format='json').status_code == 200
    referral = Referral.objects.get(pk=referral_id)
    assert referral.assigned_doctor == doctor and referral.accepted_at is not None

    assert c.post(url, {'status': 'completed'}, format='json').status_code == 200
    assert c.post(url, {'status': 'cancelled'}, format='json').status_code == 409
    assert list(ReferralHistory.objects.filter(referral_id=referral_id).order_by('id')
                .values_list('new_status', flat=True)) == ['pending', 'accepted', 'completed']


def test_list_orders_by_priority(nurse_client, make_assessment):
    for score in (10, 90, 60):
        create(nurse_client, make_assessment(final_risk_score=score))
    r = nurse_client.get(reverse('referral-list'))
    assert [row['priority'] for row in r.data['data']] == ['critical', 'high', 'low']

    r = nurse_client.get(reverse('referral-list'), {'priority': 'high'})
    assert r.data['pagination']['total'] == 1


def test_patient_cannot_create_referral(client_for, make_user, make_assessment):
    patient = client_for(make_user('patient1', 'patient'))
    r = create(patient, make_assessment())
    assert r.status_code == 403
    assert r.data['required_permissions'] == ['core.add_referral']


def test_statistics_summarise_outcomes(nurse_client, make_assessment, facility):
    assessment = make_assessment()

    def referral(status, priority='medium', accepted_after=None, **extra):
        r = Referral.objects.create(assessment=assessment, status=status, priority=priority, **extra)
        if accepted_after is not None:
            r.accepted_at = r.created_at + timedelta(hours=accepted_after)
            r.save(update_fields=['accepted_at'])
        return r

    referral('pending', priority='critical', target_facility=facility)
    referral('pending')
    referral('accepted', accepted_after=2, target_facility=facility)
    referral('completed', accepted_after=4)
    referral('rejected')

    r = nurse_client.get(reverse('referral-statistics'))
    assert r.status_code == 200
    assert r.data['data'] == {
        'total_referrals': 5,
        'pending': 2,
        'accepted': 2,
        'completed': 1,
        'rejected': 1,
        'acceptance_rate': 66.7,
        'avg_response_time_hours': 3.0,
        'critical_pending': 1,
    }

    r = nurse_client.get(reverse('referral-statistics'), {'target_facility': facility.pk})
    assert (r.data['data']['total_referrals'], r.data['data']['critical_pending']) == (2, 1)
