from datetime import date, timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

pytestmark = pytest.mark.django_db


@pytest.fixture
def nurse_client(client_for, make_user):
    return client_for(make_user('nurse1', 'nurse'))


@pytest.fixture
def records(make_assessment):
    now = timezone.now()
    amina = dict(patient_date_of_birth=date(1961, 4, 2), patient_sex='female')
    first = make_assessment(**amina, assessment_date=now - timedelta(days=120), final_risk_level='moderate')
    make_assessment(**amina, assessment_date=now - timedelta(days=40), final_risk_level='moderate')
    latest = make_assessment(**amina, assessment_date=now - timedelta(days=2), final_risk_level='high',
                             final_risk_score=81)
    juma = make_assessment(patient_first_name='Juma', patient_last_name='Kariuki', patient_sex='male',
                           assessment_date=now - timedelta(days=60), final_risk_level='low')
    return {'first': first, 'latest': latest, 'juma': juma}


def test_patients_are_grouped_from_assessments(nurse_client, records):
    r = nurse_client.get(reverse('patient-list'))

    assert r.status_code == 200
    assert r.data['pagination']['total'] == 2
    amina, juma = r.data['data']
    assert amina['full_name'] == 'Amina Otieno'
    assert amina['id'] == records['first'].pk
    assert amina['total_assessments'] == 3
    assert (amina['latest_risk_level'], amina['latest_risk_score']) == ('high', 81)
    assert amina['status'] == 'Active'
    assert (juma['id'], juma['status'], juma['total_assessments']) == (records['juma'].pk, 'Follow-up', 1)


def test_patient_filters_use_latest_risk_level(nurse_client, records):
    r = nurse_client.get(reverse('patient-list'), {'risk_level': 'moderate'})
    assert r.data['data'] == []

    r = nurse_client.get(reverse('patient-list'), {'risk_level': 'high'})
    assert [p['full_name'] for p in r.data['data']] == ['Amina Otieno']

    r = nurse_client.get(reverse('patient-list'), {'search': 'kari', 'sex': 'MALE'})
    assert [p['full_name'] for p in r.data['data']] == ['Juma Kariuki']


def test_patient_statistics(nurse_client, records, make_assessment):
    make_assessment(patient_first_name='Wanjiru', assessment_date=timezone.now() - timedelta(days=200))
    r = nurse_client.get(reverse('patient-statistics'))
    assert r.data['data'] == {
        'total_patients': 3,
        'active_patients': 1,
        'follow_up_patients': 1,
        'discharged_patients': 1,
        'high_risk_patients': 1,
    }


def test_patient_detail_from_any_of_their_assessments(nurse_client, records):
    r = nurse_client.get(reverse('patient-detail', args=[records['latest'].pk]))

    assert r.status_code == 200
    data = r.data['data']
    assert data['id'] == records['first'].pk
    assert data['total_assessments'] == 3
    assert data['latest_assessment']['id'] == records['latest'].pk
    assert [a['id'] for a in data['assessments']][0] == records['latest'].pk
    assert data['date_of_birth'] == date(1961, 4, 2)


def test_patient_without_date_of_birth(nurse_client, make_assessment):
    one = make_assessment(patient_first_name='Otieno', patient_last_name='Ouma')
    make_assessment(patient_first_name='Otieno', patient_last_name='Ouma')
    r = nurse_client.get(reverse('patient-detail', args=[one.pk]))
    assert r.data['data']['total_assessments'] == 2


def test_patients_require_assessment_access(client_for, make_user):
    r = client_for(make_user('patient1', 'patient')).get(reverse('patient-list'))
    assert r.status_code == 403
    assert r.data['required_permissions'] == ['core.view_assessment']
