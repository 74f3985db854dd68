import pytest
from django.core import mail
from django.urls import reverse

from core.models import Appointment, EmergencyAlert, HealthcareFacility, Notification, SmsLog

pytestmark = pytest.mark.django_db


def test_emergency_alert_broadcast(client_for, make_user, facility):
    cardio = make_user('cardio1', 'cardiologist', phone='+254700000001')
    nurse = make_user('nurse1', 'nurse', phone='+254700000002', facility=facility)
    make_user('patient1', 'patient')

    r = client_for(cardio).post(reverse('alert-list'), {
        'title': 'Mass casualty', 'message': 'All staff report to ER', 'severity': 'critical',
    }, format='json')

    assert r.status_code == 201
    assert r.data['message'] == 'Emergency alert sent successfully'
    assert r.data['data']['recipients_count'] == 2
    assert Notification.objects.filter(type='alert').count() == 2
    assert SmsLog.objects.filter(user=nurse, message__startswith='URGENT').exists()
    assert len(mail.outbox) == 2

    listed = client_for(nurse).get(reverse('alert-list'))
    assert [a['title'] for a in listed.data['data']] == ['Mass casualty']


def test_facility_alert_reaches_only_that_facility(client_for, make_user, facility):
    admin = make_user('admin1', 'admin')
    make_user('nurse1', 'nurse', facility=facility)
    make_user('nurse2', 'nurse')

    r = client_for(admin).post(reverse('alert-list'), {
        'title': 'Power cut', 'message': 'Generator on', 'target_audience': 'facility',
        'target_facility': facility.pk,
    }, format='json')
    assert r.data['data']['recipients_count'] == 1


def test_nurse_cannot_broadcast(client_for, make_user):
    r = client_for(make_user('nurse1', 'nurse')).post(reverse('alert-list'), {'title': 'x', 'message': 'y'},
                                                      format='json')
    assert r.status_code == 403
    assert r.data['required_roles'] == ['admin', 'cardiologist', 'doctor']
    assert not EmergencyAlert.objects.exists()


def test_alert_requires_facility_for_facility_audience(client_for, make_user):
    r = client_for(make_user('admin1', 'admin')).post(reverse('alert-list'), {
        'title': 'x', 'message': 'y', 'target_audience': 'facility',
    }, format='json')
    assert r.status_code == 400
    assert 'target_facility' in r.data['errors']


def test_appointment_confirmation(client_for, make_user, facility):
    doctor = make_user('doctor1', 'doctor')
    patient = make_user('patient1', 'patient', phone='+254700000009')
    c = client_for(doctor)

    r = c.post(reverse('appointment-list'), {
        'patient': patient.pk, 'doctor': doctor.pk, 'facility': facility.pk,
        'appointment_date': '2026-11-02', 'appointment_time': '09:30', 'type': 'follow_up',
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['status'] == 'scheduled'

    r = c.post(reverse('appointment-confirm', args=[r.data['data']['id']]))
    assert r.status_code == 200
    assert r.data['data']['status'] == 'confirmed'
    assert Notification.objects.get(user=patient).type == 'appointment'
    assert '2026-11-02 at 09:30' in SmsLog.objects.get(user=patient).message


def test_cancelled_appointment_cannot_be_confirmed(client_for, make_user):
    doctor = make_user('doctor1', 'doctor')
    appt = Appointment.objects.create(patient=make_user('patient1', 'patient'), appointment_date='2026-11-02',
                                      status='cancelled')
    assert client_for(doctor).post(reverse('appointment-confirm', args=[appt.pk])).status_code == 409


def test_facilities_are_public(api_client, facility):
    HealthcareFacility.objects.create(code='HC-001', name='Kibera Health Centre', level='primary',
                                      region='Nairobi', has_emergency=False)
    r = api_client.get(reverse('facility-list'), {'emergency': 'true'})
    assert r.status_code == 200
    assert [f['code'] for f in r.data['data']] == ['DH-010']

    r = api_client.get(reverse('facility-detail', args=[facility.pk]))
    assert r.data['data']['emergency_services'] is True


def test_nearby_facilities_sorted_by_distance(api_client, facility):
    HealthcareFacility.objects.create(code='RH-002', name='Rift Valley Referral', level='tertiary',
                                      latitude='-0.30000000', longitude='36.07000000')
    r = api_client.get(reverse('facility-nearby'), {'latitude': -1.2864, 'longitude': 36.8172, 'radius': 20})

    assert r.status_code == 200
    assert [f['code'] for f in r.data['data']] == ['DH-010']
    assert 0 < r.data['data'][0]['distance_km'] < 5
    assert r.data['search_params']['radius_km'] == 20


def test_nearby_requires_coordinates(api_client):
    r = api_client.get(reverse('facility-nearby'), {'latitude': 120})
    assert r.status_code == 400
    assert set(r.data['errors']) == {'latitude', 'longitude'}
