from datetime import date, timedelta

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core import mail
from django.urls import reverse

from core.models import Appointment, Notification
from core.workers import NotificationWorker

pytestmark = pytest.mark.django_db


@pytest.fixture
def doctor(make_user):
    return make_user('doctor1', 'doctor')


@pytest.fixture
def patient(make_user):
    return make_user('patient1', 'patient', first_name='Amina', last_name='Otieno')


@pytest.fixture
def appointment(doctor, patient, facility):
    return Appointment.objects.create(patient=patient, doctor=doctor, facility=facility,
                                      appointment_date=date.today() + timedelta(days=7), type='follow_up')


def test_list_filters_and_paginates(client_for, doctor, patient, facility, appointment):
    Appointment.objects.create(patient=patient, appointment_date=date.today() + timedelta(days=30),
                               type='diagnostic', status='cancelled')
    c = client_for(doctor)

    r = c.get(reverse('appointment-list'))
    assert r.status_code == 200
    assert r.data['pagination']['total'] == 2
    assert r['X-Total-Count'] == '2'

    r = c.get(reverse('appointment-list'), {'facility_id': facility.pk, 'status': 'scheduled'})
    assert [a['id'] for a in r.data['data']] == [appointment.pk]

    r = c.get(reverse('appointment-list'), {'search': 'otieno', 'type': 'diagnostic'})
    assert [a['type'] for a in r.data['data']] == ['diagnostic']


def test_health_worker_cannot_list(client_for, make_user):
    r = client_for(make_user('chw1', 'health_worker')).get(reverse('appointment-list'))
    assert r.status_code == 403
    assert r.data['required_permissions'] == ['core.view_appointment']


def test_cancel_records_reason_and_tells_patient(client_for, doctor, patient, appointment):
    c = client_for(doctor)
    assert c.post(reverse('appointment-cancel', args=[appointment.pk]), {}, format='json').status_code == 400

    r = c.post(reverse('appointment-cancel', args=[appointment.pk]), {'reason': 'Clinic closed'}, format='json')
    assert r.status_code == 200
    appointment.refresh_from_db()
    assert (appointment.status, appointment.cancelled_by, appointment.cancellation_reason) == \
        ('cancelled', doctor, 'Clinic closed')
    assert appointment.cancelled_at is not None
    record = Notification.objects.get(user=patient)
    assert (record.type, record.title) == ('appointment', 'Appointment Cancelled')

    r = c.post(reverse('appointment-cancel', args=[appointment.pk]), {'reason': 'again'}, format='json')
    assert r.status_code == 409


def test_reschedule_books_a_replacement(client_for, doctor, patient, appointment):
    new_date = date.today() + timedelta(days=14)
    r = client_for(doctor).post(reverse('appointment-reschedule', args=[appointment.pk]), {
        'appointment_date': new_date.isoformat(), 'appointment_time': '10:15', 'reason': 'Doctor on leave',
    }, format='json')

    assert r.status_code == 201
    data = r.data['data']
    assert (data['status'], data['rescheduled_from'], data['appointment_date']) == \
        ('scheduled', appointment.pk, new_date)
    assert data['type'] == 'follow_up'
    appointment.refresh_from_db()
    assert appointment.status == 'rescheduled'
    assert appointment.status_notes == f"Rescheduled to appointment #{data['id']}: Doctor on leave"
    # the rescheduling doctor is not notified of their own change
    assert list(Notification.objects.values_list('user_id', 'title')) == [(patient.pk, 'Appointment Rescheduled')]


def test_reschedule_into_the_past_is_rejected(client_for, doctor, appointment):
    r = client_for(doctor).post(reverse('appointment-reschedule', args=[appointment.pk]),
                                {'appointment_date': (date.today() - timedelta(days=1)).isoformat()}, format='json')
    assert r.status_code == 400
    assert 'appointment_date' in r.data['errors']


def test_check_in_then_complete(client_for, make_user, doctor, appointment):
    nurse = make_user('nurse1', 'nurse')
    assert client_for(nurse).post(reverse('appointment-check-in', args=[appointment.pk])).status_code == 403

    c = client_for(doctor)
    r = c.post(reverse('appointment-check-in', args=[appointment.pk]))
    assert r.status_code == 200 and r.data['data']['status'] == 'checked_in'
    assert c.post(reverse('appointment-confirm', args=[appointment.pk])).status_code == 409

    r = c.post(reverse('appointment-complete', args=[appointment.pk]),
               {'visit_summary': 'BP controlled', 'next_steps': 'Review in 3 months'}, format='json')
    assert r.status_code == 200
    appointment.refresh_from_db()
    assert (appointment.status, appointment.visit_summary, appointment.next_steps) == \
        ('completed', 'BP controlled', 'Review in 3 months')
    assert appointment.checked_in_by == doctor and appointment.completed_at is not None

    assert c.post(reverse('appointment-check-in', args=[appointment.pk])).status_code == 409


def test_queued_cancellation_notice_is_sent_by_worker(settings, client_for, doctor, patient, appointment):
    settings.NOTIFICATIONS = {**settings.NOTIFICATIONS, 'QUEUE_ENABLED': True, 'QUEUE_CONNECTION': 'channels'}
    client_for(doctor).post(reverse('appointment-cancel', args=[appointment.pk]), {'reason': 'Clinic closed'},
                            format='json')
    assert Notification.objects.filter(user=patient).count() == 1
    assert not mail.outbox

    message = async_to_sync(get_channel_layer().receive)('notifications')
    assert (message['type'], message['user_id']) == ('notification.send', patient.pk)
    NotificationWorker().notification_send(message)

    assert mail.outbox[0].subject == 'Appointment Cancelled'
    assert mail.outbox[0].to == ['patient1@example.com']
