import json
import os

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core import mail

from clinic import settings as shipped
from core.models import EmergencyAlert, Notification, PushNotificationLog, SmsLog
from core.notifications import deliver, notify
from core.notifications.dispatcher import deliver_job
from core.notifications.drivers import MockEmailDriver
from core.notifications.events import (
    AssessmentRejected,
    AssessmentValidated,
    EmergencyAlertNotification,
    NotificationEvent,
)
from core.workers import NotificationWorker

pytestmark = pytest.mark.django_db


@pytest.fixture
def patient(make_user):
    return make_user('patient1', first_name='Amina', last_name='Otieno', phone='+254700000001')


@pytest.fixture
def high_risk(make_assessment):
    return make_assessment(final_risk_level='high', final_risk_score=22, status='validated')


@pytest.fixture
def alert(db):
    return EmergencyAlert.objects.create(title='Power outage', message='Generators running', severity='critical')


@pytest.fixture
def queued(settings):
    settings.NOTIFICATIONS = {**settings.NOTIFICATIONS, 'QUEUE_ENABLED': True, 'QUEUE_CONNECTION': 'channels'}


def receive(queue):
    return async_to_sync(get_channel_layer().receive)(queue)


def test_assessment_validated_renders_mail_and_database(patient, high_risk):
    outcomes = notify(patient, AssessmentValidated(high_risk, clinician_notes='Start statins'))

    assert set(outcomes) == {'mail', 'database'}
    assert all(r.success for r in outcomes.values())

    assert len(mail.outbox) == 1
    message = mail.outbox[0]
    assert 'Assessment Validated' in message.subject
    assert 'Risk Level: High' in message.body
    assert message.alternatives and 'text/html' == message.alternatives[0][1]

    record = Notification.objects.get(user=patient)
    assert record.type == 'assessment'
    assert record.priority == 'high'
    assert record.related_assessment_id == high_risk.pk
    assert record.data['risk_level'] == 'high'
    assert record.data['risk_score'] == 22
    assert record.data['clinician_notes'] == 'Start statins'


def test_database_payload_is_stable_across_renders(patient, high_risk):
    event = AssessmentValidated(high_risk)
    first = json.dumps(event.render('database', patient)[2])
    second = json.dumps(event.render('database', patient)[2])
    assert first == second


def test_each_declared_channel_gets_one_attempt(patient, alert):
    outcomes = notify(patient, EmergencyAlertNotification(alert))
    assert list(outcomes) == ['mail', 'database', 'sms']
    assert all(r.success for r in outcomes.values())
    assert 'URGENT' in mail.outbox[0].subject
    assert SmsLog.objects.get(user=patient).message.startswith('URGENT')


def test_mail_failure_does_not_block_database(make_user, high_risk):
    no_email = make_user('patient2', email='')
    outcomes = notify(no_email, AssessmentValidated(high_risk))
    assert outcomes['mail'].success is False
    assert outcomes['mail'].message == 'User has no email address'
    assert outcomes['database'].success is True
    assert Notification.objects.filter(user=no_email).count() == 1


def test_raising_driver_is_reported_as_failed_attempt(monkeypatch, patient, high_risk):
    def explode(self, user, subject, message, data=None):
        raise RuntimeError('smtp relay down')

    monkeypatch.setattr(MockEmailDriver, 'send', explode)
    outcomes = notify(patient, AssessmentValidated(high_risk))
    assert outcomes['mail'].success is False
    assert 'smtp relay down' in outcomes['mail'].message
    assert outcomes['database'].success is True


def test_unknown_channel_fails_without_raising(patient, high_risk):
    result = deliver(patient, AssessmentValidated(high_risk), 'fax')
    assert result.success is False
    assert result.message == 'Unknown channel: fax'


def test_unconfigured_driver_is_skipped(settings, patient, high_risk):
    settings.NOTIFICATIONS = {**settings.NOTIFICATIONS, 'EMAIL_DRIVER': 'mailgun'}
    settings.MAILGUN = {'DOMAIN': '', 'SECRET': '', 'ENDPOINT': 'api.mailgun.net'}
    result = deliver(patient, AssessmentValidated(high_risk), 'mail')
    assert (result.success, result.message, result.driver) == (False, 'Driver not configured', 'mailgun')


def test_rejected_event_lists_next_steps(patient, make_assessment):
    rejected = make_assessment(status='rejected')
    payload = AssessmentRejected(rejected, reason='Vitals incomplete').to_database(patient)
    assert payload['reason'] == 'Vitals incomplete'
    assert len(payload['next_steps']) == 3
    assert payload['action_url'].endswith(f'/assessments/{rejected.pk}')


def test_job_rebuilds_event_from_database(high_risk):
    job = AssessmentValidated(high_risk, clinician_notes='ok').to_job()
    assert job == {'event': 'AssessmentValidated', 'entity_id': high_risk.pk,
                   'annotations': {'clinician_notes': 'ok', 'action_url': ''}}
    rebuilt = NotificationEvent.from_job(job)
    assert isinstance(rebuilt, AssessmentValidated)
    assert rebuilt.assessment == high_risk and rebuilt.clinician_notes == 'ok'


def test_queued_attempts_are_delivered_by_worker(queued, patient, high_risk):
    outcomes = notify(patient, AssessmentValidated(high_risk))
    assert outcomes == {'mail': None, 'database': None}
    assert not mail.outbox

    worker = NotificationWorker()
    for _ in outcomes:
        message = receive('notifications')
        assert message['type'] == 'notification.deliver'
        worker.notification_deliver(message)

    assert len(mail.outbox) == 1
    assert Notification.objects.filter(user=patient).count() == 1


def test_emergency_alerts_use_high_priority_queue(queued, patient, alert):
    notify(patient, EmergencyAlertNotification(alert))
    channels = {receive('high-priority')['channel'] for _ in range(3)}
    assert channels == {'mail', 'database', 'sms'}


def test_job_for_deleted_entity_is_dropped(patient, high_risk):
    job = AssessmentValidated(high_risk).to_job()
    high_risk.delete()
    assert deliver_job({'user_id': patient.pk, 'channel': 'database', 'job': job}) is None
    assert not Notification.objects.exists()


@pytest.mark.skipif(bool(shipped.REDIS_URL or os.getenv('NOTIFICATION_QUEUE_CONNECTION')),
                    reason='queue connection configured by the environment')
def test_default_configuration_delivers_inline(settings, patient, high_risk):
    settings.NOTIFICATIONS = shipped.NOTIFICATIONS

    outcomes = notify(patient, AssessmentValidated(high_risk))

    assert all(r is not None and r.success for r in outcomes.values())
    assert len(mail.outbox) == 1
    assert Notification.objects.filter(user=patient).count() == 1


def test_push_carries_the_array_payload(patient, high_risk):
    event = AssessmentValidated(high_risk)
    result = deliver(patient, event, 'push')
    assert result.success is True
    log = PushNotificationLog.objects.get(user=patient)
    assert log.title == 'Assessment Validated'
    assert log.data == event.to_array(patient)
    assert log.data['risk_level'] == 'high'
