import pytest
from django.core import mail
from django.urls import reverse

from core.models import (
    Assessment,
    AssessmentComment,
    AssessmentRiskAdjustment,
    AuditEvent,
    ClinicalValidation,
    Notification,
    NotificationPreference,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def cardiologist(make_user):
    return make_user('cardio1', 'cardiologist', first_name='Grace', last_name='Mwangi')


@pytest.fixture
def cardio_client(client_for, cardiologist):
    return client_for(cardiologist)


def mobile_payload(**overrides):
    payload = {
        'external_id': 'MOB-0001',
        'mobile_user_id': 'chw-17',
        'patient_first_name': 'Juma',
        'patient_last_name': 'Kariuki',
        'assessment_date': '2026-09-01T08:30:00Z',
        'final_risk_score': 18,
        'final_risk_level': 'HIGH',
        'vital_signs': {'systolic_bp': 165, 'diastolic_bp': 100},
    }
    payload.update(overrides)
    return payload


def test_validate_records_review_and_notifies_patient(cardio_client, cardiologist, make_user, make_assessment):
    patient = make_user('patient1', 'patient', email='amina@example.com')
    assessment = make_assessment(patient_email='amina@example.com')

    r = cardio_client.post(reverse('assessment-validate', args=[assessment.pk]), {
        'validated_risk_score': 80, 'validation_agrees_with_ml': False, 'validation_notes': 'Refer today',
    }, format='json')

    assert r.status_code == 200
    assessment.refresh_from_db()
    assert (assessment.status, assessment.final_risk_level, assessment.validated_by) == \
        ('validated', 'high', cardiologist)
    review = ClinicalValidation.objects.get(assessment=assessment)
    assert review.agreement_level == 'significant_difference'
    assert review.score_difference == 25
    assert Notification.objects.filter(user=patient, type='assessment').exists()
    assert [m.to for m in mail.outbox] == [['amina@example.com']]


def test_reject_without_owner_notification(cardio_client, make_assessment):
    assessment = make_assessment()
    r = cardio_client.post(reverse('assessment-reject', args=[assessment.pk]),
                           {'reason': 'Duplicate capture', 'notify_mobile_user': False}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'rejected'
    assert ClinicalValidation.objects.get(assessment=assessment).agreement_level == 'complete_disagreement'
    assert not Notification.objects.exists()


def test_archived_assessment_is_read_only(client_for, make_user, cardio_client, make_assessment):
    admin = make_user('admin1', 'admin')
    assessment = make_assessment()
    assert client_for(admin).post(reverse('assessment-archive', args=[assessment.pk])).status_code == 200

    r = cardio_client.post(reverse('assessment-validate', args=[assessment.pk]),
                           {'validated_risk_score': 30, 'validation_agrees_with_ml': True}, format='json')
    assert r.status_code == 409
    assert r.data['error'] == 'CONFLICT'
    assert Assessment.objects.get(pk=assessment.pk).status == 'pending'


def test_list_filters_and_paginates(cardio_client, make_assessment):
    for level in ('high', 'high', 'low'):
        make_assessment(final_risk_level=level)
    r = cardio_client.get(reverse('assessment-list'), {'risk_level': 'high', 'per_page': 1})
    assert r.status_code == 200
    assert len(r.data['data']) == 1
    assert r.data['pagination']['total'] == 2


def test_statistics(cardio_client, make_assessment):
    make_assessment(final_risk_level='high', final_risk_score=80, status='validated')
    make_assessment(final_risk_level='low', final_risk_score=20)
    data = cardio_client.get(reverse('assessment-statistics')).data['data']
    assert data['total_assessments'] == 2
    assert data['validated_assessments'] == 1
    assert data['risk_distribution'] == {'high': 1, 'moderate': 0, 'low': 1}
    assert data['average_risk_score'] == 50.0


def test_export_streams_csv(cardio_client, make_assessment):
    make_assessment(vital_signs={'systolic_bp': 150})
    r = cardio_client.get(reverse('assessment-export'))
    assert r.status_code == 200
    assert r['Content-Type'].startswith('text/csv')
    assert 'attachment; filename="assessments_export_' in r['Content-Disposition']
    lines = b''.join(r.streaming_content).decode().splitlines()
    assert lines[0].startswith('ID,External ID,Assessment Date')
    assert len(lines) == 2 and ',150,' in lines[1]


def test_export_as_json(cardio_client, make_assessment):
    make_assessment()
    r = cardio_client.get(reverse('assessment-export'), {'output': 'json'})
    assert r.data['count'] == 1
    assert r.data['data'][0]['patient_first_name'] == 'Amina'


def test_export_requires_permission(client_for, make_user):
    doctor = make_user('doctor1', 'doctor')
    r = client_for(doctor).get(reverse('assessment-export'))
    assert r.status_code == 403
    assert r.data['required_permissions'] == ['core.export_assessment']


def test_mobile_submission_and_duplicate(client_for, make_user):
    worker = client_for(make_user('chw1', 'health_worker'))
    r = worker.post(reverse('mobile-assessment'), mobile_payload(), format='json')
    assert r.status_code == 201
    stored = Assessment.objects.get(external_id='MOB-0001')
    assert (stored.status, stored.final_risk_level) == ('pending', 'high')

    r = worker.post(reverse('mobile-assessment'), mobile_payload(), format='json')
    assert r.status_code == 409


def test_mobile_submission_generates_external_id(client_for, make_user):
    worker = client_for(make_user('chw1', 'health_worker'))
    r = worker.post(reverse('mobile-assessment'), mobile_payload(external_id=''), format='json')
    assert r.status_code == 201
    assert r.data['data']['external_id'].startswith('ASM-')


def test_bulk_sync_reports_each_item(client_for, make_user):
    worker = client_for(make_user('chw1', 'health_worker'))
    r = worker.post(reverse('assessment-bulk'), {'assessments': [
        mobile_payload(external_id='MOB-A'),
        mobile_payload(external_id='MOB-A'),
        mobile_payload(external_id='MOB-B', final_risk_level='severe'),
        mobile_payload(external_id='MOB-C'),
    ]}, format='json')

    assert r.status_code == 200
    assert r.data['summary'] == {'total': 4, 'success': 2, 'failed': 2}
    assert [item['success'] for item in r.data['results']] == [True, False, False, True]
    assert 'final_risk_level' in r.data['results'][2]['errors']
    assert r.data['message'] == 'Bulk sync completed: 2 succeeded, 2 failed out of 4'


def adjust(client, assessment, score, justification='Repeat ECG shows ischaemic changes'):
    return client.post(reverse('assessment-risk-adjustments', args=[assessment.pk]),
                       {'new_risk_score': score, 'justification': justification}, format='json')


def test_large_risk_adjustment_alerts_the_patient(cardio_client, cardiologist, make_user, make_assessment):
    patient = make_user('patient1', 'patient', email='amina@example.com')
    assessment = make_assessment(patient_email='amina@example.com', final_risk_score=40,
                                 final_risk_level='moderate')

    r = adjust(cardio_client, assessment, 72)

    assert r.status_code == 200
    adjustment = r.data['data']['adjustment']
    assert (adjustment['old_risk_score'], adjustment['new_risk_score']) == (40, 72)
    assert (adjustment['old_risk_level'], adjustment['new_risk_level']) == ('moderate', 'high')
    assert adjustment['score_difference'] == 32
    assert adjustment['alert_triggered'] is True
    assert adjustment['metadata'] == {'threshold': 15}
    assessment.refresh_from_db()
    assert (assessment.final_risk_score, assessment.status, assessment.validated_by) == (72, 'validated', cardiologist)

    record = Notification.objects.get(user=patient)
    assert (record.title, record.priority, record.type) == ('Risk Score Adjusted', 'high', 'assessment')
    assert record.related_assessment_id == assessment.pk
    assert [m.to for m in mail.outbox] == [['amina@example.com']]
    assert AuditEvent.objects.filter(action='assessment.risk_adjusted', object_id=assessment.pk).exists()


def test_risk_alert_respects_channel_preferences(cardio_client, make_user, make_assessment):
    patient = make_user('patient1', 'patient', email='amina@example.com')
    NotificationPreference.objects.create(user=patient, notification_type='assessment', channel='email',
                                          is_enabled=False)
    assessment = make_assessment(patient_email='amina@example.com', final_risk_score=20)

    assert adjust(cardio_client, assessment, 60).status_code == 200
    assert Notification.objects.filter(user=patient, title='Risk Score Adjusted').count() == 1
    assert not mail.outbox


def test_small_adjustment_is_recorded_without_alert(cardio_client, make_user, make_assessment):
    patient = make_user('patient1', 'patient', email='amina@example.com')
    assessment = make_assessment(patient_email='amina@example.com')

    r = adjust(cardio_client, assessment, 62)

    assert r.status_code == 200
    assert r.data['data']['adjustment']['old_risk_score'] == 55
    assert r.data['data']['adjustment']['alert_triggered'] is False
    assert not Notification.objects.filter(user=patient).exists()


def test_unchanged_or_unjustified_adjustment_is_rejected(cardio_client, make_assessment):
    assessment = make_assessment(final_risk_score=55)
    r = adjust(cardio_client, assessment, 55)
    assert r.status_code == 400
    assert 'new_risk_score' in r.data['errors']

    r = adjust(cardio_client, assessment, 80, justification='too high')
    assert r.status_code == 400
    assert 'justification' in r.data['errors']
    assert not AssessmentRiskAdjustment.objects.exists()


def test_adjustment_history_is_newest_first(cardio_client, client_for, make_user, make_assessment):
    assessment = make_assessment()
    adjust(cardio_client, assessment, 60)
    adjust(cardio_client, assessment, 85)

    r = client_for(make_user('nurse1', 'nurse')).get(reverse('assessment-risk-adjustments', args=[assessment.pk]))
    assert r.status_code == 200
    assert [a['new_risk_score'] for a in r.data['data']] == [85, 60]
    assert r.data['data'][0]['old_risk_score'] == 60


def test_nurse_cannot_adjust_risk(client_for, make_user, make_assessment):
    r = adjust(client_for(make_user('nurse1', 'nurse')), make_assessment(), 90)
    assert r.status_code == 403
    assert r.data['required_permissions'] == ['core.validate_assessment']


def add_note(client, assessment, content, **extra):
    return client.post(reverse('assessment-notes', args=[assessment.pk]), {'content': content, **extra},
                       format='json')


def test_note_edits_become_versions_of_the_first_note(cardio_client, make_assessment):
    assessment = make_assessment()
    first = add_note(cardio_client, assessment, 'BP 160/100, start amlodipine')
    assert first.status_code == 201
    assert first.data['data']['current_version'] == 1
    root_id = first.data['data']['id']

    second = add_note(cardio_client, assessment, 'BP 160/100, start amlodipine 5mg', parent_note_id=root_id)
    third = add_note(cardio_client, assessment, 'Amlodipine 5mg daily, review in 2 weeks',
                     parent_note_id=second.data['data']['versions'][-1]['id'])

    data = third.data['data']
    assert data['id'] == root_id
    assert data['current_version'] == 3
    assert data['latest_content'] == 'Amlodipine 5mg daily, review in 2 weeks'
    assert [v['version'] for v in data['versions']] == [1, 2, 3]
    assert data['author']['name'] == 'Grace Mwangi'
    assert AssessmentComment.objects.filter(parent_id=root_id).count() == 2

    listed = cardio_client.get(reverse('assessment-notes', args=[assessment.pk])).data['data']
    assert [n['id'] for n in listed] == [root_id]


def test_shared_note_notifies_patient_in_app_only(cardio_client, make_user, make_assessment):
    patient = make_user('patient1', 'patient', email='amina@example.com')
    assessment = make_assessment(patient_email='amina@example.com')

    r = add_note(cardio_client, assessment, 'Please repeat the lipid panel', mobile_visible=True)

    assert r.data['data']['visibility'] == 'shared'
    assert r.data['data']['mobile_visible'] is True
    record = Notification.objects.get(user=patient)
    assert record.title == 'New Clinical Note Available'
    assert record.data['note_id'] == r.data['data']['id']
    assert not mail.outbox


def test_private_notes_stay_with_their_author(cardio_client, client_for, make_user, make_assessment):
    assessment = make_assessment()
    private = add_note(cardio_client, assessment, 'Suspect non-adherence', visibility='private').data['data']
    add_note(cardio_client, assessment, 'Family history of MI')

    nurse = client_for(make_user('nurse1', 'nurse'))
    listed = nurse.get(reverse('assessment-notes', args=[assessment.pk])).data['data']
    assert [n['latest_content'] for n in listed] == ['Family history of MI']
    assert add_note(nurse, assessment, 'edit', parent_note_id=private['id']).status_code == 404
    assert len(cardio_client.get(reverse('assessment-notes', args=[assessment.pk])).data['data']) == 2


def test_health_worker_cannot_read_notes(client_for, make_user, make_assessment):
    r = client_for(make_user('chw1', 'health_worker')).get(reverse('assessment-notes', args=[make_assessment().pk]))
    assert r.status_code == 403
