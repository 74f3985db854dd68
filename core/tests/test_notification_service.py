import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.urls import reverse

from core.models import Notification, NotificationPreference
from core.notifications.service import NotificationService, normalize_type

pytestmark = pytest.mark.django_db


@pytest.fixture
def user(make_user):
    return make_user('nurse1', phone='+254700000002')


def test_send_writes_record_then_other_channels(user, mailoutbox):
    outcome = NotificationService().send(user, 'referral', 'New referral', 'Referral #4 assigned',
                                         channels=('database', 'email', 'sms'), data={'referral_id': 4})
    record = Notification.objects.get(pk=outcome['notification_id'])
    assert record.type == 'referral' and record.data == {'referral_id': 4}
    assert set(outcome['results']) == {'database', 'email', 'sms'}
    assert all(r['success'] for r in outcome['results'].values())
    assert mailoutbox[0].subject == 'New referral'


def test_preferences_filter_channels_but_never_the_record(user, mailoutbox):
    NotificationPreference.objects.create(user=user, notification_type='assessment', channel='email',
                                          is_enabled=False)
    NotificationPreference.objects.create(user=user, notification_type='assessment', channel='sms',
                                          is_enabled=True)
    outcome = NotificationService().send(user, 'assessment', 'Validated', 'Done', channels=('email', 'sms'))
    assert set(outcome['results']) == {'database', 'sms'}
    assert not mailoutbox


def test_unknown_types_are_stored_as_system():
    assert normalize_type('emergency') == 'alert'
    assert normalize_type('billing') == 'system'
    assert normalize_type('reminder') == 'reminder'


def test_high_priority_sends_are_queued_on_high_priority_queue(settings, user):
    settings.NOTIFICATIONS = {**settings.NOTIFICATIONS, 'QUEUE_ENABLED': True, 'QUEUE_CONNECTION': 'channels'}
    outcome = NotificationService().send(user, 'alert', 'Outage', 'Ward 3', channels=('email',), priority='critical')
    assert outcome['results']['email']['message'] == 'Queued'
    message = async_to_sync(get_channel_layer().receive)('high-priority')
    assert (message['type'], message['channel'], message['subject']) == ('notification.send', 'email', 'Outage')


def test_send_bulk_counts_missing_users(user, make_user):
    other = make_user('nurse2')
    summary = NotificationService().send_bulk([user.pk, other.pk, 999999], 'system', 'Hello', 'Maintenance')
    assert (summary['total'], summary['sent'], summary['failed']) == (3, 2, 1)
    assert summary['results'][999999] == {'success': False, 'message': 'User not found'}


def test_read_state(user):
    service = NotificationService()
    first = service.send(user, 'system', 'One', '')['notification_id']
    service.send(user, 'system', 'Two', '')
    assert service.unread_count(user) == 2
    assert service.mark_as_read(user, first) is True
    assert service.mark_as_read(user, first) is False
    assert service.mark_all_as_read(user) == 1
    assert service.unread_count(user) == 0


def test_inbox_endpoints(user, client_for):
    NotificationService().send(user, 'system', 'Welcome', 'Hi')
    c = client_for(user)
    r = c.get(reverse('notification-list'), {'unread': 'true'})
    assert r.status_code == 200 and r.data['unread_count'] == 1
    assert r['X-Total-Count'] == '1'
    pk = r.data['data'][0]['id']
    assert c.post(reverse('notification-read', args=[pk])).status_code == 200
    assert c.get(reverse('notification-unread-count')).data['unread_count'] == 0
    assert c.post(reverse('notification-read', args=[pk + 1000])).status_code == 404


def test_preference_endpoint_upserts(user, client_for):
    c = client_for(user)
    body = {'preferences': [{'notification_type': 'alert', 'channel': 'sms', 'is_enabled': False}]}
    assert c.put(reverse('notification-preferences'), body, format='json').status_code == 200
    body['preferences'][0]['is_enabled'] = True
    r = c.put(reverse('notification-preferences'), body, format='json')
    assert r.data['preferences'] == [{'notification_type': 'alert', 'channel': 'sms', 'is_enabled': True}]
    assert NotificationPreference.objects.filter(user=user).count() == 1
