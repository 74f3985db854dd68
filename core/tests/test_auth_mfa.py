import re
import time

import pytest
from django.core.cache import cache
from django.urls import reverse
from rest_framework.exceptions import ValidationError

from core.models import SmsLog, TrustedDevice
from core.services import mfa

pytestmark = pytest.mark.django_db

PASSWORD = 'P@ssw0rd1'


def last_code(user) -> str:
    return re.search(r'\b(\d{6})\b', SmsLog.objects.filter(user=user).latest('id').message).group(1)


def wrong(code: str) -> str:
    return f'{(int(code) + 1) % 10 ** 6:06d}'


@pytest.fixture
def doctor(make_user):
    return make_user('doctor1', phone='+254700000003')


@pytest.fixture
def mfa_doctor(doctor):
    doctor.mfa_enabled = True
    doctor.mfa_method = 'sms'
    doctor.save()
    return doctor


def test_login_returns_jwt_and_token(api_client, doctor):
    r = api_client.post(reverse('login'), {'username': 'doctor1', 'password': PASSWORD}, format='json')
    assert r.status_code == 200
    assert r.data['jwt_access'] and r.data['jwt_refresh'] and r.data['token']
    assert r.data['user']['username'] == 'doctor1'

    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['jwt_access']}")
    assert api_client.get(reverse('me')).data['user']['id'] == doctor.pk


def test_bad_credentials_are_401(api_client, doctor):
    r = api_client.post(reverse('login'), {'username': 'doctor1', 'password': 'nope'}, format='json')
    assert r.status_code == 401
    assert r.data == {'ok': False, 'error': 'UNAUTHENTICATED', 'message': 'Invalid credentials.'}


def test_enrolment_sends_code_and_verifies(client_for, doctor):
    c = client_for(doctor)
    r = c.post(reverse('mfa-enable'), {'phone': '+254711111111'}, format='json')
    assert r.status_code == 200 and r.data['expires_in'] == 300
    doctor.refresh_from_db()
    assert doctor.phone == '+254711111111'

    r = c.post(reverse('mfa-verify'), {'code': last_code(doctor)}, format='json')
    assert r.status_code == 200
    doctor.refresh_from_db()
    assert doctor.mfa_enabled and doctor.mfa_method == 'sms'


def test_code_is_single_use(doctor):
    mfa.issue_challenge(doctor)
    code = last_code(doctor)
    mfa.verify_challenge(doctor, code)
    with pytest.raises(ValidationError) as exc:
        mfa.verify_challenge(doctor, code)
    assert 'expired' in str(exc.value.detail['code'][0])


def test_expired_code_is_rejected(monkeypatch, doctor):
    mfa.issue_challenge(doctor)
    code = last_code(doctor)
    later = time.time() + 301
    monkeypatch.setattr(mfa.time, 'time', lambda: later)
    with pytest.raises(ValidationError) as exc:
        mfa.verify_challenge(doctor, code)
    assert exc.value.detail['code'][0] == 'Verification code expired. Request a new code.'


def test_challenge_locks_after_max_attempts(settings, client_for, doctor):
    settings.MFA_MAX_ATTEMPTS = 3
    c = client_for(doctor)
    c.post(reverse('mfa-enable'), {'phone': '+254711111111'}, format='json')
    code = last_code(doctor)

    messages = [c.post(reverse('mfa-verify'), {'code': wrong(code)}, format='json').data['errors']['code'][0]
                for _ in range(3)]
    assert messages == ['Invalid verification code.', 'Invalid verification code.',
                        'Too many failed attempts. Request a new code.']

    r = c.post(reverse('mfa-verify'), {'code': code}, format='json')
    assert r.status_code == 400
    assert r.data['errors']['code'][0] == 'Verification code expired. Request a new code.'
    doctor.refresh_from_db()
    assert doctor.mfa_enabled is False


def test_new_challenge_replaces_pending_one(monkeypatch, doctor):
    codes = iter(['111111', '222222'])
    monkeypatch.setattr(mfa, 'generate_code', lambda: next(codes))
    mfa.issue_challenge(doctor)
    mfa.issue_challenge(doctor)
    with pytest.raises(ValidationError):
        mfa.verify_challenge(doctor, '111111')
    mfa.verify_challenge(doctor, '222222')


def test_login_step_up_and_trusted_device(api_client, mfa_doctor):
    r = api_client.post(reverse('login'), {'username': 'doctor1', 'password': PASSWORD}, format='json')
    assert r.status_code == 200
    assert r.data['mfa_required'] is True and r.data['code_sent'] is True
    assert 'jwt_access' not in r.data

    r = api_client.post(reverse('mfa-login'), {
        'mfa_token': r.data['mfa_token'], 'code': last_code(mfa_doctor),
        'trust_device': True, 'device_id': 'ipad-7', 'device_name': 'Ward iPad',
    }, format='json')
    assert r.status_code == 200 and r.data['jwt_access']
    assert TrustedDevice.objects.get(user=mfa_doctor, device_id='ipad-7').device_name == 'Ward iPad'

    r = api_client.post(reverse('login'), {'username': 'doctor1', 'password': PASSWORD, 'device_id': 'ipad-7'},
                        format='json')
    assert 'mfa_required' not in r.data and r.data['jwt_access']


def test_tampered_mfa_token_is_rejected(api_client, mfa_doctor):
    r = api_client.post(reverse('mfa-login'), {'mfa_token': 'forged', 'code': '123456'}, format='json')
    assert r.status_code == 401


def test_device_management(client_for, doctor):
    c = client_for(doctor)
    r = c.post(reverse('devices'), {'device_id': 'phone-1', 'device_name': 'Pixel'}, format='json')
    assert r.status_code == 201
    assert c.post(reverse('devices'), {'device_id': 'phone-1'}, format='json').status_code == 200
    assert [d['device_id'] for d in c.get(reverse('devices')).data['devices']] == ['phone-1']
    assert c.delete(reverse('device-revoke', args=['phone-1'])).status_code == 200
    assert c.delete(reverse('device-revoke', args=['phone-1'])).status_code == 404


def test_logout_blacklists_refresh_token(api_client, doctor):
    tokens = api_client.post(reverse('login'), {'username': 'doctor1', 'password': PASSWORD}, format='json').data
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['jwt_access']}")
    assert api_client.post(reverse('logout'), {'refresh': tokens['jwt_refresh']}, format='json').data['blacklisted'] == 1
    api_client.credentials()
    r = api_client.post(reverse('jwt-refresh'), {'refresh': tokens['jwt_refresh']}, format='json')
    assert r.status_code == 401


def test_wrong_guesses_are_counted_on_the_shared_counter(settings, doctor):
    settings.MFA_MAX_ATTEMPTS = 3
    mfa.issue_challenge(doctor)
    code = last_code(doctor)
    assert cache.get(mfa.attempts_key(doctor)) == 0

    # a guess racing in from another worker already bumped the counter
    cache.incr(mfa.attempts_key(doctor))
    with pytest.raises(ValidationError):
        mfa.verify_challenge(doctor, wrong(code))
    assert cache.get(mfa.attempts_key(doctor)) == 2

    with pytest.raises(ValidationError) as exc:
        mfa.verify_challenge(doctor, wrong(code))
    assert exc.value.detail['code'][0] == 'Too many failed attempts. Request a new code.'
    assert cache.get(mfa.cache_key(doctor)) is None
    assert cache.get(mfa.attempts_key(doctor)) is None


def test_missing_counter_locks_the_challenge(doctor):
    mfa.issue_challenge(doctor)
    code = last_code(doctor)
    cache.delete(mfa.attempts_key(doctor))
    with pytest.raises(ValidationError) as exc:
        mfa.verify_challenge(doctor, wrong(code))
    assert exc.value.detail['code'][0] == 'Too many failed attempts. Request a new code.'
