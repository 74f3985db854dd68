import pytest
from django.urls import reverse
from rest_framework.test import APIRequestFactory

from core.throttling import AuthRateThrottle, ExportRateThrottle

pytestmark = pytest.mark.django_db

BAD_LOGIN = {'username': 'nobody', 'password': 'wrong'}


def test_auth_limit_in_prod_is_five_per_minute(settings, api_client):
    settings.ENV = 'prod'
    for _ in range(5):
        r = api_client.post(reverse('login'), BAD_LOGIN, format='json')
        assert r.status_code == 401
    r = api_client.post(reverse('login'), BAD_LOGIN, format='json')
    assert r.status_code == 429
    assert r.data['error'] == 'RATE_LIMIT_EXCEEDED'
    assert r.data['message'] == 'Too many requests. Please slow down.'
    assert isinstance(r.data['retry_after'], int) and 0 < r.data['retry_after'] <= 60
    assert r['Retry-After'] == str(r.data['retry_after'])


def test_auth_limit_outside_prod_is_higher(api_client):
    for _ in range(6):
        assert api_client.post(reverse('login'), BAD_LOGIN, format='json').status_code == 401


def test_policy_rate_follows_environment(settings):
    assert AuthRateThrottle().get_rate() == '20/min'
    assert ExportRateThrottle().get_rate() == '100/min'
    settings.ENV = 'prod'
    assert AuthRateThrottle().get_rate() == '5/min'
    assert ExportRateThrottle().get_rate() == '10/min'


def test_user_policies_key_by_user_and_ip_policies_by_address(make_user):
    user = make_user('cardio1')
    request = APIRequestFactory().get('/api/v1/assessments/export', REMOTE_ADDR='10.1.2.3')
    request.user = user
    assert ExportRateThrottle().get_cache_key(request, None) == f'throttle_export_user:{user.pk}'
    assert AuthRateThrottle().get_cache_key(request, None) == 'throttle_auth_ip:10.1.2.3'
