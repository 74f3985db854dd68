import io

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.contrib.auth.models import Group
from django.core.cache import cache
from django.core.management import call_command
from django.utils import timezone
from rest_framework.test import APIClient

from core.models import Assessment, HealthcareFacility, User


@pytest.fixture(autouse=True)
def isolated_state(settings):
    """Fresh cache (throttles, MFA challenges) and inline notification delivery."""
    cache.clear()
    async_to_sync(get_channel_layer().flush)()
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    settings.NOTIFICATIONS = {**settings.NOTIFICATIONS, 'QUEUE_CONNECTION': 'sync'}
    settings.ENV = 'dev'
    yield
    cache.clear()


@pytest.fixture
def roles(db):
    call_command('ensure_roles', stdout=io.StringIO())


@pytest.fixture
def make_user(db, roles):
    def _make(username, *role_names, **extra):
        extra.setdefault('email', f'{username}@example.com')
        user = User.objects.create_user(username=username, password='P@ssw0rd1', **extra)
        for name in role_names:
            user.groups.add(Group.objects.get(name=name))
        return user
    return _make


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def _client(user):
        c = APIClient()
        c.force_authenticate(user=user)
        return c
    return _client


@pytest.fixture
def facility(db):
    return HealthcareFacility.objects.create(
        code='DH-010', name='North District Hospital', level='secondary', region='North',
        latitude='-1.26000000', longitude='36.80000000', has_emergency=True,
    )


@pytest.fixture
def make_assessment(db):
    counter = {'n': 0}

    def _make(**fields):
        counter['n'] += 1
        fields.setdefault('external_id', f'ASM-TEST-{counter["n"]:04d}')
        fields.setdefault('patient_first_name', 'Amina')
        fields.setdefault('patient_last_name', 'Otieno')
        fields.setdefault('assessment_date', timezone.now())
        fields.setdefault('ml_risk_score', 55)
        fields.setdefault('ml_risk_level', 'moderate')
        return Assessment.objects.create(**fields)
    return _make
