import pytest
from django.urls import reverse

from core.roles import ADMIN, CARDIOLOGIST, NURSE

pytestmark = pytest.mark.django_db


class EveryoneIsAdmin:
    def grants_of(self, user):
        return {'admin'}

    def has_any_of(self, user, required):
        return 'admin' in set(required)


def test_anonymous_request_gets_401(api_client):
    r = api_client.get(reverse('assessment-list'))
    assert r.status_code == 401
    assert r.data == {'ok': False, 'error': 'UNAUTHENTICATED', 'message': 'Unauthenticated.'}


def test_role_gate_reports_required_and_actual_roles(make_user, client_for):
    nurse = make_user('nurse1', NURSE)
    r = client_for(nurse).post(reverse('alert-list'), {'title': 'Outage', 'message': 'Ward 3'}, format='json')
    assert r.status_code == 403
    assert r.data['error'] == 'FORBIDDEN'
    assert r.data['message'] == 'Forbidden. You do not have the required role to access this resource.'
    assert r.data['required_roles'] == ['admin', 'cardiologist', 'doctor']
    assert r.data['your_roles'] == ['nurse']


def test_permission_gate_reports_required_and_actual_permissions(make_user, client_for, make_assessment):
    nurse = make_user('nurse1', NURSE)
    a = make_assessment()
    r = client_for(nurse).post(reverse('assessment-validate', args=[a.pk]),
                               {'validated_risk_score': 80, 'validation_agrees_with_ml': True}, format='json')
    assert r.status_code == 403
    assert r.data['message'] == 'Forbidden. You do not have the required permission to access this resource.'
    assert r.data['required_permissions'] == ['core.validate_assessment']
    assert 'core.view_assessment' in r.data['your_permissions']
    assert 'core.validate_assessment' not in r.data['your_permissions']


def test_any_of_the_required_roles_is_enough(make_user, client_for, facility):
    cardiologist = make_user('cardio1', CARDIOLOGIST)
    r = client_for(cardiologist).post(reverse('alert-list'), {'title': 'Outage', 'message': 'Ward 3'},
                                      format='json')
    assert r.status_code == 201


def test_user_without_any_role_is_forbidden_not_unauthenticated(make_user, client_for):
    user = make_user('plain')
    r = client_for(user).get(reverse('referral-list'))
    assert r.status_code == 403
    assert r.data['your_permissions'] == []


def test_role_lookup_is_injected_from_settings(settings, make_user, client_for):
    settings.ACCESS_CONTROL = {**settings.ACCESS_CONTROL,
                               'ROLE_LOOKUP': 'core.tests.test_access_control.EveryoneIsAdmin'}
    user = make_user('anyone')
    r = client_for(user).post(reverse('alert-list'), {'title': 'Drill', 'message': 'Fire drill at 10'},
                              format='json')
    assert r.status_code == 201


def test_admin_can_read_referrals(make_user, client_for):
    admin = make_user('admin1', ADMIN)
    r = client_for(admin).get(reverse('referral-list'))
    assert r.status_code == 200
    assert r.data['ok'] is True
