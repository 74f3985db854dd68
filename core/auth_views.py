"""
Authentication views: login (with SMS step-up), JWT refresh and logout,
MFA enrolment and trusted devices.

A user with MFA enabled who logs in from an untrusted device gets a
short-lived signed ``mfa_token`` instead of JWTs and must post it back
with the SMS code to ``auth/mfa/login``.
"""
from __future__ import annotations

from django.conf import settings
from django.contrib.auth import authenticate
from django.core import signing
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from core.models import TrustedDevice, User
from core.serializers.auth import (
    LoginSerializer,
    MfaEnableSerializer,
    MfaLoginSerializer,
    MfaVerifySerializer,
    TrustedDeviceSerializer,
)
from core.services import devices, mfa
from core.services.audit import client_ip, log_action
from core.throttling import AuthRateThrottle

MFA_TOKEN_SALT = 'core.auth.mfa-login'


def user_payload(user: User) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'name': user.full_name,
        'email': user.email,
        'phone': user.phone,
        'facility_id': user.facility_id,
        'roles': sorted(user.groups.values_list('name', flat=True)),
        'mfa_enabled': user.mfa_enabled,
    }


def issue_tokens(user: User) -> dict:
    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return {
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'user': user_payload(user),
    }


# ---------------------------------------------------------------------
# Username/password login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    user = authenticate(request, username=vd['username'], password=vd['password'])
    if not user:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': vd['username']}, request=request)
        raise AuthenticationFailed('Invalid credentials.')

    if user.mfa_enabled and not devices.is_trusted(user, vd.get('device_id', '')):
        result = mfa.issue_challenge(user)
        log_action(user=user, action='login', object_type='user', object_id=user.id,
                   detail={'result': 'mfa_required', 'sent': result.success}, request=request)
        return Response({
            'ok': True,
            'mfa_required': True,
            'mfa_token': signing.dumps({'uid': user.pk}, salt=MFA_TOKEN_SALT),
            'code_sent': result.success,
        })

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok'}, request=request)
    if vd.get('device_id') and devices.is_trusted(user, vd['device_id']):
        # refresh last_login_at / ip for the known device
        devices.trust_device(user, device_id=vd['device_id'], request=request)
    return Response(issue_tokens(user))


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def mfa_login_view(request):
    s = MfaLoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    try:
        claims = signing.loads(vd['mfa_token'], salt=MFA_TOKEN_SALT, max_age=settings.MFA_CODE_TTL_SECONDS)
    except signing.BadSignature:
        raise AuthenticationFailed('MFA session expired. Log in again.')
    user = User.objects.filter(pk=claims.get('uid'), is_active=True).first()
    if user is None:
        raise AuthenticationFailed('MFA session expired. Log in again.')

    mfa.verify_challenge(user, vd['code'])
    if vd.get('trust_device'):
        devices.trust_device(user, device_id=vd['device_id'], device_name=vd.get('device_name', ''),
                             request=request)
    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'mfa': True}, request=request)
    return Response(issue_tokens(user))


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    s = TokenRefreshSerializer(data=request.data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise AuthenticationFailed(str(e))
    data = dict(s.validated_data)
    data['jwt_access'] = data.pop('access')
    if 'refresh' in data:
        data['jwt_refresh'] = data.pop('refresh')
    return Response({'ok': True, **data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or all of the user's refresh tokens."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError as e:
            raise ValidationError({'refresh': [str(e)]})
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               request=request)
    return Response({'ok': True, 'blacklisted': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'ok': True, 'user': user_payload(request.user)})


# ---------------------------------------------------------------------
# MFA enrolment
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AuthRateThrottle])
def mfa_enable_view(request):
    s = MfaEnableSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    result = mfa.start_enrollment(request.user, s.validated_data['phone'], request=request)
    if not result.success:
        return Response({'ok': False, 'error': 'MFA_CODE_NOT_SENT', 'message': result.message},
                        status=status.HTTP_502_BAD_GATEWAY)
    return Response({'ok': True, 'message': 'Verification code sent.',
                     'expires_in': settings.MFA_CODE_TTL_SECONDS})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AuthRateThrottle])
def mfa_verify_view(request):
    s = MfaVerifySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    mfa.complete_enrollment(request.user, s.validated_data['code'], request=request)
    return Response({'ok': True, 'mfa_enabled': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mfa_disable_view(request):
    mfa.disable(request.user, request=request)
    return Response({'ok': True, 'mfa_enabled': False})


# ---------------------------------------------------------------------
# Trusted devices
# ---------------------------------------------------------------------
def device_dict(d: TrustedDevice) -> dict:
    return {
        'device_id': d.device_id,
        'device_name': d.device_name,
        'ip_address': d.ip_address,
        'user_agent': d.user_agent,
        'last_login_at': d.last_login_at,
        'created_at': d.created_at,
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def devices_view(request):
    if request.method == 'GET':
        rows = request.user.trusted_devices.order_by('-last_login_at', '-id')
        return Response({'ok': True, 'devices': [device_dict(d) for d in rows]})

    s = TrustedDeviceSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    device, created = devices.trust_device(request.user, device_id=s.validated_data['device_id'],
                                           device_name=s.validated_data.get('device_name', ''), request=request)
    log_action(user=request.user, action='device.trusted', object_type='trusted_device', object_id=device.pk,
               detail={'ip': client_ip(request), 'created': created}, request=request)
    return Response({'ok': True, 'device': device_dict(device)},
                    status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def device_revoke_view(request, device_id: str):
    if not devices.revoke(request.user, device_id):
        return Response({'ok': False, 'error': 'NOT_FOUND', 'message': 'Not found.'}, status=404)
    log_action(user=request.user, action='device.revoked', object_type='trusted_device',
               detail={'device_id': device_id}, request=request)
    return Response({'ok': True})
