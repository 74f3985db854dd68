from rest_framework import serializers


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField()
    device_id = serializers.CharField(max_length=128, required=False, allow_blank=True)

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Username is required')
        return v

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v


class MfaEnableSerializer(serializers.Serializer):
    phone = serializers.RegexField(r'^\+?[0-9]{7,15}$', max_length=32)


class MfaVerifySerializer(serializers.Serializer):
    code = serializers.RegexField(r'^[0-9]{6}$')


class MfaLoginSerializer(serializers.Serializer):
    mfa_token = serializers.CharField()
    code = serializers.RegexField(r'^[0-9]{6}$')
    trust_device = serializers.BooleanField(required=False, default=False)
    device_id = serializers.CharField(max_length=128, required=False, allow_blank=True)
    device_name = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs.get('trust_device') and not attrs.get('device_id'):
            raise serializers.ValidationError({'device_id': ['Required to trust this device']})
        return attrs


class TrustedDeviceSerializer(serializers.Serializer):
    device_id = serializers.CharField(max_length=128)
    device_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
