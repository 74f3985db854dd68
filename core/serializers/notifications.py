from rest_framework import serializers

from core.models import Notification
from core.notifications.registry import available_channels

TYPES = [c for c, _ in Notification.TYPE_CHOICES]


class NotificationListQuerySerializer(serializers.Serializer):
    unread = serializers.BooleanField(required=False, default=False)
    type = serializers.ChoiceField(choices=TYPES, required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    per_page = serializers.IntegerField(min_value=1, max_value=100, required=False)


class PreferenceSerializer(serializers.Serializer):
    notification_type = serializers.ChoiceField(choices=TYPES)
    channel = serializers.ChoiceField(choices=available_channels())
    is_enabled = serializers.BooleanField()


class PreferenceUpdateSerializer(serializers.Serializer):
    preferences = PreferenceSerializer(many=True)


def notification_dict(n: Notification) -> dict:
    return {
        'id': n.id,
        'type': n.type,
        'title': n.title,
        'body': n.body,
        'priority': n.priority,
        'data': n.data,
        'action_url': n.action_url,
        'read_at': n.read_at,
        'created_at': n.created_at,
    }
