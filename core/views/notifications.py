"""
In-app notification inbox and per-channel preferences.
"""
from django.db import transaction
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.models import NotificationPreference
from core.notifications.service import NotificationService
from core.serializers.notifications import (
    NotificationListQuerySerializer,
    PreferenceUpdateSerializer,
    notification_dict,
)

from .common import paginate


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_notifications(request):
    q = NotificationListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = request.user.notifications.all()
    if vd.get('unread'):
        qs = qs.filter(read_at__isnull=True)
    if vd.get('type'):
        qs = qs.filter(type=vd['type'])
    items, meta, headers = paginate(qs.order_by('-created_at', '-id'), vd.get('page'), vd.get('per_page'))
    return Response({
        'ok': True,
        'data': [notification_dict(n) for n in items],
        'unread_count': NotificationService.unread_count(request.user),
        'pagination': meta,
    }, headers=headers)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def unread_count(request):
    return Response({'ok': True, 'unread_count': NotificationService.unread_count(request.user)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_read(request, pk: int):
    if not NotificationService.mark_as_read(request.user, pk):
        if not request.user.notifications.filter(pk=pk).exists():
            return Response({'ok': False, 'error': 'NOT_FOUND', 'message': 'Not found.'}, status=404)
    return Response({'ok': True})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_all_read(request):
    return Response({'ok': True, 'updated': NotificationService.mark_all_as_read(request.user)})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def preferences(request):
    if request.method == 'PUT':
        s = PreferenceUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        with transaction.atomic():
            for pref in s.validated_data['preferences']:
                NotificationPreference.objects.update_or_create(
                    user=request.user, notification_type=pref['notification_type'], channel=pref['channel'],
                    defaults={'is_enabled': pref['is_enabled']},
                )

    rows = request.user.notification_preferences.order_by('notification_type', 'channel')
    return Response({'ok': True, 'preferences': [
        {'notification_type': p.notification_type, 'channel': p.channel, 'is_enabled': p.is_enabled}
        for p in rows
    ]})
