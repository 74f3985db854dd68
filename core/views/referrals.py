from __future__ import annotations

from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.models import Referral
from core.permissions import per_method, permission_required
from core.serializers.referrals import (
    ReferralAssignSerializer,
    ReferralCreateSerializer,
    ReferralListQuerySerializer,
    ReferralStatisticsQuerySerializer,
    ReferralStatusSerializer,
    referral_dict,
)
from core.services import referrals as service
from core.services.assessments import ensure_mutable

from .common import paginate


@api_view(['GET', 'POST'])
@permission_classes([per_method(GET=permission_required('core.view_referral'),
                                POST=permission_required('core.add_referral'))])
def referrals(request):
    if request.method == 'POST':
        s = ReferralCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)
        assessment = data.pop('assessment')
        ensure_mutable(assessment)
        referral = service.create_referral(assessment, user=request.user, data=data, request=request)
        return Response({'ok': True, 'message': 'Referral created successfully',
                         'data': referral_dict(referral, detail=True)}, status=status.HTTP_201_CREATED)

    q = ReferralListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = Referral.objects.all()
    if vd.get('status'):
        qs = qs.filter(status=vd['status'])
    if vd.get('priority'):
        qs = qs.filter(priority=vd['priority'])
    if vd.get('target_facility'):
        qs = qs.filter(target_facility_id=vd['target_facility'])
    if vd.get('assigned_to_me'):
        qs = qs.filter(assigned_doctor=request.user)
    items, meta, headers = paginate(service.order_by_priority(qs), vd.get('page'), vd.get('per_page'))
    return Response({'ok': True, 'data': [referral_dict(r) for r in items],
                     'pagination': meta}, headers=headers)


@api_view(['GET'])
@permission_classes([permission_required('core.view_referral')])
def referral_statistics(request):
    q = ReferralStatisticsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = Referral.objects.all()
    if vd.get('date_from'):
        qs = qs.filter(created_at__date__gte=vd['date_from'])
    if vd.get('date_to'):
        qs = qs.filter(created_at__date__lte=vd['date_to'])
    if vd.get('target_facility'):
        qs = qs.filter(target_facility_id=vd['target_facility'])
    if vd.get('source_facility'):
        qs = qs.filter(source_facility_id=vd['source_facility'])
    return Response({'ok': True, 'data': service.statistics(qs), 'timestamp': timezone.now()})


@api_view(['GET'])
@permission_classes([permission_required('core.view_referral')])
def referral_detail(request, pk: int):
    referral = get_object_or_404(Referral, pk=pk)
    return Response({'ok': True, 'data': referral_dict(referral, detail=True)})


@api_view(['POST'])
@permission_classes([permission_required('core.change_referral')])
def assign_referral(request, pk: int):
    referral = get_object_or_404(Referral, pk=pk)
    s = ReferralAssignSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    referral = service.assign_referral(referral, doctor=s.validated_data['doctor'], user=request.user,
                                       notes=s.validated_data['notes'], request=request)
    return Response({'ok': True, 'message': 'Referral assigned successfully',
                     'data': referral_dict(referral, detail=True)})


@api_view(['POST'])
@permission_classes([permission_required('core.change_referral')])
def referral_status(request, pk: int):
    referral = get_object_or_404(Referral, pk=pk)
    s = ReferralStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    referral = service.update_status(referral, s.validated_data['status'], user=request.user,
                                     notes=s.validated_data['notes'], request=request)
    return Response({'ok': True, 'data': referral_dict(referral, detail=True)})
