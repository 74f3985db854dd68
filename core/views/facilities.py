"""
Public facility finder used by the mobile app; no login required.
"""
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.models import HealthcareFacility
from core.serializers.facilities import FacilityListQuerySerializer, NearbyQuerySerializer
from core.services.facilities import facility_dict, nearby
from core.throttling import PublicRateThrottle


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([PublicRateThrottle])
def list_facilities(request):
    q = FacilityListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = HealthcareFacility.objects.filter(is_active=True)
    if vd.get('region'):
        qs = qs.filter(region=vd['region'])
    if vd.get('level'):
        qs = qs.filter(level=vd['level'])
    if vd.get('emergency'):
        qs = qs.filter(has_emergency=True)
    if vd.get('search'):
        term = vd['search']
        qs = qs.filter(Q(name__icontains=term) | Q(city__icontains=term) | Q(code__icontains=term))
    rows = [facility_dict(f) for f in qs.order_by('name')]
    return Response({'ok': True, 'count': len(rows), 'data': rows})


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([PublicRateThrottle])
def facility_detail(request, pk: int):
    facility = get_object_or_404(HealthcareFacility, pk=pk, is_active=True)
    return Response({'ok': True, 'data': facility_dict(facility)})


@api_view(['GET'])
@permission_classes([AllowAny])
@throttle_classes([PublicRateThrottle])
def nearby_facilities(request):
    q = NearbyQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    hits = nearby(vd['latitude'], vd['longitude'], radius_km=vd['radius'], limit=vd['limit'],
                  emergency_only=vd['emergency'])
    return Response({
        'ok': True,
        'count': len(hits),
        'data': [facility_dict(f, distance_km=d) for f, d in hits],
        'search_params': {'latitude': vd['latitude'], 'longitude': vd['longitude'], 'radius_km': vd['radius']},
    })
