"""Patient views, derived from assessments."""
from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.models import Assessment
from core.permissions import permission_required
from core.serializers.assessments import PatientListQuerySerializer, patient_dict
from core.services import patients as service

from .common import paginate


@api_view(['GET'])
@permission_classes([permission_required('core.view_assessment')])
def list_patients(request):
    q = PatientListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    patients = service.list_patients(q.validated_data)
    items, meta, headers = paginate(patients, q.validated_data.get('page'), q.validated_data.get('per_page'))
    return Response({'ok': True, 'data': [patient_dict(p) for p in items], 'pagination': meta}, headers=headers)


@api_view(['GET'])
@permission_classes([permission_required('core.view_assessment')])
def patient_statistics(request):
    return Response({'ok': True, 'data': service.statistics()})


@api_view(['GET'])
@permission_classes([permission_required('core.view_assessment')])
def patient_detail(request, pk: int):
    anchor = get_object_or_404(Assessment, pk=pk)
    return Response({'ok': True, 'data': patient_dict(service.get_patient(anchor))})
