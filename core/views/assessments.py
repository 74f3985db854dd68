"""
Assessment endpoints.

Clinician-facing list/detail/validate/reject/export, risk score
adjustments and clinical notes, plus the two intake endpoints used by
the mobile app (single upload and offline bulk sync).
"""
from __future__ import annotations

import csv

from django.http import StreamingHttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.models import Assessment
from core.permissions import per_method, permission_required
from core.serializers.assessments import (
    AssessmentListQuerySerializer,
    BulkAssessmentSerializer,
    ClinicalNoteSerializer,
    MobileAssessmentSerializer,
    RejectAssessmentSerializer,
    RiskAdjustmentSerializer,
    ValidateAssessmentSerializer,
    adjustment_dict,
    assessment_dict,
    note_dict,
)
from core.services import assessments as service
from core.throttling import BulkRateThrottle, ExportRateThrottle, MobileRateThrottle

from .common import paginate


class Echo:
    """File-like object whose write() returns the line, for streamed CSV."""

    def write(self, value):
        return value


@api_view(['GET'])
@permission_classes([permission_required('core.view_assessment')])
def list_assessments(request):
    q = AssessmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = service.filter_assessments(Assessment.objects.all(), q.validated_data) \
        .order_by('-assessment_date', '-id')
    items, meta, headers = paginate(qs, q.validated_data.get('page'), q.validated_data.get('per_page'))
    return Response({'ok': True, 'data': [assessment_dict(a) for a in items], 'pagination': meta},
                    headers=headers)


@api_view(['GET'])
@permission_classes([permission_required('core.view_assessment')])
def assessment_detail(request, pk: int):
    assessment = get_object_or_404(Assessment, pk=pk)
    return Response({'ok': True, 'data': assessment_dict(assessment, detail=True)})


@api_view(['GET'])
@permission_classes([permission_required('core.view_assessment')])
def assessment_statistics(request):
    q = AssessmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = service.filter_assessments(Assessment.objects.all(), q.validated_data)
    return Response({'ok': True, 'data': service.statistics(qs)})


@api_view(['POST'])
@permission_classes([permission_required('core.validate_assessment')])
def validate_assessment(request, pk: int):
    assessment = get_object_or_404(Assessment, pk=pk)
    s = ValidateAssessmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    assessment = service.validate_assessment(
        assessment, clinician=request.user, score=vd['validated_risk_score'],
        agrees_with_ml=vd['validation_agrees_with_ml'], notes=vd['validation_notes'], request=request,
    )
    return Response({'ok': True, 'message': 'Assessment validated successfully',
                     'data': assessment_dict(assessment, detail=True)})


@api_view(['POST'])
@permission_classes([permission_required('core.validate_assessment')])
def reject_assessment(request, pk: int):
    assessment = get_object_or_404(Assessment, pk=pk)
    s = RejectAssessmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    assessment = service.reject_assessment(
        assessment, clinician=request.user, reason=s.validated_data['reason'],
        notify_owner=s.validated_data['notify_mobile_user'], request=request,
    )
    return Response({'ok': True, 'message': 'Assessment rejected successfully',
                     'data': assessment_dict(assessment, detail=True)})


@api_view(['POST'])
@permission_classes([permission_required('core.change_assessment')])
def archive_assessment(request, pk: int):
    assessment = get_object_or_404(Assessment, pk=pk)
    assessment = service.archive_assessment(assessment, user=request.user, request=request)
    return Response({'ok': True, 'data': assessment_dict(assessment)})


@api_view(['GET', 'POST'])
@permission_classes([per_method(GET=permission_required('core.view_assessment'),
                                POST=permission_required('core.validate_assessment'))])
def risk_adjustments(request, pk: int):
    assessment = get_object_or_404(Assessment, pk=pk)
    if request.method == 'POST':
        s = RiskAdjustmentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        adjustment = service.adjust_risk_score(
            assessment, clinician=request.user, score=s.validated_data['new_risk_score'],
            justification=s.validated_data['justification'], request=request,
        )
        return Response({
            'ok': True,
            'message': 'Risk score adjusted successfully',
            'data': {'assessment': assessment_dict(assessment, detail=True),
                     'adjustment': adjustment_dict(adjustment)},
        })

    return Response({'ok': True, 'data': [adjustment_dict(a) for a in assessment.risk_adjustments.all()]})


@api_view(['GET', 'POST'])
@permission_classes([per_method(GET=permission_required('core.view_assessmentcomment'),
                                POST=permission_required('core.add_assessmentcomment'))])
def clinical_notes(request, pk: int):
    assessment = get_object_or_404(Assessment, pk=pk)
    if request.method == 'POST':
        s = ClinicalNoteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        root = service.store_clinical_note(assessment, author=request.user, request=request, **s.validated_data)
        return Response({'ok': True, 'message': 'Clinical note saved',
                         'data': note_dict(root, service.note_versions(root))},
                        status=status.HTTP_201_CREATED)

    notes = service.clinical_notes(assessment, request.user)
    return Response({'ok': True, 'data': [note_dict(n, service.note_versions(n)) for n in notes]})


@api_view(['GET'])
@permission_classes([permission_required('core.export_assessment')])
@throttle_classes([ExportRateThrottle])
def export_assessments(request):
    q = AssessmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = service.filter_assessments(Assessment.objects.all(), q.validated_data)

    if request.query_params.get('output') == 'json':
        rows = [assessment_dict(a, detail=True) for a in qs.order_by('-assessment_date', '-id')]
        return Response({'ok': True, 'count': len(rows), 'data': rows, 'exported_at': timezone.now()})

    writer = csv.writer(Echo())
    filename = f"assessments_export_{timezone.now():%Y-%m-%d_%H%M%S}.csv"
    response = StreamingHttpResponse((writer.writerow(row) for row in service.export_rows(qs)),
                                     content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([MobileRateThrottle])
def mobile_submit_assessment(request):
    s = MobileAssessmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    assessment = service.create_from_mobile(s.validated_data)
    return Response({
        'ok': True,
        'message': 'Assessment saved successfully',
        'data': {'id': assessment.pk, 'external_id': assessment.external_id},
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([BulkRateThrottle])
def bulk_sync_assessments(request):
    s = BulkAssessmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    outcome = service.bulk_sync(s.validated_data['assessments'], MobileAssessmentSerializer)
    summary = outcome['summary']
    return Response({
        'ok': True,
        'message': f"Bulk sync completed: {summary['success']} succeeded, "
                   f"{summary['failed']} failed out of {summary['total']}",
        **outcome,
    })
