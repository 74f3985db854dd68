from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.models import Appointment
from core.permissions import per_method, permission_required
from core.serializers.appointments import (
    AppointmentCancelSerializer,
    AppointmentCompleteSerializer,
    AppointmentCreateSerializer,
    AppointmentListQuerySerializer,
    AppointmentRescheduleSerializer,
    appointment_dict,
)
from core.services import appointments as service

from .common import paginate


def load(pk: int) -> Appointment:
    return get_object_or_404(Appointment.objects.select_related('patient', 'doctor', 'facility'), pk=pk)


@api_view(['GET', 'POST'])
@permission_classes([per_method(GET=permission_required('core.view_appointment'),
                                POST=permission_required('core.add_appointment'))])
def appointments(request):
    if request.method == 'POST':
        s = AppointmentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        appointment = service.create_appointment(user=request.user, data=s.validated_data, request=request)
        return Response({'ok': True, 'data': appointment_dict(appointment)}, status=status.HTTP_201_CREATED)

    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = service.filter_appointments(Appointment.objects.all(), q.validated_data)
    items, meta, headers = paginate(qs, q.validated_data.get('page'), q.validated_data.get('per_page'))
    return Response({'ok': True, 'data': [appointment_dict(a) for a in items], 'pagination': meta},
                    headers=headers)


@api_view(['POST'])
@permission_classes([permission_required('core.change_appointment')])
def confirm_appointment(request, pk: int):
    appointment = service.confirm_appointment(load(pk), user=request.user, request=request)
    return Response({'ok': True, 'message': 'Appointment confirmed', 'data': appointment_dict(appointment)})


@api_view(['POST'])
@permission_classes([permission_required('core.change_appointment')])
def cancel_appointment(request, pk: int):
    s = AppointmentCancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appointment = service.cancel_appointment(load(pk), user=request.user, reason=s.validated_data['reason'],
                                             request=request)
    return Response({'ok': True, 'message': 'Appointment cancelled', 'data': appointment_dict(appointment)})


@api_view(['POST'])
@permission_classes([permission_required('core.change_appointment')])
def reschedule_appointment(request, pk: int):
    s = AppointmentRescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    replacement = service.reschedule_appointment(
        load(pk), user=request.user, date=vd['appointment_date'], time=vd.get('appointment_time'),
        reason=vd['reason'], request=request,
    )
    return Response({'ok': True, 'message': 'Appointment rescheduled', 'data': appointment_dict(replacement)},
                    status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([permission_required('core.change_appointment')])
def check_in_appointment(request, pk: int):
    appointment = service.check_in_appointment(load(pk), user=request.user, request=request)
    return Response({'ok': True, 'message': 'Patient checked in', 'data': appointment_dict(appointment)})


@api_view(['POST'])
@permission_classes([permission_required('core.change_appointment')])
def complete_appointment(request, pk: int):
    s = AppointmentCompleteSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appointment = service.complete_appointment(load(pk), user=request.user, request=request, **s.validated_data)
    return Response({'ok': True, 'message': 'Appointment completed', 'data': appointment_dict(appointment)})
