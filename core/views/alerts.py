from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.permissions import per_method, permission_required, role_required
from core.roles import ADMIN, CARDIOLOGIST, DOCTOR
from core.serializers.alerts import EmergencyAlertCreateSerializer, alert_dict
from core.services import alerts as service


@api_view(['GET', 'POST'])
@permission_classes([per_method(GET=permission_required('core.view_emergencyalert'),
                                POST=role_required(ADMIN, CARDIOLOGIST, DOCTOR))])
def alerts(request):
    if request.method == 'POST':
        s = EmergencyAlertCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        alert = service.broadcast_alert(user=request.user, data=s.validated_data, request=request)
        return Response({'ok': True, 'message': 'Emergency alert sent successfully', 'data': alert_dict(alert)},
                        status=status.HTTP_201_CREATED)

    rows = service.active_alerts(request.user)
    return Response({'ok': True, 'data': [alert_dict(a) for a in rows]})
