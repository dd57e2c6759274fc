from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsClinician
from ..serializers.settings import PhysicianSettingsSerializer
from ..services.physician_settings import reset_settings, settings_for, update_settings


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsClinician])
def physician_settings(request):
    """Current user's settings; PUT upserts the given camelCase keys."""
    if request.method == 'PUT':
        s = PhysicianSettingsSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        obj = update_settings(request.user, s.validated_data)
    else:
        obj = settings_for(request.user)
    return Response({'ok': True, 'data': PhysicianSettingsSerializer(obj).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def physician_settings_reset(request):
    obj = reset_settings(request.user)
    return Response({'ok': True, 'data': PhysicianSettingsSerializer(obj).data})
