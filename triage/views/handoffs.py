from __future__ import annotations

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import ShiftHandoff
from ..permissions import IsClinician
from ..serializers.handoffs import HandoffCreateSerializer, HandoffDraftQuerySerializer
from ..services.handoffs import acknowledge_handoff, create_handoff, draft_summary, format_handoff, list_handoffs

User = get_user_model()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinician])
def handoffs(request):
    if request.method == 'GET':
        return Response({'ok': True, 'data': [format_handoff(h) for h in list_handoffs(request.user)]})
    s = HandoffCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    receiver = get_object_or_404(User, pk=vd['receiverId']) if vd.get('receiverId') else None
    h = create_handoff(request.user, vd['patientIds'], receiver=receiver, notes=vd.get('notes', ''))
    return Response({'ok': True, 'data': format_handoff(h)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinician])
def handoff_draft(request):
    """Summary text the sender can paste into the handoff notes."""
    q = HandoffDraftQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return Response({'ok': True, 'summary': draft_summary(request.user, q.validated_data.get('patientIds'))})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def handoff_acknowledge(request, handoff_id: int):
    h = get_object_or_404(ShiftHandoff, pk=handoff_id)
    h, moved = acknowledge_handoff(h, request.user)
    return Response({'ok': True, 'reassigned': moved, 'data': format_handoff(h)})
