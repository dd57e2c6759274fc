"""Patient queue, track board and "my patients" lists."""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsClinician
from ..serializers.cases import BoardQuerySerializer, QueueQuerySerializer
from ..services import boards


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinician])
def queue_list(request):
    q = QueueQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows, stats = boards.queue(q.validated_data['status'], q.validated_data.get('q'))
    return Response({'ok': True, 'stats': stats, 'data': rows})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinician])
def track_board(request):
    q = BoardQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows, stats = boards.board(q.validated_data.get('esi'), q.validated_data.get('q'))
    return Response({'ok': True, 'stats': stats, 'data': rows})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinician])
def my_patients(request):
    rows = boards.my_patients(request.user, request.query_params.get('q'))
    return Response({'ok': True, 'data': rows})
