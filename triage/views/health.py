import logging
import time

from django.db import DatabaseError, connections
from django.http import JsonResponse
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import AuditLog
from ..realtime.notify import broadcast_refresh

logger = logging.getLogger(__name__)


def healthz(request):
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        return JsonResponse({'ok': True, 'db': bool(row and row[0] == 1)})
    except DatabaseError as e:
        return JsonResponse({'ok': False, 'error': str(e)}, status=500)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def system_status(request):
    started = time.perf_counter()
    try:
        AuditLog.objects.count()
        online = True
    except DatabaseError:
        logger.exception('status check: database unreachable')
        online = False
    latency_ms = round((time.perf_counter() - started) * 1000)

    realtime = broadcast_refresh(['status'])
    return Response({
        'isOnline': online,
        'latencyMs': latency_ms,
        'lastChecked': timezone.now().isoformat(),
        'realtimeStatus': 'CONNECTED' if realtime else 'DISCONNECTED',
    })
