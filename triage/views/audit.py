"""
Audit log endpoints: paged list, summary stats and CSV export.

The log is append-only; there is no write endpoint here.
"""
from __future__ import annotations

import csv
import math

from django.http import StreamingHttpResponse
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsClinician
from ..serializers.audit import AuditQuerySerializer
from ..services.audit import audit_stats, export_rows, filter_logs, format_log


def _filtered(request):
    q = AuditQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    qs = filter_logs(
        action=vd.get('action'),
        patient_id=vd.get('patientId'),
        case_id=vd.get('caseId'),
        start=vd.get('start'),
        end=vd.get('end'),
    )
    return qs, vd


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinician])
def audit_logs(request):
    qs, vd = _filtered(request)
    page, page_size = vd['page'], vd['pageSize']
    count = qs.count()
    offset = (page - 1) * page_size
    rows = [format_log(e) for e in qs[offset:offset + page_size]]
    return Response({
        'ok': True,
        'meta': {
            'count': count,
            'page': page,
            'pageSize': page_size,
            'totalPages': math.ceil(count / page_size) if count else 0,
        },
        'data': rows,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinician])
def audit_log_stats(request):
    qs, _ = _filtered(request)
    return Response({'ok': True, 'data': audit_stats(qs)})


class _Echo:
    """File-like object whose write() hands the line back to csv.writer."""
    def write(self, value):
        return value


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinician])
def audit_log_export(request):
    qs, _ = _filtered(request)
    writer = csv.writer(_Echo())
    resp = StreamingHttpResponse((writer.writerow(r) for r in export_rows(qs)), content_type='text/csv')
    resp['Content-Disposition'] = f'attachment; filename="audit-logs-{timezone.now():%Y%m%d-%H%M%S}.csv"'
    return resp
