import json
from typing import Optional, Any, Dict, Iterator

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count

from triage.middleware import current_client_meta
from triage.models import AuditAction, AuditLog, Patient, TriageCase
from triage.realtime.notify import broadcast_refresh

User = get_user_model()


def log_action(
    *,
    user: Optional[User],
    action: str,
    patient: Optional[Patient] = None,
    triage_case: Optional[TriageCase] = None,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Append an audit row; dashboards hear about it once the write commits.

    ``patient`` defaults to the case's patient.  Client ip and user agent
    default to the values captured by ``ClientMetaMiddleware``.
    """
    meta = current_client_meta()
    if patient is None and triage_case is not None:
        patient = triage_case.patient
    entry = AuditLog.objects.create(
        user=user if getattr(user, 'pk', None) else None,
        action=action,
        patient=patient,
        triage_case=triage_case,
        details=details or {},
        ip_address=ip_address or meta.get('ip_address'),
        user_agent=user_agent or meta.get('user_agent'),
    )
    transaction.on_commit(lambda: broadcast_refresh(['audit']))
    return entry


def filter_logs(
    *,
    action: Optional[str] = None,
    patient_id: Optional[int] = None,
    case_id: Optional[int] = None,
    start=None,
    end=None,
):
    qs = AuditLog.objects.select_related('user', 'patient', 'triage_case')
    if action:
        qs = qs.filter(action=action)
    if patient_id:
        qs = qs.filter(patient_id=patient_id)
    if case_id:
        qs = qs.filter(triage_case_id=case_id)
    if start:
        qs = qs.filter(created_at__gte=start)
    if end:
        qs = qs.filter(created_at__lte=end)
    return qs.order_by('-created_at', '-id')


def _esi_level(entry: AuditLog) -> Optional[int]:
    case = entry.triage_case
    if case is None:
        return None
    return case.validated_esi or case.ai_draft_esi


def format_log(entry: AuditLog) -> Dict[str, Any]:
    p = entry.patient
    return {
        'id': entry.id,
        'action': entry.action,
        'actionLabel': AuditAction(entry.action).label if entry.action in AuditAction.values else entry.action,
        'userId': entry.user_id,
        'userName': entry.user.display_name if entry.user else None,
        'patientId': entry.patient_id,
        'caseId': entry.triage_case_id,
        'patientName': f"{p.last_name}, {p.first_name}" if p else None,
        'patientMrn': p.mrn if p else None,
        'esiLevel': _esi_level(entry),
        'details': entry.details,
        'ipAddress': entry.ip_address,
        'userAgent': entry.user_agent,
        'createdAt': entry.created_at.isoformat(),
    }


def audit_stats(qs=None) -> Dict[str, Any]:
    qs = AuditLog.objects.all() if qs is None else qs
    counts = dict(qs.order_by().values_list('action').annotate(n=Count('id')))
    validations = counts.get(AuditAction.TRIAGE_VALIDATED, 0)
    overrides = counts.get(AuditAction.TRIAGE_OVERRIDDEN, 0)
    decided = validations + overrides
    return {
        'total': sum(counts.values()),
        'validations': validations,
        'overrides': overrides,
        'escalations': counts.get(AuditAction.ESCALATION_TRIGGERED, 0) + counts.get(AuditAction.ESCALATION_RESOLVED, 0),
        'overrideRate': '%.1f' % (overrides / decided * 100 if decided else 0),
    }


EXPORT_HEADER = ['Timestamp', 'Action', 'User', 'Patient', 'MRN', 'ESI', 'Details']


def export_rows(qs) -> Iterator[list]:
    """CSV rows (header first) for the given audit queryset."""
    yield EXPORT_HEADER
    for entry in qs.iterator():
        row = format_log(entry)
        yield [
            row['createdAt'],
            row['actionLabel'],
            row['userName'] or 'System',
            row['patientName'] or '',
            row['patientMrn'] or '',
            row['esiLevel'] or '',
            json.dumps(row['details'], sort_keys=True, default=str),
        ]
