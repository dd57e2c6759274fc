"""
Read models for the patient queue, the track board and "my patients".

Rows are plain dicts in the camelCase shape the dashboard renders.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.db.models import Prefetch, Q, QuerySet
from django.utils import timezone

from triage.models import PatientStatus, RoutingAssignment, TriageCase, VitalSigns

S = PatientStatus

QUEUE_FILTERS = {
    'waiting': [S.WAITING],
    'in_triage': [S.IN_TRIAGE, S.PENDING_VALIDATION],
    'validated': [S.VALIDATED, S.ASSIGNED, S.ACKNOWLEDGED],
}

MAX_WAIT_MINUTES = 1440


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _base_queryset() -> QuerySet:
    return (
        TriageCase.objects.exclude(status=S.DISCHARGED)
        .select_related('patient', 'assigned_to')
        .prefetch_related(
            Prefetch(
                'patient__vital_signs',
                queryset=VitalSigns.objects.order_by('-recorded_at', '-id'),
                to_attr='vitals_desc',
            ),
            Prefetch(
                'routing_assignments',
                queryset=RoutingAssignment.objects.filter(status=RoutingAssignment.STATUS_PENDING)
                .order_by('-created_at', '-id'),
                to_attr='open_routes',
            ),
        )
    )


def search(qs: QuerySet, q: Optional[str]) -> QuerySet:
    q = (q or '').strip()
    if not q:
        return qs
    return qs.filter(
        Q(patient__first_name__icontains=q)
        | Q(patient__last_name__icontains=q)
        | Q(patient__mrn__icontains=q)
        | Q(patient__chief_complaint__icontains=q)
    )


def vitals_dict(v: Optional[VitalSigns]) -> Optional[dict]:
    if v is None:
        return None
    return {
        'heartRate': v.heart_rate,
        'systolicBp': v.systolic_bp,
        'diastolicBp': v.diastolic_bp,
        'respiratoryRate': v.respiratory_rate,
        'temperature': float(v.temperature) if v.temperature is not None else None,
        'oxygenSaturation': v.oxygen_saturation,
        'painLevel': v.pain_level,
        'recordedAt': _iso(v.recorded_at),
    }


def patient_dict(p) -> dict:
    return {
        'id': p.id,
        'mrn': p.mrn,
        'firstName': p.first_name,
        'lastName': p.last_name,
        'name': p.full_name,
        'age': p.age,
        'gender': p.gender,
        'chiefComplaint': p.chief_complaint,
        'arrivalTime': _iso(p.arrival_time),
        'isReturning': p.is_returning,
        'allergies': p.allergies,
        'status': p.status,
    }


def user_brief(u) -> Optional[dict]:
    if u is None:
        return None
    return {'id': u.id, 'name': u.display_name, 'role': u.role, 'zone': u.zone}


def _latest_vitals(case: TriageCase) -> Optional[VitalSigns]:
    prefetched = getattr(case.patient, 'vitals_desc', None)
    if prefetched is not None:
        return prefetched[0] if prefetched else None
    return case.patient.latest_vitals()


def _open_route(case: TriageCase) -> Optional[RoutingAssignment]:
    prefetched = getattr(case, 'open_routes', None)
    if prefetched is not None:
        return prefetched[0] if prefetched else None
    return case.open_assignment()


def wait_minutes(case: TriageCase, now: datetime) -> float:
    """Door-to-doctor minutes: arrival to acknowledgment, or to now."""
    end = now
    if case.status in (S.ACKNOWLEDGED, S.IN_TREATMENT) and case.acknowledged_at:
        end = case.acknowledged_at
    return (end - case.patient.arrival_time).total_seconds() / 60


def overdue_info(case: TriageCase, now: datetime) -> dict:
    route = _open_route(case)
    deadline = route.escalation_deadline if route is not None else None
    overdue = bool(deadline and deadline < now)
    return {
        'deadline': _iso(deadline),
        'overdue': overdue,
        'overdueMinutes': int((now - deadline).total_seconds() // 60) if overdue else 0,
    }


def case_row(case: TriageCase, now: Optional[datetime] = None) -> dict:
    now = now or timezone.now()
    return {
        'id': case.id,
        'status': case.status,
        'escalationStatus': case.escalation_status,
        'esi': case.esi,
        'aiDraftEsi': case.ai_draft_esi,
        'aiConfidence': case.ai_confidence,
        'validatedEsi': case.validated_esi,
        'isOverride': case.is_override,
        'patient': patient_dict(case.patient),
        'vitals': vitals_dict(_latest_vitals(case)),
        'assignedTo': user_brief(case.assigned_to),
        'assignedZone': case.assigned_zone,
        'acknowledgedAt': _iso(case.acknowledged_at),
        'createdAt': _iso(case.created_at),
        'waitMinutes': round(wait_minutes(case, now)),
    }


def queue(status: str = 'all', q: Optional[str] = None, now: Optional[datetime] = None) -> tuple[list[dict], dict]:
    now = now or timezone.now()
    active = list(_base_queryset())

    waits = [w for w in (wait_minutes(c, now) for c in active) if 0 < w < MAX_WAIT_MINUTES]
    stats = {
        'waiting': sum(1 for c in active if c.status in QUEUE_FILTERS['waiting']),
        'inTriage': sum(1 for c in active if c.status in QUEUE_FILTERS['in_triage']),
        'validated': sum(1 for c in active if c.status in QUEUE_FILTERS['validated']),
        'highAcuity': sum(1 for c in active if c.esi is not None and c.esi <= 2),
        'escalations': sum(1 for c in active if c.escalation_status not in ('none', 'resolved')),
        'avgWaitMinutes': round(sum(waits) / len(waits)) if waits else 0,
    }

    qs = _base_queryset()
    if status in QUEUE_FILTERS:
        qs = qs.filter(status__in=QUEUE_FILTERS[status])
    qs = search(qs, q).order_by('patient__arrival_time', 'id')
    return [case_row(c, now) for c in qs], stats


def board(esi: Optional[int] = None, q: Optional[str] = None, now: Optional[datetime] = None) -> tuple[list[dict], dict]:
    """Validated, not yet discharged cases sorted by acuity then arrival."""
    now = now or timezone.now()
    base = _base_queryset().filter(validated_esi__isnull=False)

    everything = [(c, overdue_info(c, now)) for c in base]
    stats = {
        'total': len(everything),
        'critical': sum(1 for c, _ in everything if c.validated_esi <= 2),
        'pendingAck': sum(1 for c, _ in everything if c.status == S.ASSIGNED),
        'acknowledged': sum(1 for c, _ in everything if c.acknowledged_at is not None),
        'criticalOverdue': sum(
            1 for c, info in everything
            if c.validated_esi <= 2 and c.acknowledged_at is None and info['overdue']
        ),
    }

    qs = base
    if esi:
        qs = qs.filter(validated_esi=esi)
    qs = search(qs, q).order_by('validated_esi', 'patient__arrival_time', 'id')
    return [{**case_row(c, now), **overdue_info(c, now)} for c in qs], stats


def my_patients(user, q: Optional[str] = None, now: Optional[datetime] = None) -> list[dict]:
    now = now or timezone.now()
    qs = search(_base_queryset().filter(assigned_to=user), q)
    rows = [{**case_row(c, now), **overdue_info(c, now)} for c in qs]
    rows.sort(key=lambda r: (r['esi'] or 6, r['patient']['arrivalTime'] or ''))
    return rows
