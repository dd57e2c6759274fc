"""
Triage case state machine.

Every operation locks the case row with ``select_for_update`` inside
``transaction.atomic()``, checks the transition table, writes an audit
row and tells connected dashboards to refresh.  Domain failures raise
``WorkflowError`` (409), ``TriagePermissionError`` (403) or
``ValidationError`` (400).
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from triage.exceptions import TriagePermissionError, ValidationError, WorkflowError
from triage.models import (
    AuditAction,
    EscalationEvent,
    EscalationReason,
    EscalationStatus,
    OverrideRationale,
    Patient,
    PatientStatus,
    Role,
    RoutingAssignment,
    TriageCase,
)
from triage.permissions import is_clinician, is_prescriber, is_supervisor
from triage.realtime import notify
from triage.services.audit import log_action
from triage.services.physician_settings import settings_for
from triage.services.protocols import default_orders, protocol_key, validate_orders
from triage.services.scoring import draft_triage
from triage.services.text import clean_text

logger = logging.getLogger(__name__)

User = get_user_model()

S = PatientStatus

TRANSITIONS = {
    S.WAITING: [S.IN_TRIAGE, S.DISCHARGED],
    S.IN_TRIAGE: [S.PENDING_VALIDATION, S.DISCHARGED],
    S.PENDING_VALIDATION: [S.VALIDATED, S.DISCHARGED],
    S.VALIDATED: [S.ASSIGNED, S.DISCHARGED],
    S.ASSIGNED: [S.ACKNOWLEDGED, S.DISCHARGED],
    S.ACKNOWLEDGED: [S.IN_TREATMENT, S.DISCHARGED],
    S.IN_TREATMENT: [S.DISCHARGED],
    S.DISCHARGED: [],
}

# current escalation status -> (next status, role that receives the case)
ESCALATION_LADDER = {
    EscalationStatus.NONE: (EscalationStatus.LEVEL_1, Role.CHARGE_NURSE),
    EscalationStatus.PENDING: (EscalationStatus.LEVEL_1, Role.CHARGE_NURSE),
    EscalationStatus.RESOLVED: (EscalationStatus.LEVEL_1, Role.CHARGE_NURSE),
    EscalationStatus.LEVEL_1: (EscalationStatus.LEVEL_2, Role.SENIOR_PHYSICIAN),
    EscalationStatus.LEVEL_2: (EscalationStatus.LEVEL_3, Role.SENIOR_PHYSICIAN),
}

ACTIVE_ESCALATIONS = (
    EscalationStatus.PENDING,
    EscalationStatus.LEVEL_1,
    EscalationStatus.LEVEL_2,
    EscalationStatus.LEVEL_3,
)


def _can_transition(current: str, new: str) -> bool:
    """Return True if a case may move from ``current`` to ``new``."""
    return new in TRANSITIONS.get(current, [])


def _lock(case: TriageCase) -> TriageCase:
    return TriageCase.objects.select_for_update().select_related('patient').get(pk=case.pk)


def _require(check, user, message: str) -> None:
    if not check(user):
        raise TriagePermissionError(message)


def _transition(case: TriageCase, new: str, user) -> str:
    """Move ``case`` to ``new`` (unsaved) and mirror it onto the patient."""
    old = case.status
    if not _can_transition(old, new):
        raise WorkflowError(f'Cannot move case from {old} to {new}.')
    case.status = new
    latest_id = (
        TriageCase.objects.filter(patient_id=case.patient_id).order_by('-created_at', '-id')
        .values_list('id', flat=True).first()
    )
    if latest_id == case.id:
        Patient.objects.filter(pk=case.patient_id).update(status=new, updated_at=timezone.now())
        case.patient.status = new
    logger.info('case %s %s -> %s by %s', case.id, old, new, getattr(user, 'username', 'system'))
    return old


def _status_changed(case: TriageCase, user, old: str, **extra) -> None:
    log_action(
        user=user, action=AuditAction.STATUS_CHANGED, triage_case=case,
        details={'from': old, 'to': case.status, **extra},
    )


def ack_timeout(esi: Optional[int], user=None) -> int:
    """Minutes an assignee has to acknowledge a case of level ``esi``."""
    if esi in (1, 2):
        prefs = settings_for(user)
        return prefs.esi1_timeout if esi == 1 else prefs.esi2_timeout
    timeouts = settings.TRIAGE_ACK_TIMEOUT_MINUTES
    return timeouts.get(esi) or timeouts[5]


def _deadline(esi: Optional[int], user, now: datetime) -> datetime:
    return now + timedelta(minutes=ack_timeout(esi, user))


def start_triage(case: TriageCase, user) -> TriageCase:
    _require(is_clinician, user, 'Only clinicians can start triage.')
    with transaction.atomic():
        case = _lock(case)
        old = _transition(case, S.IN_TRIAGE, user)
        case.save()
        _status_changed(case, user, old)
    notify.broadcast_refresh(['cases'])
    return case


def generate_draft(case: TriageCase, user) -> TriageCase:
    """Run rule-based scoring and park the case in pending_validation.

    A waiting case is started first.  Calling again while the case is
    pending validation refreshes the draft from the latest vitals.
    """
    _require(is_clinician, user, 'Only clinicians can draft triage.')
    with transaction.atomic():
        case = _lock(case)
        refreshed = case.status == S.PENDING_VALIDATION
        if case.status == S.WAITING:
            old = _transition(case, S.IN_TRIAGE, user)
            _status_changed(case, user, old)
        if not refreshed:
            _transition(case, S.PENDING_VALIDATION, user)

        prefs = settings_for(user)
        patient = case.patient
        draft = draft_triage(patient, patient.latest_vitals(), include_sbar=prefs.generate_sbar_summaries)
        case.ai_draft_esi = draft.esi
        case.ai_confidence = draft.confidence
        case.ai_extracted_symptoms = draft.extracted_symptoms
        case.ai_extracted_timeline = draft.timeline
        case.ai_comorbidities = draft.comorbidities
        case.ai_influencing_factors = draft.influencing_factors
        case.ai_sbar_situation = draft.situation or None
        case.ai_sbar_background = draft.background or None
        case.ai_sbar_assessment = draft.assessment or None
        case.ai_sbar_recommendation = draft.recommendation or None
        case.ai_generated_at = timezone.now()
        case.save()
        log_action(
            user=user, action=AuditAction.AI_TRIAGE_COMPLETED, triage_case=case,
            details={'esi': draft.esi, 'confidence': draft.confidence, 'refreshed': refreshed},
        )
    notify.broadcast_refresh(['cases'])
    return case


def validate_case(case: TriageCase, user, esi, rationale: Optional[str] = None, notes: str = '') -> TriageCase:
    """Confirm or override the draft ESI.

    Matching the draft is a validation.  Any other level is an override
    and needs one of the ``OverrideRationale`` values.
    """
    _require(is_clinician, user, 'Only clinicians can validate triage.')
    try:
        esi = int(esi)
    except (TypeError, ValueError):
        raise ValidationError({'esi': 'ESI must be an integer between 1 and 5.'})
    if not 1 <= esi <= 5:
        raise ValidationError({'esi': 'ESI must be an integer between 1 and 5.'})

    with transaction.atomic():
        case = _lock(case)
        if case.status != S.PENDING_VALIDATION:
            raise WorkflowError(f'Cannot validate a case in {case.status}.')
        is_override = esi != case.ai_draft_esi
        if is_override:
            if not rationale:
                raise ValidationError({'rationale': 'An override needs a rationale.'})
            if rationale not in OverrideRationale.values:
                raise ValidationError({'rationale': f'Unknown rationale {rationale!r}.'})
        draft_esi = case.ai_draft_esi
        _transition(case, S.VALIDATED, user)
        case.validated_esi = esi
        case.validated_by = user
        case.validated_at = timezone.now()
        case.is_override = is_override
        case.override_rationale = rationale if is_override else None
        case.override_notes = clean_text(notes) or None
        case.workup_orders = default_orders(esi)
        case.save()
        if is_override:
            log_action(
                user=user, action=AuditAction.TRIAGE_OVERRIDDEN, triage_case=case,
                details={'from': draft_esi, 'to': esi, 'rationale': rationale, 'notes': case.override_notes},
            )
        else:
            log_action(user=user, action=AuditAction.TRIAGE_VALIDATED, triage_case=case, details={'esi': esi})
    notify.broadcast_refresh(['cases', 'board'])
    if esi <= 2:
        notify.critical_case_alert(case)
    return case


def assign_case(case: TriageCase, assignee, user, zone: Optional[str] = None) -> TriageCase:
    _require(is_clinician, user, 'Only clinicians can assign cases.')
    if not is_prescriber(assignee) or not assignee.is_active:
        raise ValidationError({'assigneeId': 'Cases can only be assigned to an active physician.'})
    with transaction.atomic():
        case = _lock(case)
        _transition(case, S.ASSIGNED, user)
        now = timezone.now()
        minutes = ack_timeout(case.esi, assignee)
        RoutingAssignment.objects.create(
            triage_case=case,
            assigned_to=assignee,
            assigned_role=assignee.role,
            status=RoutingAssignment.STATUS_PENDING,
            escalation_level=0,
            escalation_deadline=now + timedelta(minutes=minutes),
            created_at=now,
        )
        case.assigned_to = assignee
        case.assigned_zone = (zone or assignee.zone or '').strip() or None
        case.save()
        log_action(
            user=user, action=AuditAction.CASE_ASSIGNED, triage_case=case,
            details={'assigneeId': assignee.id, 'role': assignee.role, 'zone': case.assigned_zone,
                     'timeoutMinutes': minutes},
        )
    notify.broadcast_refresh(['cases', 'board'])
    return case


def acknowledge_case(case: TriageCase, user) -> TriageCase:
    with transaction.atomic():
        case = _lock(case)
        if case.assigned_to_id != getattr(user, 'id', None) and not is_supervisor(user):
            raise TriagePermissionError('Only the assignee or a supervisor can acknowledge.')
        _transition(case, S.ACKNOWLEDGED, user)
        now = timezone.now()
        response_ms = None
        route = case.open_assignment()
        if route is not None:
            response_ms = max(0, int((now - route.created_at).total_seconds() * 1000))
            route.status = RoutingAssignment.STATUS_ACKNOWLEDGED
            route.acknowledged_at = now
            route.response_time_ms = response_ms
            route.save(update_fields=['status', 'acknowledged_at', 'response_time_ms'])
        case.acknowledged_at = now
        if case.escalation_status in ACTIVE_ESCALATIONS:
            level = case.escalation_status
            case.escalation_status = EscalationStatus.RESOLVED
            log_action(
                user=user, action=AuditAction.ESCALATION_RESOLVED, triage_case=case,
                details={'level': level, 'via': 'acknowledgment'},
            )
        case.save()
        log_action(
            user=user, action=AuditAction.CASE_ACKNOWLEDGED, triage_case=case,
            details={'responseTimeMs': response_ms},
        )
    notify.broadcast_refresh(['cases', 'board'])
    return case


def _pick_target(role: str, zone: Optional[str], exclude_id: Optional[int]):
    """On-duty user of ``role`` with the fewest open assignments, zone first."""
    candidates = (
        User.objects.filter(role=role, on_duty=True, is_active=True)
        .exclude(pk=exclude_id)
        .annotate(open_count=Count(
            'routing_assignments',
            filter=Q(routing_assignments__status=RoutingAssignment.STATUS_PENDING),
        ))
        .order_by('open_count', 'id')
    )
    if zone:
        in_zone = candidates.filter(zone=zone).first()
        if in_zone is not None:
            return in_zone
    return candidates.first()


def escalate_case(
    case: TriageCase,
    reason: str,
    user=None,
    notes: str = '',
    to_user=None,
    only_if_overdue_before: Optional[datetime] = None,
) -> Optional[TriageCase]:
    """Move an unacknowledged case one rung up the escalation ladder.

    ``user`` is ``None`` when the overdue sweep escalates.  When nobody
    of the target role is on duty the event is still recorded, with no
    receiving user and no new open assignment.

    With ``only_if_overdue_before`` the case is re-checked under the row
    lock and left alone (returning ``None``) unless it still has a
    pending assignment whose deadline is earlier than that time.
    """
    if reason not in EscalationReason.values:
        raise ValidationError({'reason': f'Unknown escalation reason {reason!r}.'})
    if user is not None:
        _require(is_clinician, user, 'Only clinicians can escalate cases.')
    if to_user is not None and not (is_clinician(to_user) and to_user.is_active):
        raise ValidationError({'toUserId': 'Escalation target must be an active clinician.'})

    with transaction.atomic():
        case = _lock(case)
        if only_if_overdue_before is not None and not case.routing_assignments.filter(
            status=RoutingAssignment.STATUS_PENDING,
            escalation_deadline__lt=only_if_overdue_before,
        ).exists():
            logger.info('case %s no longer overdue, escalation skipped', case.id)
            return None
        if case.status != S.ASSIGNED:
            raise WorkflowError(f'Cannot escalate a case in {case.status}.')
        if case.escalation_status not in ESCALATION_LADDER:
            raise WorkflowError('Escalation ladder exhausted.')
        next_status, to_role = ESCALATION_LADDER[case.escalation_status]
        level = int(next_status.rsplit('_', 1)[1])
        now = timezone.now()

        route = case.open_assignment()
        from_user = route.assigned_to if route is not None else case.assigned_to
        if route is not None:
            route.status = RoutingAssignment.STATUS_ESCALATED
            route.save(update_fields=['status'])

        target = to_user or _pick_target(to_role, case.assigned_zone, getattr(from_user, 'id', None))
        if target is not None:
            RoutingAssignment.objects.create(
                triage_case=case,
                assigned_to=target,
                assigned_role=target.role,
                status=RoutingAssignment.STATUS_PENDING,
                escalation_level=level,
                escalation_deadline=_deadline(case.esi, target, now),
                created_at=now,
            )
            case.assigned_to = target
        else:
            logger.warning('case %s: no on-duty %s available for %s', case.id, to_role, next_status)

        notes = clean_text(notes)
        EscalationEvent.objects.create(
            triage_case=case,
            reason=reason,
            from_role=getattr(from_user, 'role', None),
            from_user=from_user,
            to_role=target.role if target is not None else to_role,
            to_user=target,
            notes=notes or None,
        )
        case.escalation_status = next_status
        case.save()
        log_action(
            user=user, action=AuditAction.ESCALATION_TRIGGERED, triage_case=case,
            details={
                'level': next_status,
                'reason': reason,
                'fromUserId': getattr(from_user, 'id', None),
                'toUserId': getattr(target, 'id', None),
                'toRole': to_role,
                'notes': notes,
            },
        )
    logger.info('case %s escalated to %s (%s)', case.id, next_status, reason)
    notify.broadcast_refresh(['cases', 'board'])
    notify.escalation_alert(
        case, level=next_status, assigned_role=to_role, to_user_id=getattr(target, 'id', None),
    )
    return case


def resolve_escalation(case: TriageCase, user, notes: str = '') -> TriageCase:
    _require(is_supervisor, user, 'Only supervisors can resolve escalations.')
    with transaction.atomic():
        case = _lock(case)
        if case.escalation_status not in ACTIVE_ESCALATIONS:
            raise WorkflowError('Case has no active escalation.')
        level = case.escalation_status
        case.escalation_status = EscalationStatus.RESOLVED
        case.save()
        log_action(
            user=user, action=AuditAction.ESCALATION_RESOLVED, triage_case=case,
            details={'level': level, 'notes': clean_text(notes)},
        )
    notify.broadcast_refresh(['cases', 'board'])
    return case


def escalate_overdue(now: Optional[datetime] = None) -> list[int]:
    """Escalate every case whose open assignment passed its deadline.

    Cases already at the top of the ladder are skipped.  A failure on
    one case is logged and the sweep moves on.  A case acknowledged or
    escalated by someone else since the id query is left alone.
    """
    now = now or timezone.now()
    case_ids = list(dict.fromkeys(
        RoutingAssignment.objects.filter(
            status=RoutingAssignment.STATUS_PENDING,
            escalation_deadline__lt=now,
            triage_case__status=S.ASSIGNED,
        )
        .exclude(triage_case__escalation_status=EscalationStatus.LEVEL_3)
        .order_by('escalation_deadline')
        .values_list('triage_case_id', flat=True)
    ))
    escalated: list[int] = []
    for case_id in case_ids:
        try:
            case = TriageCase.objects.get(pk=case_id)
            result = escalate_case(
                case, EscalationReason.TIMEOUT,
                notes='Acknowledgment deadline passed',
                only_if_overdue_before=now,
            )
        except Exception:
            logger.exception('escalation sweep failed for case %s', case_id)
            continue
        if result is not None:
            escalated.append(case_id)
    if case_ids:
        logger.info('escalation sweep: %d overdue, %d escalated', len(case_ids), len(escalated))
    return escalated


def start_treatment(case: TriageCase, user) -> TriageCase:
    _require(is_prescriber, user, 'Only physicians can start treatment.')
    with transaction.atomic():
        case = _lock(case)
        old = _transition(case, S.IN_TREATMENT, user)
        case.save()
        _status_changed(case, user, old)
    notify.broadcast_refresh(['cases', 'board'])
    return case


def discharge_case(case: TriageCase, user) -> TriageCase:
    _require(is_clinician, user, 'Only clinicians can discharge.')
    with transaction.atomic():
        case = _lock(case)
        old = _transition(case, S.DISCHARGED, user)
        cancelled = case.routing_assignments.filter(status=RoutingAssignment.STATUS_PENDING).update(
            status=RoutingAssignment.STATUS_CANCELLED
        )
        case.save()
        _status_changed(case, user, old, cancelledAssignments=cancelled)
    notify.broadcast_refresh(['cases', 'board'])
    return case


def update_orders(case: TriageCase, user, orders: list[str]) -> TriageCase:
    """Replace the selected workup orders with ones from the case's protocol."""
    _require(is_clinician, user, 'Only clinicians can change orders.')
    with transaction.atomic():
        case = _lock(case)
        if case.status == S.DISCHARGED or case.esi is None:
            raise WorkflowError('Orders can only be changed on a scored, active case.')
        unknown = validate_orders(case.esi, orders)
        if unknown:
            raise ValidationError({'orders': f'Not in the {protocol_key(case.esi)} protocol: {", ".join(unknown)}'})
        case.workup_orders = list(dict.fromkeys(orders))
        case.save(update_fields=['workup_orders', 'updated_at'])
    notify.broadcast_refresh(['cases'])
    return case
