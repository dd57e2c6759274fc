"""
Shift handoff between clinicians.

A sender hands over patients from their active assignments.  When the
receiver acknowledges, the open cases for those patients move to them.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from triage.exceptions import TriagePermissionError, ValidationError, WorkflowError
from triage.models import PatientStatus, RoutingAssignment, ShiftHandoff, TriageCase
from triage.permissions import is_clinician, is_supervisor
from triage.realtime.notify import broadcast_refresh
from triage.services.text import clean_text

logger = logging.getLogger(__name__)


def active_cases(user):
    return (
        TriageCase.objects.filter(assigned_to=user)
        .exclude(status=PatientStatus.DISCHARGED)
        .select_related('patient')
        .order_by('validated_esi', 'patient__arrival_time')
    )


def draft_summary(user, patient_ids: Optional[list[int]] = None) -> str:
    """Plain-text handoff summary over the sender's active patients."""
    cases = list(active_cases(user))
    if patient_ids:
        wanted = set(patient_ids)
        cases = [c for c in cases if c.patient_id in wanted]
    critical = [c for c in cases if c.esi is not None and c.esi <= 2]
    lines = [
        'Shift Handoff Summary:',
        '',
        f'Active Patients: {len(cases)}',
        f'Critical Cases: {len(critical)}',
        '',
    ]
    for c in cases:
        p = c.patient
        line = f"- {p.last_name}, {p.first_name} ({p.mrn}) ESI {c.esi or '?'} [{c.status}]: {p.chief_complaint}"
        if c.escalation_status not in ('none', 'resolved'):
            line += f' (escalation {c.escalation_status})'
        lines.append(line)
    if not cases:
        lines.append('No active patients.')
    return '\n'.join(lines)


def create_handoff(sender, patient_ids: list[int], receiver=None, notes: str = '') -> ShiftHandoff:
    if not is_clinician(sender):
        raise TriagePermissionError('Only clinicians can hand off patients.')
    ids = list(dict.fromkeys(int(i) for i in patient_ids or []))
    if not ids:
        raise ValidationError({'patientIds': 'Select at least one patient.'})
    owned = set(active_cases(sender).values_list('patient_id', flat=True))
    foreign = [i for i in ids if i not in owned]
    if foreign:
        raise ValidationError({'patientIds': f'Not among your active patients: {foreign}'})
    if receiver is not None and (receiver.pk == sender.pk or not is_clinician(receiver)):
        raise ValidationError({'receiverId': 'Receiver must be another clinician.'})
    handoff = ShiftHandoff.objects.create(
        sender=sender,
        receiver=receiver,
        patient_ids=ids,
        notes=clean_text(notes) or None,
    )
    logger.info('handoff %s: %s -> %s, %d patient(s)', handoff.id, sender.id, getattr(receiver, 'id', None), len(ids))
    broadcast_refresh(['handoffs'])
    return handoff


def list_handoffs(user):
    return (
        ShiftHandoff.objects.filter(Q(sender=user) | Q(receiver=user))
        .select_related('sender', 'receiver')
        .order_by('-created_at', '-id')
    )


def acknowledge_handoff(handoff: ShiftHandoff, user) -> tuple[ShiftHandoff, int]:
    """Accept a handoff and take over the listed patients' open cases."""
    with transaction.atomic():
        handoff = ShiftHandoff.objects.select_for_update().get(pk=handoff.pk)
        if handoff.receiver_id is not None:
            if handoff.receiver_id != user.id:
                raise TriagePermissionError('Only the receiver can acknowledge this handoff.')
        elif not is_supervisor(user):
            raise TriagePermissionError('Only a supervisor can accept an open handoff.')
        if handoff.status != ShiftHandoff.STATUS_PENDING:
            raise WorkflowError('Handoff already acknowledged.')

        cases = list(
            TriageCase.objects.select_for_update()
            .filter(patient_id__in=handoff.patient_ids, assigned_to_id=handoff.sender_id)
            .exclude(status=PatientStatus.DISCHARGED)
        )
        for case in cases:
            case.assigned_to = user
            case.save(update_fields=['assigned_to', 'updated_at'])
            RoutingAssignment.objects.filter(
                triage_case=case, status=RoutingAssignment.STATUS_PENDING, assigned_to_id=handoff.sender_id,
            ).update(assigned_to=user, assigned_role=user.role)

        handoff.status = ShiftHandoff.STATUS_ACKNOWLEDGED
        handoff.acknowledged_at = timezone.now()
        if handoff.receiver_id is None:
            handoff.receiver = user
        handoff.save()
    logger.info('handoff %s acknowledged by %s, %d case(s) reassigned', handoff.id, user.id, len(cases))
    broadcast_refresh(['handoffs', 'cases', 'board'])
    return handoff, len(cases)


def format_handoff(h: ShiftHandoff) -> dict:
    return {
        'id': h.id,
        'senderId': h.sender_id,
        'senderName': h.sender.display_name,
        'receiverId': h.receiver_id,
        'receiverName': h.receiver.display_name if h.receiver else None,
        'patientIds': h.patient_ids,
        'notes': h.notes,
        'status': h.status,
        'acknowledgedAt': h.acknowledged_at.isoformat() if h.acknowledged_at else None,
        'createdAt': h.created_at.isoformat(),
    }
