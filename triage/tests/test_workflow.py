from datetime import timedelta

import pytest
from django.db import DatabaseError
from django.utils import timezone

from triage.exceptions import TriagePermissionError, ValidationError, WorkflowError
from triage.models import AuditLog, EscalationEvent, PhysicianSettings, RoutingAssignment, TriageCase
from triage.services import workflow

from .conftest import make_patient, make_user

pytestmark = pytest.mark.django_db


def drafted(case, user):
    return workflow.generate_draft(case, user)


def validated(case, user, esi=None):
    case = drafted(case, user)
    return workflow.validate_case(case, user, esi or case.ai_draft_esi)


def critical_case():
    p = make_patient(mrn='MRN-CRIT', complaint='Unresponsive, found on floor', heart_rate=35,
                     systolic_bp=80, diastolic_bp=50, respiratory_rate=6, oxygen_saturation=85)
    return TriageCase.objects.create(patient=p)


def test_full_happy_path_mirrors_patient_status(case, nurse, physician):
    case = workflow.start_triage(case, nurse)
    assert case.status == 'in_triage'

    case = workflow.generate_draft(case, nurse)
    assert case.status == 'pending_validation'
    assert case.ai_draft_esi == 5
    assert case.ai_sbar_situation

    case = workflow.validate_case(case, nurse, 5)
    assert case.status == 'validated' and case.is_override is False
    assert case.workup_orders == ['CBC', 'BMP']

    case = workflow.assign_case(case, physician, nurse)
    assert case.status == 'assigned' and case.assigned_to == physician
    case = workflow.acknowledge_case(case, physician)
    assert case.status == 'acknowledged' and case.acknowledged_at is not None
    case = workflow.start_treatment(case, physician)
    case = workflow.discharge_case(case, physician)

    case.patient.refresh_from_db()
    assert case.status == case.patient.status == 'discharged'
    actions = list(AuditLog.objects.filter(triage_case=case).values_list('action', flat=True))
    for expected in ('status_changed', 'ai_triage_completed', 'triage_validated', 'case_assigned', 'case_acknowledged'):
        assert expected in actions


def test_illegal_transitions_raise_workflow_error(case, nurse, physician):
    with pytest.raises(WorkflowError):
        workflow.validate_case(case, nurse, 3)
    with pytest.raises(WorkflowError):
        workflow.assign_case(case, physician, nurse)
    workflow.discharge_case(case, nurse)
    with pytest.raises(WorkflowError):
        workflow.start_triage(case, nurse)


def test_draft_is_rerunnable_while_pending_validation(case, nurse):
    case = drafted(case, nurse)
    case = workflow.generate_draft(case, nurse)
    assert case.status == 'pending_validation'
    last = AuditLog.objects.filter(action='ai_triage_completed').order_by('-id').first()
    assert last.details['refreshed'] is True


def test_sbar_skipped_when_disabled(case, nurse):
    PhysicianSettings.objects.create(user=nurse, generate_sbar_summaries=False)
    case = drafted(case, nurse)
    assert case.ai_draft_esi is not None
    assert case.ai_sbar_situation is None


def test_override_requires_rationale(case, nurse):
    case = drafted(case, nurse)
    with pytest.raises(ValidationError):
        workflow.validate_case(case, nurse, 3)
    with pytest.raises(ValidationError):
        workflow.validate_case(case, nurse, 3, rationale='gut_feeling')

    case = workflow.validate_case(case, nurse, 3, rationale='clinical_judgment', notes='<b>looks unwell</b>')
    assert case.is_override is True
    assert case.validated_esi == 3
    assert case.override_notes == 'looks unwell'
    log = AuditLog.objects.get(action='triage_overridden')
    assert log.details['from'] == 5 and log.details['to'] == 3
    assert log.details['rationale'] == 'clinical_judgment'


def test_assignee_must_be_a_physician(case, nurse, charge_nurse):
    case = validated(case, nurse)
    with pytest.raises(ValidationError):
        workflow.assign_case(case, charge_nurse, nurse)


def test_ack_deadline_uses_physician_settings_for_esi1(nurse, physician):
    PhysicianSettings.objects.create(user=physician, esi1_timeout=7)
    case = validated(critical_case(), nurse)
    assert case.validated_esi == 1
    before = timezone.now()
    workflow.assign_case(case, physician, nurse)
    route = RoutingAssignment.objects.get(triage_case=case)
    assert route.status == 'pending' and route.escalation_level == 0
    delta = route.escalation_deadline - before
    assert timedelta(minutes=6, seconds=59) <= delta <= timedelta(minutes=7, seconds=5)


def test_ack_timeout_defaults(physician):
    assert workflow.ack_timeout(1, physician) == 2
    assert workflow.ack_timeout(2, physician) == 5
    assert workflow.ack_timeout(3, physician) == 30
    assert workflow.ack_timeout(4, physician) == 60
    assert workflow.ack_timeout(5, physician) == 120


def test_only_assignee_or_supervisor_acknowledges(case, nurse, physician, charge_nurse):
    other = make_user('doctor2', 'physician')
    case = workflow.assign_case(validated(case, nurse), physician, nurse)
    with pytest.raises(TriagePermissionError):
        workflow.acknowledge_case(case, other)
    case = workflow.acknowledge_case(case, charge_nurse)
    route = RoutingAssignment.objects.get(triage_case=case)
    assert route.status == 'acknowledged'
    assert route.response_time_ms is not None and route.response_time_ms >= 0


def test_nurse_cannot_start_treatment(case, nurse, physician):
    case = workflow.assign_case(validated(case, nurse), physician, nurse)
    case = workflow.acknowledge_case(case, physician)
    with pytest.raises(TriagePermissionError):
        workflow.start_treatment(case, nurse)


def test_escalation_ladder(case, nurse, physician, charge_nurse, senior):
    case = workflow.assign_case(validated(case, nurse), physician, nurse)

    case = workflow.escalate_case(case, 'manual', user=nurse, notes='no answer')
    assert case.escalation_status == 'level_1'
    assert case.assigned_to == charge_nurse
    assert case.status == 'assigned'

    case = workflow.escalate_case(case, 'timeout')
    assert case.escalation_status == 'level_2'
    assert case.assigned_to == senior

    # the only senior physician already holds the case: nobody left to route to
    case = workflow.escalate_case(case, 'timeout')
    assert case.escalation_status == 'level_3'
    last = EscalationEvent.objects.filter(triage_case=case).order_by('-id').first()
    assert last.to_user is None and last.to_role == 'senior_physician'
    assert case.open_assignment() is None

    with pytest.raises(WorkflowError):
        workflow.escalate_case(case, 'timeout')

    events = EscalationEvent.objects.filter(triage_case=case).order_by('id')
    assert [e.to_role for e in events] == ['charge_nurse', 'senior_physician', 'senior_physician']
    assert events[0].from_user == physician and events[0].from_role == 'physician'
    assert RoutingAssignment.objects.filter(triage_case=case, status='escalated').count() == 3


def test_escalation_prefers_same_zone_and_fewest_open(case, nurse, physician):
    make_user('charge_b', 'charge_nurse', zone='B')
    busy = make_user('charge_a_busy', 'charge_nurse', zone='A')
    idle = make_user('charge_a_idle', 'charge_nurse', zone='A')
    make_user('charge_off', 'charge_nurse', zone='A', on_duty=False)
    other = TriageCase.objects.create(patient=make_patient(mrn='MRN-OTHER'))
    RoutingAssignment.objects.create(triage_case=other, assigned_to=busy, assigned_role='charge_nurse')

    case = workflow.assign_case(validated(case, nurse), physician, nurse, zone='A')
    case = workflow.escalate_case(case, 'unavailable', user=nurse)
    assert case.assigned_to == idle


def test_acknowledging_resolves_active_escalation(case, nurse, physician, charge_nurse):
    case = workflow.assign_case(validated(case, nurse), physician, nurse)
    case = workflow.escalate_case(case, 'manual', user=nurse)
    case = workflow.acknowledge_case(case, charge_nurse)
    assert case.escalation_status == 'resolved'
    assert AuditLog.objects.filter(triage_case=case, action='escalation_resolved').exists()


def test_resolve_escalation_is_for_supervisors(case, nurse, physician, charge_nurse):
    case = workflow.assign_case(validated(case, nurse), physician, nurse)
    case = workflow.escalate_case(case, 'manual', user=nurse)
    with pytest.raises(TriagePermissionError):
        workflow.resolve_escalation(case, nurse)
    case = workflow.resolve_escalation(case, charge_nurse, notes='handled at bedside')
    assert case.escalation_status == 'resolved'
    with pytest.raises(WorkflowError):
        workflow.resolve_escalation(case, charge_nurse)


def test_overdue_sweep(case, nurse, physician, charge_nurse):
    case = workflow.assign_case(validated(case, nurse), physician, nurse)
    assert workflow.escalate_overdue() == []

    later = timezone.now() + timedelta(minutes=121)
    assert workflow.escalate_overdue(now=later) == [case.id]
    case.refresh_from_db()
    assert case.escalation_status == 'level_1'
    assert case.assigned_to == charge_nurse
    event = EscalationEvent.objects.get(triage_case=case)
    assert event.reason == 'timeout'


def test_overdue_sweep_skips_acknowledged(case, nurse, physician):
    case = workflow.assign_case(validated(case, nurse), physician, nurse)
    workflow.acknowledge_case(case, physician)
    assert workflow.escalate_overdue(now=timezone.now() + timedelta(days=1)) == []


def test_stale_overdue_entry_is_not_escalated_again(case, nurse, physician, charge_nurse, senior):
    case = workflow.assign_case(validated(case, nurse), physician, nurse)
    case.routing_assignments.update(escalation_deadline=timezone.now() - timedelta(minutes=1))
    now = timezone.now()
    assert workflow.escalate_overdue(now=now) == [case.id]

    # an overlapping sweep read the same id before the first one escalated it
    assert workflow.escalate_case(case, 'timeout', only_if_overdue_before=now) is None
    case.refresh_from_db()
    assert case.escalation_status == 'level_1'
    assert case.assigned_to == charge_nurse
    assert EscalationEvent.objects.filter(triage_case=case).count() == 1
    assert workflow.escalate_overdue(now=now) == []


def test_sweep_continues_after_a_failing_case(case, nurse, physician, charge_nurse, monkeypatch, triage_logs):
    first = workflow.assign_case(validated(case, nurse), physician, nurse)
    other = TriageCase.objects.create(patient=make_patient(mrn='MRN-0002'))
    second = workflow.assign_case(validated(other, nurse), physician, nurse)
    real_escalate = workflow.escalate_case

    def flaky(case, *args, **kwargs):
        if case.id == first.id:
            raise DatabaseError('deadlock detected')
        return real_escalate(case, *args, **kwargs)

    monkeypatch.setattr(workflow, 'escalate_case', flaky)
    escalated = workflow.escalate_overdue(now=timezone.now() + timedelta(minutes=121))

    assert escalated == [second.id]
    assert f'escalation sweep failed for case {first.id}' in triage_logs.text
    first.refresh_from_db()
    second.refresh_from_db()
    assert first.escalation_status == 'none'
    assert second.escalation_status == 'level_1'


def test_discharge_cancels_open_assignment(case, nurse, physician):
    case = workflow.assign_case(validated(case, nurse), physician, nurse)
    workflow.discharge_case(case, nurse)
    assert RoutingAssignment.objects.get(triage_case=case).status == 'cancelled'


def test_orders_must_come_from_protocol(case, nurse):
    case = validated(case, nurse)
    case = workflow.update_orders(case, nurse, ['CBC', 'Urinalysis', 'CBC'])
    assert case.workup_orders == ['CBC', 'Urinalysis']
    with pytest.raises(ValidationError):
        workflow.update_orders(case, nurse, ['ABG'])
