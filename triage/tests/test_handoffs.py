import pytest

from triage.exceptions import TriagePermissionError, ValidationError, WorkflowError
from triage.models import RoutingAssignment, ShiftHandoff, TriageCase
from triage.services import handoffs, workflow

from .conftest import NORMAL_VITALS, make_patient, make_user

pytestmark = pytest.mark.django_db


@pytest.fixture
def caseload(case, nurse, physician):
    """Two cases assigned to the physician, one of them critical."""
    workflow.generate_draft(case, nurse)
    workflow.validate_case(case, nurse, 5)
    workflow.assign_case(case, physician, nurse)

    sick = TriageCase.objects.create(patient=make_patient(
        mrn='MRN-0002', complaint='Stroke symptoms', **{**NORMAL_VITALS, 'oxygen_saturation': 86},
    ))
    workflow.generate_draft(sick, nurse)
    workflow.validate_case(sick, nurse, 1)
    workflow.assign_case(sick, physician, nurse)
    return case, sick


@pytest.fixture
def relief(db):
    return make_user('doctor3', 'physician', first_name='Lee', last_name='Park')


def test_draft_summary(caseload, physician):
    case, sick = caseload
    text = handoffs.draft_summary(physician)
    lines = text.splitlines()
    assert lines[0] == 'Shift Handoff Summary:'
    assert 'Active Patients: 2' in lines
    assert 'Critical Cases: 1' in lines
    assert lines[5] == '- Doe, Jane (MRN-0002) ESI 1 [assigned]: Stroke symptoms'

    only = handoffs.draft_summary(physician, [case.patient_id])
    assert 'Active Patients: 1' in only


def test_draft_summary_without_patients(nurse):
    assert handoffs.draft_summary(nurse).endswith('No active patients.')


def test_create_rejects_foreign_patients(caseload, physician, nurse, relief):
    with pytest.raises(ValidationError):
        handoffs.create_handoff(physician, [])
    with pytest.raises(ValidationError):
        handoffs.create_handoff(nurse, [caseload[0].patient_id])
    with pytest.raises(ValidationError):
        handoffs.create_handoff(physician, [caseload[0].patient_id], receiver=physician)


def test_acknowledge_moves_cases_to_receiver(caseload, physician, relief):
    case, sick = caseload
    h = handoffs.create_handoff(physician, [case.patient_id, sick.patient_id], receiver=relief, notes='<i>quiet night</i>')
    assert h.notes == 'quiet night'

    with pytest.raises(TriagePermissionError):
        handoffs.acknowledge_handoff(h, physician)

    h, moved = handoffs.acknowledge_handoff(h, relief)
    assert moved == 2
    assert h.status == ShiftHandoff.STATUS_ACKNOWLEDGED
    assert h.acknowledged_at is not None
    assert set(TriageCase.objects.filter(assigned_to=relief).values_list('id', flat=True)) == {case.id, sick.id}
    route = RoutingAssignment.objects.get(triage_case=sick, status='pending')
    assert route.assigned_to == relief

    with pytest.raises(WorkflowError):
        handoffs.acknowledge_handoff(h, relief)


def test_open_handoff_needs_a_supervisor(caseload, physician, nurse, charge_nurse):
    h = handoffs.create_handoff(physician, [caseload[0].patient_id])
    with pytest.raises(TriagePermissionError):
        handoffs.acknowledge_handoff(h, nurse)
    h, moved = handoffs.acknowledge_handoff(h, charge_nurse)
    assert moved == 1
    assert h.receiver == charge_nurse


def test_handoff_endpoints(client_for, caseload, physician, relief):
    case, sick = caseload
    doc = client_for(physician)

    r = doc.get('/api/handoffs/draft', {'patientIds': f'{sick.patient_id}'})
    assert 'Critical Cases: 1' in r.json()['summary']
    assert doc.get('/api/handoffs/draft', {'patientIds': 'a,b'}).status_code == 400

    r = doc.post('/api/handoffs', {'patientIds': [case.patient_id], 'receiverId': relief.id}, format='json')
    assert r.status_code == 201
    data = r.json()['data']
    assert data['receiverName'] == 'Lee Park'
    assert data['status'] == 'pending'

    assert doc.post('/api/handoffs', {'patientIds': []}, format='json').status_code == 400

    r = client_for(relief).get('/api/handoffs')
    assert [h['id'] for h in r.json()['data']] == [data['id']]

    r = client_for(relief).post(f"/api/handoffs/{data['id']}/acknowledge")
    assert r.json()['reassigned'] == 1
    assert r.json()['data']['status'] == 'acknowledged'
    assert client_for(relief).post(f"/api/handoffs/{data['id']}/acknowledge").status_code == 409
