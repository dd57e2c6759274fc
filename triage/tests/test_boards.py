from datetime import timedelta

import pytest
from django.utils import timezone

from triage.models import Patient, TriageCase
from triage.services import boards, workflow

from .conftest import NORMAL_VITALS, make_patient

pytestmark = pytest.mark.django_db


@pytest.fixture
def ward(case, nurse, physician):
    """One waiting case, one ESI 5 validated case and one ESI 1 assigned case."""
    minor = TriageCase.objects.create(patient=make_patient(mrn='MRN-0002', complaint='Rash on arm', **NORMAL_VITALS))
    workflow.generate_draft(minor, nurse)
    workflow.validate_case(minor, nurse, 5)

    sick = TriageCase.objects.create(patient=make_patient(
        mrn='MRN-0003', complaint='Chest pain radiating to jaw',
        **{**NORMAL_VITALS, 'oxygen_saturation': 86},
    ))
    workflow.generate_draft(sick, nurse)
    workflow.validate_case(sick, nurse, 1)
    workflow.assign_case(sick, physician, nurse)
    return {'waiting': case, 'minor': minor, 'sick': sick}


def test_queue_stats_and_filters(ward):
    rows, stats = boards.queue()
    assert len(rows) == 3
    assert stats['waiting'] == 1
    assert stats['inTriage'] == 0
    assert stats['validated'] == 2
    assert stats['highAcuity'] == 1
    assert stats['escalations'] == 0
    assert 'avgWaitMinutes' in stats

    rows, _ = boards.queue('waiting')
    assert [r['id'] for r in rows] == [ward['waiting'].id]

    rows, _ = boards.queue('all', q='jaw')
    assert [r['id'] for r in rows] == [ward['sick'].id]


def test_queue_hides_discharged(ward, nurse):
    workflow.discharge_case(ward['minor'], nurse)
    rows, stats = boards.queue()
    assert ward['minor'].id not in [r['id'] for r in rows]
    assert stats['validated'] == 1


def test_board_sorts_by_acuity_and_flags_overdue(ward):
    rows, stats = boards.board()
    assert [r['id'] for r in rows] == [ward['sick'].id, ward['minor'].id]
    assert stats == {'total': 2, 'critical': 1, 'pendingAck': 1, 'acknowledged': 0, 'criticalOverdue': 0}

    later = timezone.now() + timedelta(minutes=10)
    rows, stats = boards.board(now=later)
    assert stats['criticalOverdue'] == 1
    assert rows[0]['overdue'] is True
    assert rows[0]['overdueMinutes'] >= 7
    assert rows[1]['overdue'] is False

    rows, _ = boards.board(esi=5)
    assert [r['id'] for r in rows] == [ward['minor'].id]


def test_wait_stops_at_acknowledgment(ward, physician):
    case = workflow.acknowledge_case(ward['sick'], physician)
    row = boards.case_row(case, now=timezone.now() + timedelta(hours=3))
    assert row['waitMinutes'] < 5


def test_my_patients_only_lists_own_cases(ward, physician, nurse):
    rows = boards.my_patients(physician)
    assert [r['id'] for r in rows] == [ward['sick'].id]
    assert boards.my_patients(nurse) == []


def test_board_endpoints(client_for, ward, nurse, physician):
    r = client_for(nurse).get('/api/queue', {'status': 'validated'})
    body = r.json()
    assert body['ok'] is True
    assert {row['id'] for row in body['data']} == {ward['minor'].id, ward['sick'].id}
    assert body['stats']['waiting'] == 1

    r = client_for(nurse).get('/api/queue', {'status': 'bogus'})
    assert r.status_code == 400

    r = client_for(nurse).get('/api/board', {'esi': 1})
    assert [row['id'] for row in r.json()['data']] == [ward['sick'].id]
    assert r.json()['data'][0]['patient']['chiefComplaint'] == 'Chest pain radiating to jaw'

    r = client_for(physician).get('/api/my-patients')
    assert r.json()['data'][0]['assignedTo']['id'] == physician.id


def test_average_wait_ignores_implausible_waits(case, nurse, physician):
    now = timezone.now()
    arrivals = {
        'MRN-0101': now - timedelta(minutes=30),
        'MRN-0102': now - timedelta(minutes=45, seconds=30),
        'MRN-0103': now - timedelta(minutes=1500),
        'MRN-0104': now,
    }
    for mrn, arrived in arrivals.items():
        p = make_patient(mrn=mrn)
        Patient.objects.filter(pk=p.pk).update(arrival_time=arrived)
        TriageCase.objects.create(patient=p)

    # seen 20 minutes after arriving, three hours ago
    Patient.objects.filter(pk=case.patient_id).update(arrival_time=now - timedelta(minutes=200))
    case = workflow.assign_case(workflow.validate_case(workflow.generate_draft(case, nurse), nurse, 5), physician, nurse)
    workflow.acknowledge_case(case, physician)
    TriageCase.objects.filter(pk=case.pk).update(acknowledged_at=now - timedelta(minutes=180))

    _, stats = boards.queue(now=now)
    # (30 + 45.5 + 20) / 3, the 1500 and 0 minute waits left out
    assert stats['avgWaitMinutes'] == 32
