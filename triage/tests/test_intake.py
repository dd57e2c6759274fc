import pytest

from triage.models import AuditLog, Patient, PhysicianSettings, TriageCase, VitalSigns

pytestmark = pytest.mark.django_db


def payload(**overrides):
    data = {
        'mrn': 'MRN-2001',
        'firstName': 'Omar',
        'lastName': 'Haddad',
        'dateOfBirth': '1958-04-12',
        'gender': 'male',
        'chiefComplaint': 'Chest pain for 30 minutes',
        'allergies': ['penicillin'],
        'medicalHistory': ['hypertension', '<script>x</script>'],
        'vitals': {
            'heartRate': 104, 'systolicBp': 158, 'diastolicBp': 96, 'respiratoryRate': 20,
            'temperature': '98.9', 'oxygenSaturation': 96, 'painLevel': 7,
        },
    }
    data.update(overrides)
    return data


def test_intake_creates_patient_case_and_draft(client_for, nurse):
    r = client_for(nurse).post('/api/intake', payload(), format='json')
    assert r.status_code == 201, r.content
    body = r.json()
    assert body['isReturning'] is False
    assert body['data']['status'] == 'pending_validation'
    assert body['data']['aiDraftEsi'] == 2

    patient = Patient.objects.get(pk=body['patientId'])
    assert patient.medical_history == ['hypertension', 'x']
    v = VitalSigns.objects.get(patient=patient)
    assert v.heart_rate == 104 and v.recorded_by == nurse
    assert AuditLog.objects.filter(triage_case_id=body['caseId'], action='case_created').exists()


def test_intake_stores_plain_text(client_for, nurse):
    r = client_for(nurse).post('/api/intake', payload(
        chiefComplaint='<b>Chest pain</b> <i>since noon</i>', allergies=['<em>latex</em>'],
    ), format='json')
    patient = Patient.objects.get(pk=r.json()['patientId'])
    assert patient.chief_complaint == 'Chest pain since noon'
    assert patient.allergies == ['latex']


def test_intake_without_ai_drafting_stays_waiting(client_for, nurse):
    PhysicianSettings.objects.create(user=nurse, ai_drafting_enabled=False)
    r = client_for(nurse).post('/api/intake', payload(), format='json')
    assert r.json()['data']['status'] == 'waiting'
    assert r.json()['data']['aiDraftEsi'] is None


def test_returning_patient_reuses_record(client_for, nurse):
    c = client_for(nurse)
    first = c.post('/api/intake', payload(), format='json').json()
    again = payload(chiefComplaint='Follow-up wound check')
    del again['vitals']
    second = c.post('/api/intake', again, format='json').json()
    assert second['patientId'] == first['patientId']
    assert second['isReturning'] is True
    assert TriageCase.objects.filter(patient_id=first['patientId']).count() == 2
    assert Patient.objects.get(pk=first['patientId']).chief_complaint == 'Follow-up wound check'


@pytest.mark.parametrize('overrides, field', [
    ({'mrn': 'x'}, 'mrn'),
    ({'dateOfBirth': '2999-01-01'}, 'dateOfBirth'),
    ({'gender': 'unknown'}, 'gender'),
    ({'vitals': {'heartRate': 500}}, 'vitals'),
    ({'vitals': {'systolicBp': 80, 'diastolicBp': 90}}, 'vitals'),
])
def test_intake_validation(client_for, nurse, overrides, field):
    r = client_for(nurse).post('/api/intake', payload(**overrides), format='json')
    assert r.status_code == 400
    assert field in r.json()['error']['message']
    assert not Patient.objects.exists()


def test_add_vitals(client_for, nurse, patient):
    c = client_for(nurse)
    r = c.post(f'/api/patients/{patient.id}/vitals', {'heartRate': 118, 'oxygenSaturation': 93}, format='json')
    assert r.status_code == 201
    assert r.json()['data']['heartRate'] == 118
    assert patient.latest_vitals().heart_rate == 118

    r = c.post(f'/api/patients/{patient.id}/vitals', {}, format='json')
    assert r.status_code == 400
