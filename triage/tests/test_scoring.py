"""
Unit tests for the rule-based ESI draft.

These run without the database: patients and vitals are unsaved model
instances.
"""
from datetime import date

from triage.models import Patient, VitalSigns
from triage.services.scoring import draft_triage


def patient(complaint, age=35, history=None, **extra):
    today = date.today()
    return Patient(
        mrn='T-1',
        first_name='Sam',
        last_name='Patel',
        date_of_birth=date(today.year - age, 1, 1),
        gender='male',
        chief_complaint=complaint,
        medical_history=history or [],
        **extra,
    )


def vitals(**overrides):
    base = dict(heart_rate=80, systolic_bp=120, diastolic_bp=80, respiratory_rate=16,
                temperature=98.6, oxygen_saturation=98, pain_level=2)
    base.update(overrides)
    return VitalSigns(**base)


def test_hypoxia_is_esi1_with_full_confidence():
    d = draft_triage(patient('Shortness of breath'), vitals(oxygen_saturation=85))
    assert d.esi == 1
    assert d.confidence == 90
    assert any(f['factor'].startswith('Critical vital') for f in d.influencing_factors)


def test_immediate_keyword_without_vitals_loses_confidence():
    d = draft_triage(patient('Found in cardiac arrest'), None)
    assert d.esi == 1
    assert d.confidence == 75
    assert 'cardiac arrest' in d.extracted_symptoms


def test_high_risk_complaint_with_calm_vitals_is_esi2_with_conflict():
    d = draft_triage(patient('Chest pain for 1 hour'), vitals())
    assert d.esi == 2
    assert d.confidence == 85
    assert {'factor': 'Vital signs outside danger zone', 'impact': 'decreases', 'category': 'vital'} in d.influencing_factors


def test_danger_zone_heart_rate_is_esi2():
    d = draft_triage(patient('Sore throat for 2 days'), vitals(heart_rate=110))
    assert d.esi == 2
    assert d.confidence == 85


def test_fever_in_elderly_is_esi2():
    d = draft_triage(patient('Cough', age=70), vitals(temperature=101.2))
    assert d.esi == 2
    assert any(f['category'] == 'demographic' for f in d.influencing_factors)


def test_severe_pain_is_esi2():
    d = draft_triage(patient('Back pain'), vitals(pain_level=9))
    assert d.esi == 2
    assert d.confidence == 90


def test_two_resources_is_esi3():
    d = draft_triage(patient('Abdominal pain and vomiting since yesterday'), vitals())
    assert d.esi == 3
    assert d.confidence == 75
    assert d.timeline == 'Onset: since yesterday'


def test_one_resource_is_esi4():
    d = draft_triage(patient('Fever and chills'), vitals())
    assert d.esi == 4


def test_comorbidities_add_a_resource():
    d = draft_triage(patient('Rash', history=['diabetes', 'hypertension']), vitals())
    assert d.esi == 4
    assert d.comorbidities == ['diabetes', 'hypertension']


def test_no_resources_is_esi5_and_borderline_vitals_conflict():
    assert draft_triage(patient('Sore throat for 2 days'), vitals()).esi == 5
    d = draft_triage(patient('Sore throat for 2 days'), vitals(heart_rate=95))
    assert d.esi == 5
    assert d.confidence == 70


def test_missing_vitals_on_resource_path():
    d = draft_triage(patient('Rash'), None)
    assert d.esi == 5
    assert d.confidence == 60


def test_sbar_is_generated_or_skipped():
    p = patient('Abdominal pain for 3 days', history=['asthma'], allergies=['penicillin'])
    d = draft_triage(p, vitals())
    assert 'Abdominal pain' in d.situation
    assert 'asthma' in d.background and 'penicillin' in d.background
    assert 'Draft ESI 3' in d.assessment
    assert d.recommendation

    bare = draft_triage(p, vitals(), include_sbar=False)
    assert bare.esi == d.esi
    assert bare.situation == bare.background == bare.assessment == bare.recommendation == ''
