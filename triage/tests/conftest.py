from datetime import date
import logging

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from triage.models import Patient, TriageCase, User, VitalSigns


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    # throttles count requests in the cache; keep tests independent
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def triage_logs(caplog, monkeypatch):
    """caplog for the app loggers, which do not propagate to root."""
    monkeypatch.setattr(logging.getLogger('triage'), 'propagate', True)
    caplog.set_level(logging.INFO, logger='triage')
    return caplog


def make_user(username, role, zone='A', **extra):
    return User.objects.create_user(username=username, password='P@ssw0rd1', role=role, zone=zone, **extra)


@pytest.fixture
def nurse(db):
    return make_user('nurse1', 'nurse')


@pytest.fixture
def physician(db):
    return make_user('doctor1', 'physician', first_name='Dana', last_name='Reyes')


@pytest.fixture
def charge_nurse(db):
    return make_user('charge1', 'charge_nurse')


@pytest.fixture
def senior(db):
    return make_user('senior1', 'senior_physician')


@pytest.fixture
def client_for():
    def _client(user):
        c = APIClient()
        c.force_authenticate(user=user)
        return c
    return _client


def make_patient(mrn='MRN-0001', complaint='Sore throat for 2 days', history=None, dob=date(1990, 1, 1), **vitals):
    p = Patient.objects.create(
        mrn=mrn,
        first_name='Jane',
        last_name='Doe',
        date_of_birth=dob,
        gender='female',
        chief_complaint=complaint,
        medical_history=history or [],
    )
    if vitals:
        VitalSigns.objects.create(patient=p, **vitals)
    return p


NORMAL_VITALS = dict(
    heart_rate=80, systolic_bp=120, diastolic_bp=80, respiratory_rate=16,
    temperature=98.6, oxygen_saturation=98, pain_level=2,
)


@pytest.fixture
def patient(db):
    return make_patient(**NORMAL_VITALS)


@pytest.fixture
def case(patient):
    return TriageCase.objects.create(patient=patient)
