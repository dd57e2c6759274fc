from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from triage.models import AuditAction, Patient, PatientStatus, TriageCase, VitalSigns
from triage.realtime.notify import broadcast_refresh
from triage.services.audit import log_action
from triage.services.physician_settings import settings_for
from triage.services.text import clean_text
from triage.services.workflow import generate_draft

logger = logging.getLogger(__name__)

VITAL_FIELDS = (
    'heart_rate', 'systolic_bp', 'diastolic_bp', 'respiratory_rate',
    'temperature', 'oxygen_saturation', 'pain_level',
)


def _clean_list(items) -> list[str]:
    return [c for c in (clean_text(str(i)) for i in (items or [])) if c]


def record_vitals(patient: Patient, vitals: Optional[dict], user=None) -> Optional[VitalSigns]:
    """Store a vitals set; returns None when every value is empty."""
    values = {k: (vitals or {}).get(k) for k in VITAL_FIELDS}
    if all(v is None for v in values.values()):
        return None
    row = VitalSigns.objects.create(
        patient=patient,
        recorded_by=user if getattr(user, 'pk', None) else None,
        recorded_at=(vitals or {}).get('recorded_at') or timezone.now(),
        **values,
    )
    transaction.on_commit(lambda: broadcast_refresh(['cases']))
    return row


def admit_patient(data: dict, user, auto_draft: Optional[bool] = None) -> tuple[Patient, TriageCase]:
    """Create or reuse a patient by MRN, record vitals and open a waiting case.

    ``data`` is the validated intake payload: the patient fields plus an
    optional ``vitals`` dict.  A draft is scored straight away when the
    recording clinician has AI drafting enabled, unless ``auto_draft``
    says otherwise.
    """
    mrn = data['mrn'].strip()
    fields = {
        'first_name': clean_text(data['first_name']),
        'last_name': clean_text(data['last_name']),
        'date_of_birth': data['date_of_birth'],
        'gender': data['gender'],
        'chief_complaint': clean_text(data['chief_complaint']),
        'arrival_time': data.get('arrival_time') or timezone.now(),
        'allergies': _clean_list(data.get('allergies')),
        'medical_history': _clean_list(data.get('medical_history')),
        'medications': _clean_list(data.get('medications')),
        'status': PatientStatus.WAITING,
    }
    if data.get('fhir_reference'):
        fields['fhir_reference'] = data['fhir_reference'].strip()

    with transaction.atomic():
        patient = Patient.objects.select_for_update().filter(mrn=mrn).first()
        if patient is None:
            patient = Patient.objects.create(mrn=mrn, **fields)
        else:
            for k, v in fields.items():
                setattr(patient, k, v)
            patient.is_returning = True
            patient.save()
        record_vitals(patient, data.get('vitals'), user)
        case = TriageCase.objects.create(patient=patient, status=PatientStatus.WAITING)
        log_action(
            user=user, action=AuditAction.CASE_CREATED, patient=patient, triage_case=case,
            details={'mrn': mrn, 'isReturning': patient.is_returning},
        )
    logger.info('intake: case %s opened for patient %s (returning=%s)', case.id, patient.id, patient.is_returning)
    broadcast_refresh(['cases'])

    if auto_draft is None:
        auto_draft = settings_for(user).ai_drafting_enabled
    if auto_draft:
        case = generate_draft(case, user)
    return patient, case
