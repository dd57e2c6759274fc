"""
Database models for the ED triage backend.

These models capture intake (patients and vitals), the triage case with
its AI draft and human validation, routing assignments with their
acknowledgment deadlines, escalation events, the append-only audit log,
shift handoffs and per-clinician settings.  Enum choices mirror the
values the dashboard already uses so rows serialise without mapping.
"""
from __future__ import annotations

import uuid
from datetime import date

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class Role(models.TextChoices):
    NURSE = 'nurse', 'Nurse'
    PHYSICIAN = 'physician', 'Physician'
    SENIOR_PHYSICIAN = 'senior_physician', 'Senior physician'
    CHARGE_NURSE = 'charge_nurse', 'Charge nurse'


class PatientStatus(models.TextChoices):
    WAITING = 'waiting', 'Waiting'
    IN_TRIAGE = 'in_triage', 'In triage'
    PENDING_VALIDATION = 'pending_validation', 'Pending validation'
    VALIDATED = 'validated', 'Validated'
    ASSIGNED = 'assigned', 'Assigned'
    ACKNOWLEDGED = 'acknowledged', 'Acknowledged'
    IN_TREATMENT = 'in_treatment', 'In treatment'
    DISCHARGED = 'discharged', 'Discharged'


class EscalationStatus(models.TextChoices):
    NONE = 'none', 'None'
    PENDING = 'pending', 'Pending'
    LEVEL_1 = 'level_1', 'Level 1'
    LEVEL_2 = 'level_2', 'Level 2'
    LEVEL_3 = 'level_3', 'Level 3'
    RESOLVED = 'resolved', 'Resolved'


class EscalationReason(models.TextChoices):
    TIMEOUT = 'timeout', 'Timeout'
    UNAVAILABLE = 'unavailable', 'Unavailable'
    MANUAL = 'manual', 'Manual'


class OverrideRationale(models.TextChoices):
    CLINICAL_JUDGMENT = 'clinical_judgment', 'Clinical judgment'
    ADDITIONAL_FINDINGS = 'additional_findings', 'Additional findings'
    PATIENT_HISTORY = 'patient_history', 'Patient history'
    VITAL_CHANGE = 'vital_change', 'Vital sign change'
    SYMPTOM_EVOLUTION = 'symptom_evolution', 'Symptom evolution'
    FAMILY_CONCERN = 'family_concern', 'Family concern'
    OTHER = 'other', 'Other'


class AuditAction(models.TextChoices):
    CASE_CREATED = 'case_created', 'Case created'
    AI_TRIAGE_COMPLETED = 'ai_triage_completed', 'AI draft'
    TRIAGE_VALIDATED = 'triage_validated', 'Validation'
    TRIAGE_OVERRIDDEN = 'triage_overridden', 'Override'
    CASE_ASSIGNED = 'case_assigned', 'Assignment'
    CASE_ACKNOWLEDGED = 'case_acknowledged', 'Acknowledgment'
    ESCALATION_TRIGGERED = 'escalation_triggered', 'Escalation'
    ESCALATION_RESOLVED = 'escalation_resolved', 'Escalation resolved'
    STATUS_CHANGED = 'status_changed', 'Status changed'


ESI_CHOICES = [(i, f'ESI {i}') for i in range(1, 6)]


class User(AbstractUser):
    """Clinician account.

    ``zone`` is the ED area the clinician currently covers and
    ``on_duty`` marks who the escalation sweep may route work to.
    """
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.NURSE, db_index=True)
    zone = models.CharField(max_length=32, blank=True, default='')
    on_duty = models.BooleanField(default=True, db_index=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username


class Patient(models.Model):
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]
    mrn = models.CharField(max_length=32, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    chief_complaint = models.TextField()
    arrival_time = models.DateTimeField(default=timezone.now, db_index=True)
    is_returning = models.BooleanField(default=False)
    allergies = models.JSONField(default=list, blank=True)
    medical_history = models.JSONField(default=list, blank=True)
    medications = models.JSONField(default=list, blank=True)
    fhir_reference = models.CharField(max_length=255, blank=True, null=True)
    status = models.CharField(
        max_length=20, choices=PatientStatus.choices, default=PatientStatus.WAITING, db_index=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.last_name}, {self.first_name} ({self.mrn})"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def age(self) -> int:
        today = date.today()
        dob = self.date_of_birth
        return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))

    def latest_vitals(self) -> 'VitalSigns | None':
        return self.vital_signs.order_by('-recorded_at', '-id').first()


class VitalSigns(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='vital_signs')
    heart_rate = models.PositiveIntegerField(null=True, blank=True)
    systolic_bp = models.PositiveIntegerField(null=True, blank=True)
    diastolic_bp = models.PositiveIntegerField(null=True, blank=True)
    respiratory_rate = models.PositiveIntegerField(null=True, blank=True)
    # Fahrenheit, as charted on the intake form
    temperature = models.DecimalField(max_digits=4, decimal_places=1, null=True, blank=True)
    oxygen_saturation = models.PositiveIntegerField(null=True, blank=True)
    pain_level = models.PositiveSmallIntegerField(null=True, blank=True)
    recorded_at = models.DateTimeField(default=timezone.now)
    recorded_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='recorded_vitals'
    )

    class Meta:
        verbose_name_plural = 'vital signs'
        indexes = [models.Index(fields=['patient', 'recorded_at'], name='vitals_patient_recorded_idx')]

    def __str__(self) -> str:
        return f"vitals p={self.patient_id} @ {self.recorded_at:%F %T}"


class TriageCase(models.Model):
    """One ED visit moving through draft, validation, routing and treatment."""
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='triage_cases')
    status = models.CharField(
        max_length=20, choices=PatientStatus.choices, default=PatientStatus.WAITING, db_index=True
    )
    escalation_status = models.CharField(
        max_length=10, choices=EscalationStatus.choices, default=EscalationStatus.NONE, db_index=True
    )

    # Rule-based draft
    ai_draft_esi = models.PositiveSmallIntegerField(choices=ESI_CHOICES, null=True, blank=True)
    ai_confidence = models.PositiveSmallIntegerField(null=True, blank=True)
    ai_extracted_symptoms = models.JSONField(default=list, blank=True)
    ai_extracted_timeline = models.TextField(blank=True, null=True)
    ai_comorbidities = models.JSONField(default=list, blank=True)
    ai_influencing_factors = models.JSONField(default=list, blank=True)
    ai_sbar_situation = models.TextField(blank=True, null=True)
    ai_sbar_background = models.TextField(blank=True, null=True)
    ai_sbar_assessment = models.TextField(blank=True, null=True)
    ai_sbar_recommendation = models.TextField(blank=True, null=True)
    ai_generated_at = models.DateTimeField(null=True, blank=True)

    # Human validation
    validated_esi = models.PositiveSmallIntegerField(choices=ESI_CHOICES, null=True, blank=True, db_index=True)
    validated_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='validated_cases'
    )
    validated_at = models.DateTimeField(null=True, blank=True)
    is_override = models.BooleanField(null=True, blank=True)
    override_rationale = models.CharField(max_length=32, choices=OverrideRationale.choices, blank=True, null=True)
    override_notes = models.TextField(blank=True, null=True)

    # Routing
    assigned_to = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='assigned_cases'
    )
    assigned_zone = models.CharField(max_length=32, blank=True, null=True)
    acknowledged_at = models.DateTimeField(null=True, blank=True)
    workup_orders = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'created_at'], name='case_status_created_idx'),
            models.Index(fields=['assigned_to', 'status'], name='case_assignee_status_idx'),
        ]

    def __str__(self) -> str:
        return f"case {self.pk} p={self.patient_id} [{self.status}]"

    @property
    def esi(self) -> int | None:
        """Final ESI if validated, otherwise the draft."""
        return self.validated_esi or self.ai_draft_esi

    def open_assignment(self) -> 'RoutingAssignment | None':
        return (
            self.routing_assignments.filter(status=RoutingAssignment.STATUS_PENDING)
            .order_by('-created_at', '-id')
            .first()
        )


class RoutingAssignment(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_ACKNOWLEDGED = 'acknowledged'
    STATUS_ESCALATED = 'escalated'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'pending'),
        (STATUS_ACKNOWLEDGED, 'acknowledged'),
        (STATUS_ESCALATED, 'escalated'),
        (STATUS_CANCELLED, 'cancelled'),
    )

    triage_case = models.ForeignKey(TriageCase, on_delete=models.CASCADE, related_name='routing_assignments')
    assigned_to = models.ForeignKey(User, on_delete=models.CASCADE, related_name='routing_assignments')
    assigned_role = models.CharField(max_length=20, choices=Role.choices)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    escalation_level = models.PositiveSmallIntegerField(default=0)
    escalation_deadline = models.DateTimeField(null=True, blank=True)
    acknowledged_at = models.DateTimeField(null=True, blank=True)
    response_time_ms = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        indexes = [
            models.Index(fields=['status', 'escalation_deadline'], name='route_status_deadline_idx'),
            models.Index(fields=['assigned_to', 'status'], name='route_assignee_status_idx'),
        ]

    def __str__(self) -> str:
        return f"route case={self.triage_case_id} -> {self.assigned_to_id} [{self.status}]"


class EscalationEvent(models.Model):
    triage_case = models.ForeignKey(TriageCase, on_delete=models.CASCADE, related_name='escalation_events')
    reason = models.CharField(max_length=16, choices=EscalationReason.choices)
    from_role = models.CharField(max_length=20, choices=Role.choices, blank=True, null=True)
    from_user = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='escalations_from'
    )
    to_role = models.CharField(max_length=20, choices=Role.choices)
    to_user = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='escalations_to'
    )
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"escalation case={self.triage_case_id} {self.from_role}->{self.to_role} ({self.reason})"


class AuditLog(models.Model):
    action = models.CharField(max_length=32, choices=AuditAction.choices)
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    patient = models.ForeignKey(Patient, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    triage_case = models.ForeignKey(
        TriageCase, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs'
    )
    details = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['patient', 'created_at'], name='audit_patient_created_idx'),
            models.Index(fields=['triage_case', 'created_at'], name='audit_case_created_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"


class ShiftHandoff(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_ACKNOWLEDGED = 'acknowledged'
    STATUS_CHOICES = ((STATUS_PENDING, 'pending'), (STATUS_ACKNOWLEDGED, 'acknowledged'))

    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name='handoffs_sent')
    receiver = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='handoffs_received'
    )
    patient_ids = models.JSONField(default=list)
    notes = models.TextField(blank=True, null=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    acknowledged_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"handoff {self.pk} {self.sender_id}->{self.receiver_id} [{self.status}]"


class PhysicianSettings(models.Model):
    """Per-clinician alerting, routing and AI drafting preferences."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='physician_settings')
    push_alerts_enabled = models.BooleanField(default=True)
    silent_routing_enabled = models.BooleanField(default=True)
    sound_alerts_enabled = models.BooleanField(default=True)
    # minutes
    esi1_timeout = models.PositiveSmallIntegerField(default=2)
    esi2_timeout = models.PositiveSmallIntegerField(default=5)
    ai_drafting_enabled = models.BooleanField(default=True)
    show_confidence_indicators = models.BooleanField(default=True)
    generate_sbar_summaries = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'physician settings'

    def __str__(self) -> str:
        return f"settings u={self.user_id}"


def _document_upload(instance, filename: str) -> str:
    import os
    ext = os.path.splitext(filename)[1]
    return f"documents/{date.today().strftime('%Y/%m')}/{uuid.uuid4().hex}{ext}"


class PatientDocument(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='documents')
    file = models.FileField(upload_to=_document_upload, max_length=512)
    file_type = models.CharField(max_length=128, blank=True, null=True)
    file_size = models.PositiveIntegerField(null=True, blank=True)
    uploaded_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='uploaded_documents'
    )
    ai_analysis = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['patient', 'created_at'], name='doc_patient_created_idx')]

    def __str__(self):
        return f"doc {self.pk} p={self.patient_id}"
