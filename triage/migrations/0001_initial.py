import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import triage.models


ROLE_CHOICES = [
    ('nurse', 'Nurse'),
    ('physician', 'Physician'),
    ('senior_physician', 'Senior physician'),
    ('charge_nurse', 'Charge nurse'),
]
PATIENT_STATUS_CHOICES = [
    ('waiting', 'Waiting'),
    ('in_triage', 'In triage'),
    ('pending_validation', 'Pending validation'),
    ('validated', 'Validated'),
    ('assigned', 'Assigned'),
    ('acknowledged', 'Acknowledged'),
    ('in_treatment', 'In treatment'),
    ('discharged', 'Discharged'),
]
ESI_CHOICES = [(1, 'ESI 1'), (2, 'ESI 2'), (3, 'ESI 3'), (4, 'ESI 4'), (5, 'ESI 5')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=ROLE_CHOICES, db_index=True, default='nurse', max_length=20)),
                ('zone', models.CharField(blank=True, default='', max_length=32)),
                ('on_duty', models.BooleanField(db_index=True, default=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Patient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('mrn', models.CharField(max_length=32, unique=True)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('date_of_birth', models.DateField()),
                ('gender', models.CharField(choices=[('male', 'Male'), ('female', 'Female'), ('other', 'Other')], max_length=10)),
                ('chief_complaint', models.TextField()),
                ('arrival_time', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('is_returning', models.BooleanField(default=False)),
                ('allergies', models.JSONField(blank=True, default=list)),
                ('medical_history', models.JSONField(blank=True, default=list)),
                ('medications', models.JSONField(blank=True, default=list)),
                ('fhir_reference', models.CharField(blank=True, max_length=255, null=True)),
                ('status', models.CharField(choices=PATIENT_STATUS_CHOICES, db_index=True, default='waiting', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='VitalSigns',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('heart_rate', models.PositiveIntegerField(blank=True, null=True)),
                ('systolic_bp', models.PositiveIntegerField(blank=True, null=True)),
                ('diastolic_bp', models.PositiveIntegerField(blank=True, null=True)),
                ('respiratory_rate', models.PositiveIntegerField(blank=True, null=True)),
                ('temperature', models.DecimalField(blank=True, decimal_places=1, max_digits=4, null=True)),
                ('oxygen_saturation', models.PositiveIntegerField(blank=True, null=True)),
                ('pain_level', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('recorded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vital_signs', to='triage.patient')),
                ('recorded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='recorded_vitals', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'vital signs',
                'indexes': [models.Index(fields=['patient', 'recorded_at'], name='vitals_patient_recorded_idx')],
            },
        ),
        migrations.CreateModel(
            name='TriageCase',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=PATIENT_STATUS_CHOICES, db_index=True, default='waiting', max_length=20)),
                ('escalation_status', models.CharField(choices=[('none', 'None'), ('pending', 'Pending'), ('level_1', 'Level 1'), ('level_2', 'Level 2'), ('level_3', 'Level 3'), ('resolved', 'Resolved')], db_index=True, default='none', max_length=10)),
                ('ai_draft_esi', models.PositiveSmallIntegerField(blank=True, choices=ESI_CHOICES, null=True)),
                ('ai_confidence', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('ai_extracted_symptoms', models.JSONField(blank=True, default=list)),
                ('ai_extracted_timeline', models.TextField(blank=True, null=True)),
                ('ai_comorbidities', models.JSONField(blank=True, default=list)),
                ('ai_influencing_factors', models.JSONField(blank=True, default=list)),
                ('ai_sbar_situation', models.TextField(blank=True, null=True)),
                ('ai_sbar_background', models.TextField(blank=True, null=True)),
                ('ai_sbar_assessment', models.TextField(blank=True, null=True)),
                ('ai_sbar_recommendation', models.TextField(blank=True, null=True)),
                ('ai_generated_at', models.DateTimeField(blank=True, null=True)),
                ('validated_esi', models.PositiveSmallIntegerField(blank=True, choices=ESI_CHOICES, db_index=True, null=True)),
                ('validated_at', models.DateTimeField(blank=True, null=True)),
                ('is_override', models.BooleanField(blank=True, null=True)),
                ('override_rationale', models.CharField(blank=True, choices=[('clinical_judgment', 'Clinical judgment'), ('additional_findings', 'Additional findings'), ('patient_history', 'Patient history'), ('vital_change', 'Vital sign change'), ('symptom_evolution', 'Symptom evolution'), ('family_concern', 'Family concern'), ('other', 'Other')], max_length=32, null=True)),
                ('override_notes', models.TextField(blank=True, null=True)),
                ('assigned_zone', models.CharField(blank=True, max_length=32, null=True)),
                ('acknowledged_at', models.DateTimeField(blank=True, null=True)),
                ('workup_orders', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='triage_cases', to='triage.patient')),
                ('validated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='validated_cases', to=settings.AUTH_USER_MODEL)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_cases', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['status', 'created_at'], name='case_status_created_idx'),
                    models.Index(fields=['assigned_to', 'status'], name='case_assignee_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RoutingAssignment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('assigned_role', models.CharField(choices=ROLE_CHOICES, max_length=20)),
                ('status', models.CharField(choices=[('pending', 'pending'), ('acknowledged', 'acknowledged'), ('escalated', 'escalated'), ('cancelled', 'cancelled')], default='pending', max_length=16)),
                ('escalation_level', models.PositiveSmallIntegerField(default=0)),
                ('escalation_deadline', models.DateTimeField(blank=True, null=True)),
                ('acknowledged_at', models.DateTimeField(blank=True, null=True)),
                ('response_time_ms', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('triage_case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='routing_assignments', to='triage.triagecase')),
                ('assigned_to', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='routing_assignments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['status', 'escalation_deadline'], name='route_status_deadline_idx'),
                    models.Index(fields=['assigned_to', 'status'], name='route_assignee_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='EscalationEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reason', models.CharField(choices=[('timeout', 'Timeout'), ('unavailable', 'Unavailable'), ('manual', 'Manual')], max_length=16)),
                ('from_role', models.CharField(blank=True, choices=ROLE_CHOICES, max_length=20, null=True)),
                ('to_role', models.CharField(choices=ROLE_CHOICES, max_length=20)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('triage_case', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='escalation_events', to='triage.triagecase')),
                ('from_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='escalations_from', to=settings.AUTH_USER_MODEL)),
                ('to_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='escalations_to', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('case_created', 'Case created'), ('ai_triage_completed', 'AI draft'), ('triage_validated', 'Validation'), ('triage_overridden', 'Override'), ('case_assigned', 'Assignment'), ('case_acknowledged', 'Acknowledgment'), ('escalation_triggered', 'Escalation'), ('escalation_resolved', 'Escalation resolved'), ('status_changed', 'Status changed')], max_length=32)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, max_length=255, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='triage.patient')),
                ('triage_case', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to='triage.triagecase')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
                    models.Index(fields=['patient', 'created_at'], name='audit_patient_created_idx'),
                    models.Index(fields=['triage_case', 'created_at'], name='audit_case_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ShiftHandoff',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_ids', models.JSONField(default=list)),
                ('notes', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending', 'pending'), ('acknowledged', 'acknowledged')], default='pending', max_length=16)),
                ('acknowledged_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('sender', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='handoffs_sent', to=settings.AUTH_USER_MODEL)),
                ('receiver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='handoffs_received', to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.CreateModel(
            name='PhysicianSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('push_alerts_enabled', models.BooleanField(default=True)),
                ('silent_routing_enabled', models.BooleanField(default=True)),
                ('sound_alerts_enabled', models.BooleanField(default=True)),
                ('esi1_timeout', models.PositiveSmallIntegerField(default=2)),
                ('esi2_timeout', models.PositiveSmallIntegerField(default=5)),
                ('ai_drafting_enabled', models.BooleanField(default=True)),
                ('show_confidence_indicators', models.BooleanField(default=True)),
                ('generate_sbar_summaries', models.BooleanField(default=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='physician_settings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name_plural': 'physician settings',
            },
        ),
        migrations.CreateModel(
            name='PatientDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('file', models.FileField(max_length=512, upload_to=triage.models._document_upload)),
                ('file_type', models.CharField(blank=True, max_length=128, null=True)),
                ('file_size', models.PositiveIntegerField(blank=True, null=True)),
                ('ai_analysis', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='triage.patient')),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_documents', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [models.Index(fields=['patient', 'created_at'], name='doc_patient_created_idx')],
            },
        ),
    ]
