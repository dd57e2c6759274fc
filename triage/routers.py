"""
URL mappings for the triage API.

Trailing slashes are omitted to match the dashboard's endpoint table.
"""
from django.urls import path, include

from .auth_views import login_view, jwt_refresh_view, jwt_logout_view, me_view
from .views import audit, boards, cases, documents, handoffs, health, patients
from .views.physician_settings import physician_settings, physician_settings_reset

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    path('api/system/status', health.system_status, name='system_status'),

    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh_view'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout_view'),
    path('api/auth/me', me_view, name='me_view'),

    path('api/intake', patients.intake, name='intake'),
    path('api/patients/<int:patient_id>', patients.patient_detail, name='patient_detail'),
    path('api/patients/<int:patient_id>/vitals', patients.patient_vitals, name='patient_vitals'),
    path('api/patients/<int:patient_id>/documents', patients.patient_documents, name='patient_documents'),
    path('api/documents/<int:document_id>/analyze', documents.document_analyze, name='document_analyze'),

    path('api/cases/<int:case_id>', cases.case_detail, name='case_detail'),
    path('api/cases/<int:case_id>/start', cases.case_start, name='case_start'),
    path('api/cases/<int:case_id>/draft', cases.case_draft, name='case_draft'),
    path('api/cases/<int:case_id>/validate', cases.case_validate, name='case_validate'),
    path('api/cases/<int:case_id>/assign', cases.case_assign, name='case_assign'),
    path('api/cases/<int:case_id>/acknowledge', cases.case_acknowledge, name='case_acknowledge'),
    path('api/cases/<int:case_id>/escalate', cases.case_escalate, name='case_escalate'),
    path('api/cases/<int:case_id>/resolve-escalation', cases.case_resolve_escalation, name='case_resolve_escalation'),
    path('api/cases/<int:case_id>/treat', cases.case_treat, name='case_treat'),
    path('api/cases/<int:case_id>/discharge', cases.case_discharge, name='case_discharge'),
    path('api/cases/<int:case_id>/orders', cases.case_orders, name='case_orders'),

    path('api/queue', boards.queue_list, name='queue_list'),
    path('api/board', boards.track_board, name='track_board'),
    path('api/my-patients', boards.my_patients, name='my_patients'),

    path('api/audit-logs', audit.audit_logs, name='audit_logs'),
    path('api/audit-logs/stats', audit.audit_log_stats, name='audit_log_stats'),
    path('api/audit-logs/export', audit.audit_log_export, name='audit_log_export'),

    path('api/handoffs', handoffs.handoffs, name='handoffs'),
    path('api/handoffs/draft', handoffs.handoff_draft, name='handoff_draft'),
    path('api/handoffs/<int:handoff_id>/acknowledge', handoffs.handoff_acknowledge, name='handoff_acknowledge'),

    path('api/settings', physician_settings, name='physician_settings'),
    path('api/settings/reset', physician_settings_reset, name='physician_settings_reset'),
]
