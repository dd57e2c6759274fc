"""
Django admin registrations for the triage models.

The audit log is read-only here: rows are written by the workflow only.
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    AuditLog,
    EscalationEvent,
    Patient,
    PatientDocument,
    PhysicianSettings,
    RoutingAssignment,
    ShiftHandoff,
    TriageCase,
    User,
    VitalSigns,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'role', 'zone', 'on_duty', 'is_staff', 'is_superuser')
    list_filter = ('role', 'zone', 'on_duty')
    search_fields = ('username', 'first_name', 'last_name')
    fieldsets = BaseUserAdmin.fieldsets + (('ED', {'fields': ('role', 'zone', 'on_duty')}),)


class VitalSignsInline(admin.TabularInline):
    model = VitalSigns
    extra = 0


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('mrn', 'last_name', 'first_name', 'status', 'arrival_time', 'is_returning')
    list_filter = ('status', 'gender', 'is_returning')
    search_fields = ('mrn', 'first_name', 'last_name', 'chief_complaint')
    inlines = [VitalSignsInline]


class RoutingAssignmentInline(admin.TabularInline):
    model = RoutingAssignment
    extra = 0


@admin.register(TriageCase)
class TriageCaseAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'status', 'ai_draft_esi', 'validated_esi', 'escalation_status', 'assigned_to')
    list_filter = ('status', 'escalation_status', 'validated_esi', 'is_override')
    search_fields = ('id', 'patient__mrn', 'patient__last_name')
    inlines = [RoutingAssignmentInline]


@admin.register(EscalationEvent)
class EscalationEventAdmin(admin.ModelAdmin):
    list_display = ('triage_case', 'reason', 'from_role', 'to_role', 'to_user', 'created_at')
    list_filter = ('reason', 'to_role')


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'user', 'patient', 'triage_case')
    list_filter = ('action',)
    search_fields = ('patient__mrn', 'user__username')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ShiftHandoff)
class ShiftHandoffAdmin(admin.ModelAdmin):
    list_display = ('id', 'sender', 'receiver', 'status', 'created_at')
    list_filter = ('status',)


@admin.register(PhysicianSettings)
class PhysicianSettingsAdmin(admin.ModelAdmin):
    list_display = ('user', 'esi1_timeout', 'esi2_timeout', 'ai_drafting_enabled')


@admin.register(PatientDocument)
class PatientDocumentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'file_type', 'file_size', 'created_at')
