"""
Role based permission classes for the triage API.
"""
from rest_framework.permissions import BasePermission

from .models import Role

CLINICIAN_ROLES = {Role.NURSE, Role.PHYSICIAN, Role.SENIOR_PHYSICIAN, Role.CHARGE_NURSE}
PRESCRIBER_ROLES = {Role.PHYSICIAN, Role.SENIOR_PHYSICIAN}
SUPERVISOR_ROLES = {Role.CHARGE_NURSE, Role.SENIOR_PHYSICIAN}


def has_role(user, roles) -> bool:
    return bool(user and getattr(user, 'is_authenticated', False) and getattr(user, 'role', None) in roles)


def is_clinician(user) -> bool:
    return has_role(user, CLINICIAN_ROLES)


def is_prescriber(user) -> bool:
    return has_role(user, PRESCRIBER_ROLES)


def is_supervisor(user) -> bool:
    return has_role(user, SUPERVISOR_ROLES)


class IsClinician(BasePermission):
    """Allow access only to users holding one of the clinical roles."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return is_clinician(getattr(request, 'user', None))
