"""Per-clinician settings with defaults when no row exists."""
from __future__ import annotations

from triage.models import PhysicianSettings

SETTING_FIELDS = (
    'push_alerts_enabled',
    'silent_routing_enabled',
    'sound_alerts_enabled',
    'esi1_timeout',
    'esi2_timeout',
    'ai_drafting_enabled',
    'show_confidence_indicators',
    'generate_sbar_summaries',
)


def defaults() -> dict:
    return {f: PhysicianSettings._meta.get_field(f).get_default() for f in SETTING_FIELDS}


def settings_for(user) -> PhysicianSettings:
    """Stored settings, or an unsaved instance carrying the defaults."""
    if user is None or not getattr(user, 'pk', None):
        return PhysicianSettings()
    found = PhysicianSettings.objects.filter(user=user).first()
    return found or PhysicianSettings(user=user)


def update_settings(user, values: dict) -> PhysicianSettings:
    obj, _ = PhysicianSettings.objects.get_or_create(user=user)
    changed = []
    for field, value in values.items():
        if field in SETTING_FIELDS:
            setattr(obj, field, value)
            changed.append(field)
    if changed:
        obj.save(update_fields=changed + ['updated_at'])
    return obj


def reset_settings(user) -> PhysicianSettings:
    return update_settings(user, defaults())
