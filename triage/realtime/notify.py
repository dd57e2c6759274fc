"""
Channel-layer broadcasts for the dashboard.

``UPDATES_GROUP`` carries ``broadcast.refresh`` events telling clients
which datasets to refetch.  ``ALERTS_GROUP`` carries clinical alerts
(``critical_case`` and ``escalation``).  Both helpers are no-ops when
no channel layer is configured.  A failed send is logged
and reported as ``False`` instead of raising.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

logger = logging.getLogger(__name__)

UPDATES_GROUP = 'updates'
ALERTS_GROUP = 'alerts'

CRITICAL_CASE = 'critical_case'
ESCALATION = 'escalation'


def _send(group: str, event: dict) -> bool:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False
    try:
        async_to_sync(channel_layer.group_send)(group, event)
    except Exception:
        logger.exception('channel layer send to %s failed', group)
        return False
    return True


def broadcast_refresh(keys: Iterable[str]) -> bool:
    """Tell connected dashboards that ``keys`` (e.g. ``cases``) changed."""
    now = timezone.now()
    event = {
        'type': 'broadcast.refresh',
        'version': int(now.timestamp()),
        'ts': now.isoformat(),
        'keys': list(keys)[:50],
    }
    return _send(UPDATES_GROUP, event)


def send_alert(kind: str, payload: dict[str, Any]) -> bool:
    event = {
        'type': 'alert.message',
        'kind': kind,
        'ts': timezone.now().isoformat(),
        'payload': payload,
    }
    sent = _send(ALERTS_GROUP, event)
    if sent:
        logger.info('alert %s sent for case %s', kind, payload.get('caseId'))
    return sent


def critical_case_alert(case) -> bool:
    return send_alert(CRITICAL_CASE, {
        'caseId': case.id,
        'patientId': case.patient_id,
        'esiLevel': case.esi,
        'chiefComplaint': case.patient.chief_complaint,
    })


def escalation_alert(case, *, level: str, assigned_role: str, to_user_id: int | None) -> bool:
    return send_alert(ESCALATION, {
        'caseId': case.id,
        'patientId': case.patient_id,
        'esiLevel': case.esi,
        'level': level,
        'assignedRole': assigned_role,
        'toUserId': to_user_id,
    })
