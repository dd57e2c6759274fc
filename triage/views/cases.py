"""
Triage case workflow endpoints.

Each POST endpoint drives one transition in ``services.workflow`` and
returns the refreshed case detail.  Illegal transitions come back as
409, role violations as 403.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import TriageCase
from ..permissions import IsClinician
from ..serializers.cases import AssignSerializer, EscalateSerializer, NotesSerializer, OrdersSerializer, ValidateSerializer
from ..services import workflow
from ..services.boards import case_row, overdue_info, user_brief
from ..services.protocols import protocol_for

User = get_user_model()


def _get_case(case_id: int) -> TriageCase:
    return get_object_or_404(TriageCase.objects.select_related('patient', 'assigned_to', 'validated_by'), pk=case_id)


def case_detail_dict(case: TriageCase) -> dict:
    routes = case.routing_assignments.select_related('assigned_to').order_by('created_at', 'id')
    events = case.escalation_events.select_related('from_user', 'to_user').order_by('created_at', 'id')
    return {
        **case_row(case),
        **overdue_info(case, timezone.now()),
        'aiExtractedSymptoms': case.ai_extracted_symptoms,
        'aiExtractedTimeline': case.ai_extracted_timeline,
        'aiComorbidities': case.ai_comorbidities,
        'aiInfluencingFactors': case.ai_influencing_factors,
        'sbar': {
            'situation': case.ai_sbar_situation,
            'background': case.ai_sbar_background,
            'assessment': case.ai_sbar_assessment,
            'recommendation': case.ai_sbar_recommendation,
        },
        'aiGeneratedAt': case.ai_generated_at.isoformat() if case.ai_generated_at else None,
        'validatedBy': user_brief(case.validated_by),
        'validatedAt': case.validated_at.isoformat() if case.validated_at else None,
        'overrideRationale': case.override_rationale,
        'overrideNotes': case.override_notes,
        'workupOrders': case.workup_orders,
        'assignments': [
            {
                'id': r.id,
                'assignedTo': user_brief(r.assigned_to),
                'assignedRole': r.assigned_role,
                'status': r.status,
                'escalationLevel': r.escalation_level,
                'escalationDeadline': r.escalation_deadline.isoformat() if r.escalation_deadline else None,
                'acknowledgedAt': r.acknowledged_at.isoformat() if r.acknowledged_at else None,
                'responseTimeMs': r.response_time_ms,
                'createdAt': r.created_at.isoformat(),
            }
            for r in routes
        ],
        'escalations': [
            {
                'id': e.id,
                'reason': e.reason,
                'fromRole': e.from_role,
                'fromUser': user_brief(e.from_user),
                'toRole': e.to_role,
                'toUser': user_brief(e.to_user),
                'notes': e.notes,
                'createdAt': e.created_at.isoformat(),
            }
            for e in events
        ],
    }


def _ok(case: TriageCase) -> Response:
    return Response({'ok': True, 'data': case_detail_dict(_get_case(case.id))})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinician])
def case_detail(request, case_id: int):
    return _ok(_get_case(case_id))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def case_start(request, case_id: int):
    return _ok(workflow.start_triage(_get_case(case_id), request.user))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def case_draft(request, case_id: int):
    return _ok(workflow.generate_draft(_get_case(case_id), request.user))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def case_validate(request, case_id: int):
    s = ValidateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    case = workflow.validate_case(
        _get_case(case_id), request.user, vd['esi'], rationale=vd.get('rationale'), notes=vd.get('notes', ''),
    )
    return _ok(case)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def case_assign(request, case_id: int):
    s = AssignSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    assignee = get_object_or_404(User, pk=s.validated_data['assigneeId'])
    case = workflow.assign_case(_get_case(case_id), assignee, request.user, zone=s.validated_data.get('zone'))
    return _ok(case)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def case_acknowledge(request, case_id: int):
    return _ok(workflow.acknowledge_case(_get_case(case_id), request.user))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def case_escalate(request, case_id: int):
    s = EscalateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    to_user = get_object_or_404(User, pk=vd['toUserId']) if vd.get('toUserId') else None
    case = workflow.escalate_case(
        _get_case(case_id), vd['reason'], user=request.user, notes=vd.get('notes', ''), to_user=to_user,
    )
    return _ok(case)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def case_resolve_escalation(request, case_id: int):
    s = NotesSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    return _ok(workflow.resolve_escalation(_get_case(case_id), request.user, notes=s.validated_data.get('notes', '')))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def case_treat(request, case_id: int):
    return _ok(workflow.start_treatment(_get_case(case_id), request.user))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def case_discharge(request, case_id: int):
    return _ok(workflow.discharge_case(_get_case(case_id), request.user))


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinician])
def case_orders(request, case_id: int):
    """Workup protocol for the case's ESI plus the current selection."""
    case = _get_case(case_id)
    if request.method == 'POST':
        s = OrdersSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        case = workflow.update_orders(case, request.user, s.validated_data['orders'])
    if case.esi is None:
        return Response({'ok': True, 'data': {'protocol': None, 'selected': case.workup_orders}})
    return Response({'ok': True, 'data': {'protocol': protocol_for(case.esi), 'selected': case.workup_orders}})
