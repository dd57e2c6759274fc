"""
Intake and patient endpoints.

``POST /api/intake`` registers (or re-registers, by MRN) a patient,
stores the first vitals and opens a waiting triage case.  The other
endpoints read a patient, add vitals and manage uploaded documents.
"""
from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Patient
from ..permissions import IsClinician
from ..serializers.intake import IntakeSerializer, VitalsSerializer
from ..services.boards import case_row, patient_dict, vitals_dict
from ..services.documents import format_document, save_upload
from ..services.intake import admit_patient, record_vitals


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def intake(request):
    s = IntakeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient, case = admit_patient(s.validated_data, request.user)
    return Response(
        {'ok': True, 'patientId': patient.id, 'caseId': case.id, 'isReturning': patient.is_returning,
         'data': case_row(case)},
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinician])
def patient_detail(request, patient_id: int):
    """Patient with latest vitals, age and every triage case, newest first."""
    patient = get_object_or_404(Patient, pk=patient_id)
    cases = patient.triage_cases.select_related('patient', 'assigned_to').order_by('-created_at', '-id')
    return Response({
        'ok': True,
        'data': {
            **patient_dict(patient),
            'dateOfBirth': patient.date_of_birth.isoformat(),
            'medicalHistory': patient.medical_history,
            'medications': patient.medications,
            'fhirReference': patient.fhir_reference,
            'latestVitals': vitals_dict(patient.latest_vitals()),
            'cases': [case_row(c) for c in cases],
        },
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def patient_vitals(request, patient_id: int):
    patient = get_object_or_404(Patient, pk=patient_id)
    s = VitalsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    row = record_vitals(patient, s.validated_data, request.user)
    if row is None:
        return Response(
            {'ok': False, 'error': {'code': 'invalid', 'message': 'At least one vital sign is required.'}},
            status=status.HTTP_400_BAD_REQUEST,
        )
    return Response({'ok': True, 'data': vitals_dict(row)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsClinician])
@parser_classes([MultiPartParser, FormParser])
def patient_documents(request, patient_id: int):
    patient = get_object_or_404(Patient, pk=patient_id)
    if request.method == 'POST':
        f = request.FILES.get('file')
        if f is None:
            return Response(
                {'ok': False, 'error': {'code': 'invalid', 'message': 'file is required'}},
                status=status.HTTP_400_BAD_REQUEST,
            )
        doc = save_upload(patient, f, request.user)
        return Response({'ok': True, 'data': format_document(doc)}, status=status.HTTP_201_CREATED)
    docs = patient.documents.order_by('-created_at', '-id')
    return Response({'ok': True, 'data': [format_document(d) for d in docs]})
