from __future__ import annotations

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import PatientDocument
from ..permissions import IsClinician
from ..services.documents import analyze_document


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinician])
def document_analyze(request, document_id: int):
    """Run AI analysis on an uploaded document and store the result."""
    doc = get_object_or_404(PatientDocument, pk=document_id)
    analysis = analyze_document(doc)
    return Response({'ok': True, 'documentId': doc.id, 'analysis': analysis})

document_analyze.cls.throttle_scope = 'document_analysis'
