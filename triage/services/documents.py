"""
Patient document uploads and Gemini-backed analysis.

``analyze_document`` posts the file inline to the Gemini
``generateContent`` REST endpoint and asks for a JSON reply matching
``RESPONSE_SCHEMA``.  Any failure raises ``DocumentAnalysisError``;
there is no retry.
"""
from __future__ import annotations

import base64
import json
import logging

import requests
from django.conf import settings

from triage.exceptions import DocumentAnalysisError, ValidationError
from triage.models import Patient, PatientDocument
from triage.realtime.notify import broadcast_refresh

logger = logging.getLogger(__name__)

PROMPT = (
    'Analyze this medical document. Identify key findings, potential diagnosis, '
    'suggested vital signs if visible, and a summary. Return a valid JSON object.'
)

RESPONSE_SCHEMA = {
    'type': 'OBJECT',
    'properties': {
        'findings': {'type': 'ARRAY', 'items': {'type': 'STRING'}},
        'diagnosis': {'type': 'STRING'},
        'vitals': {
            'type': 'OBJECT',
            'properties': {
                'bp': {'type': 'STRING'},
                'hr': {'type': 'STRING'},
                'spo2': {'type': 'STRING'},
            },
        },
        'summary': {'type': 'STRING'},
    },
}


def save_upload(patient: Patient, f, user=None) -> PatientDocument:
    size_mb = (f.size or 0) / (1024 * 1024)
    if size_mb > settings.UPLOAD_MAX_MB:
        raise ValidationError({'file': f'File exceeds {settings.UPLOAD_MAX_MB} MB.'})
    ctype = getattr(f, 'content_type', '') or ''
    if not any(ctype.startswith(prefix) for prefix in settings.ALLOWED_UPLOAD_TYPES):
        raise ValidationError({'file': f'Unsupported file type {ctype or "unknown"}.'})
    doc = PatientDocument.objects.create(
        patient=patient,
        file=f,
        file_type=ctype,
        file_size=f.size or 0,
        uploaded_by=user if getattr(user, 'pk', None) else None,
    )
    broadcast_refresh(['documents'])
    return doc


def _endpoint() -> str:
    return f"{settings.GEMINI_API_BASE.rstrip('/')}/models/{settings.GEMINI_MODEL}:generateContent"


def build_payload(data: bytes, mime_type: str) -> dict:
    return {
        'contents': [{
            'parts': [
                {'text': PROMPT},
                {'inline_data': {'mime_type': mime_type or 'image/jpeg', 'data': base64.b64encode(data).decode('ascii')}},
            ],
        }],
        'generationConfig': {
            'responseMimeType': 'application/json',
            'responseSchema': RESPONSE_SCHEMA,
        },
    }


def parse_reply(body: dict) -> dict:
    try:
        text = body['candidates'][0]['content']['parts'][0]['text']
        result = json.loads(text)
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise DocumentAnalysisError(f'Unreadable analysis reply: {exc}')
    if not isinstance(result, dict):
        raise DocumentAnalysisError('Analysis reply is not a JSON object.')
    return result


def analyze_document(doc: PatientDocument) -> dict:
    if not settings.GEMINI_API_KEY:
        raise DocumentAnalysisError('GEMINI_API_KEY not configured')
    with doc.file.open('rb') as fh:
        data = fh.read()
    payload = build_payload(data, doc.file_type)
    try:
        r = requests.post(
            _endpoint(),
            params={'key': settings.GEMINI_API_KEY},
            json=payload,
            timeout=settings.GEMINI_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.warning('document %s: analysis request failed: %s', doc.id, exc)
        raise DocumentAnalysisError(f'Analysis request failed: {exc}')
    if not r.ok:
        logger.warning('document %s: Gemini returned %s: %s', doc.id, r.status_code, r.text[:500])
        raise DocumentAnalysisError(f'Gemini API failed with status {r.status_code}')
    try:
        body = r.json()
    except ValueError as exc:
        raise DocumentAnalysisError(f'Unreadable analysis reply: {exc}')
    result = parse_reply(body)
    doc.ai_analysis = result
    doc.save(update_fields=['ai_analysis'])
    logger.info('document %s analysed for patient %s', doc.id, doc.patient_id)
    broadcast_refresh(['documents'])
    return result


def format_document(doc: PatientDocument) -> dict:
    return {
        'id': doc.id,
        'patientId': doc.patient_id,
        'url': doc.file.url if doc.file else None,
        'fileType': doc.file_type,
        'fileSize': doc.file_size,
        'uploadedBy': doc.uploaded_by_id,
        'aiAnalysis': doc.ai_analysis,
        'createdAt': doc.created_at.isoformat(),
    }
