import base64
import json

import pytest
import requests
from django.core.files.uploadedfile import SimpleUploadedFile

from triage.exceptions import DocumentAnalysisError
from triage.models import PatientDocument
from triage.services import documents

pytestmark = pytest.mark.django_db

PNG = b'\x89PNG\r\n\x1a\n fake image bytes'

ANALYSIS = {
    'findings': ['Elevated troponin'],
    'diagnosis': 'NSTEMI',
    'vitals': {'bp': '150/95', 'hr': '104', 'spo2': '95'},
    'summary': 'Outside lab report suggesting myocardial injury.',
}


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=''):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError('no json')
        return self._payload


def gemini_reply(result):
    return {'candidates': [{'content': {'parts': [{'text': json.dumps(result)}]}}]}


@pytest.fixture(autouse=True)
def media(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    settings.GEMINI_API_KEY = 'test-key'
    settings.GEMINI_MODEL = 'gemini-test'
    settings.GEMINI_API_BASE = 'https://gemini.example/v1beta'
    return tmp_path


def upload(client, patient, name='lab.png', content=PNG, content_type='image/png'):
    f = SimpleUploadedFile(name, content, content_type=content_type)
    return client.post(f'/api/patients/{patient.id}/documents', {'file': f}, format='multipart')


@pytest.fixture
def document(client_for, nurse, patient):
    r = upload(client_for(nurse), patient)
    return PatientDocument.objects.get(pk=r.json()['data']['id'])


def test_upload_and_list(client_for, nurse, patient):
    c = client_for(nurse)
    r = upload(c, patient)
    assert r.status_code == 201
    data = r.json()['data']
    assert data['fileType'] == 'image/png'
    assert data['fileSize'] == len(PNG)
    assert data['uploadedBy'] == nurse.id
    assert data['aiAnalysis'] is None

    r = c.get(f'/api/patients/{patient.id}/documents')
    assert [d['id'] for d in r.json()['data']] == [data['id']]


def test_upload_rejects_type_size_and_missing_file(client_for, nurse, patient, settings):
    c = client_for(nurse)
    assert upload(c, patient, name='notes.txt', content=b'hello', content_type='text/plain').status_code == 400
    settings.UPLOAD_MAX_MB = 0
    assert upload(c, patient).status_code == 400
    r = c.post(f'/api/patients/{patient.id}/documents', {}, format='multipart')
    assert r.status_code == 400
    assert not PatientDocument.objects.exists()


def test_analyze_stores_result(client_for, nurse, document, monkeypatch):
    calls = []

    def fake_post(url, params=None, json=None, timeout=None):
        calls.append({'url': url, 'params': params, 'json': json, 'timeout': timeout})
        return FakeResponse(200, gemini_reply(ANALYSIS))

    monkeypatch.setattr(documents.requests, 'post', fake_post)
    r = client_for(nurse).post(f'/api/documents/{document.id}/analyze')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'documentId': document.id, 'analysis': ANALYSIS}

    document.refresh_from_db()
    assert document.ai_analysis == ANALYSIS
    sent = calls[0]
    assert sent['url'] == 'https://gemini.example/v1beta/models/gemini-test:generateContent'
    assert sent['params'] == {'key': 'test-key'}
    inline = sent['json']['contents'][0]['parts'][1]['inline_data']
    assert inline['mime_type'] == 'image/png'
    assert base64.b64decode(inline['data']) == PNG
    assert sent['json']['generationConfig']['responseMimeType'] == 'application/json'


def test_analyze_without_key_is_502(client_for, nurse, document, settings):
    settings.GEMINI_API_KEY = ''
    r = client_for(nurse).post(f'/api/documents/{document.id}/analyze')
    assert r.status_code == 502
    assert r.json()['error'] == {'code': 'analysis_failed', 'message': 'GEMINI_API_KEY not configured'}


def test_analyze_upstream_failures(document, monkeypatch):
    monkeypatch.setattr(documents.requests, 'post', lambda *a, **kw: FakeResponse(429, text='quota'))
    with pytest.raises(DocumentAnalysisError, match='status 429'):
        documents.analyze_document(document)

    def boom(*a, **kw):
        raise requests.ConnectionError('unreachable')

    monkeypatch.setattr(documents.requests, 'post', boom)
    with pytest.raises(DocumentAnalysisError):
        documents.analyze_document(document)

    monkeypatch.setattr(documents.requests, 'post', lambda *a, **kw: FakeResponse(200, {'candidates': []}))
    with pytest.raises(DocumentAnalysisError):
        documents.analyze_document(document)

    document.refresh_from_db()
    assert document.ai_analysis is None


def test_parse_reply_requires_an_object():
    with pytest.raises(DocumentAnalysisError):
        documents.parse_reply(gemini_reply(['not', 'an', 'object']))
    assert documents.parse_reply(gemini_reply(ANALYSIS)) == ANALYSIS
