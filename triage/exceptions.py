"""
Domain errors and the unified DRF exception handler.

Services raise the exceptions below; the handler turns them, and every
DRF error, into ``{"ok": false, "error": {"code", "message"}}``.
"""
from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class WorkflowError(APIException):
    """Illegal triage state transition."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Transition not allowed.'
    default_code = 'workflow_error'


class TriagePermissionError(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'Not permitted for this role.'
    default_code = 'forbidden'


class DocumentAnalysisError(APIException):
    """The external document analysis call failed."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Document analysis failed.'
    default_code = 'analysis_failed'


__all__ = [
    'WorkflowError',
    'TriagePermissionError',
    'DocumentAnalysisError',
    'ValidationError',
    'api_exception_handler',
]


def _message(data):
    if isinstance(data, dict):
        if 'detail' in data and len(data) == 1:
            return str(data['detail'])
        return data
    if isinstance(data, list):
        return data[0] if len(data) == 1 else data
    return str(data)


def api_exception_handler(exc, context):
    if isinstance(exc, DjangoValidationError):
        exc = ValidationError(exc.messages)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('Unhandled error in %s', context.get('view'), exc_info=exc)
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    code = getattr(exc, 'default_code', None) or 'api_error'
    if isinstance(exc, APIException):
        codes = exc.get_codes()
        if isinstance(codes, str):
            code = codes
    return Response({'ok': False, 'error': {'code': code, 'message': _message(resp.data)}}, status=resp.status_code)
