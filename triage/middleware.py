from __future__ import annotations

from contextvars import ContextVar

_client_meta: ContextVar[dict | None] = ContextVar('triage_client_meta', default=None)


def current_client_meta() -> dict:
    """Client ip and user agent for the request being served, if any."""
    return _client_meta.get() or {}


class ClientMetaMiddleware:
    """Record the caller's ip address and user agent for audit rows."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
        ip = forwarded.split(',')[0].strip() if forwarded else request.META.get('REMOTE_ADDR')
        token = _client_meta.set({
            'ip_address': ip or None,
            'user_agent': (request.META.get('HTTP_USER_AGENT') or '')[:255] or None,
        })
        try:
            return self.get_response(request)
        finally:
            _client_meta.reset(token)
