"""
Token authentication for the triage API.

Subclasses DRF's ``TokenAuthentication`` so settings can reference a
stable project path.  Clients send ``Authorization: Token <key>``;
JWT access tokens are handled by simplejwt alongside this class.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """Legacy token authentication using the ``Token`` keyword."""

    keyword = 'Token'
