"""
Token authentication for API clients.

Kept apart from the views so that Django REST framework can import the
authentication class during initialisation without pulling in view
modules (and the circular imports that would follow).
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """Token authentication using the ``Token`` keyword."""

    keyword = 'Token'
