"""
Token authentication for integrations that predate JWT.

JWT bearer tokens are the primary scheme; this subclass of DRF's
``TokenAuthentication`` keeps the ``Token <key>`` header working for
machine clients (the mobile intake gateway) that were issued a static
key.  It lives in its own module so the REST framework can import it
from settings without pulling in any views.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """``Authorization: Token <key>`` authentication."""

    keyword = 'Token'
