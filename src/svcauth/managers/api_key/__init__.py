"""API-key token manager.

Implements the ``apikey`` variant: a long-lived API key is exchanged for a
short-lived bearer token at an identity endpoint, and the token is
refreshed before it expires.

See Also:
    :class:`~svcauth.managers.api_key.manager.ApiKeyTokenManager`
"""

from svcauth.managers.api_key.manager import ApiKeyTokenManager

__all__ = ["ApiKeyTokenManager"]
