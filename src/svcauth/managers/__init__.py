"""Concrete token managers, one per credential variant.

- :class:`~svcauth.managers.api_key.ApiKeyTokenManager` -- API key
  exchanged for a bearer token at an identity endpoint.
- :class:`~svcauth.managers.platform.PlatformTokenManager` -- platform
  username/password or pre-issued token.
- :class:`~svcauth.managers.static_token.StaticTokenManager` --
  caller-supplied token, never refreshed.
"""

from svcauth.managers.api_key import ApiKeyTokenManager
from svcauth.managers.platform import PlatformTokenManager
from svcauth.managers.static_token import StaticTokenManager

__all__ = ["ApiKeyTokenManager", "PlatformTokenManager", "StaticTokenManager"]
