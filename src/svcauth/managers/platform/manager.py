"""Platform-credential exchange token manager.

This module provides :class:`PlatformTokenManager`, which implements the
``platform`` variant.  Two inputs are supported, alone or together:

- ``url`` + ``username`` + ``password`` -- exchanged with a ``GET`` to
  ``{url}/v1/preauth/validateAuth`` using basic auth.
- ``token`` -- a pre-issued platform token, installed as the caller-managed
  token and used until it is known to be expired.  With no ``url`` it can
  never be refreshed.

The access token is read from the response key named by
``token_name`` (``access_token`` by default; some deployments answer with
``accessToken``).

See Also:
    :class:`svcauth.auth.base.TokenManager` for the base contract.
"""

from __future__ import annotations

from typing import Optional

from svcauth.auth.base import TokenManager
from svcauth.auth.cache import TokenCache
from svcauth.auth.transport import AuthTransport
from svcauth.exceptions import ConfigurationError
from svcauth.models import PlatformCredential, TokenRecord


class PlatformTokenManager(TokenManager):
    """Exchange platform credentials for bearer tokens.

    Args:
        descriptor: The :class:`~svcauth.models.PlatformCredential`.
        transport: Optional transport override.
        cache: Optional cache override.

    Raises:
        ConfigurationError: If neither a URL nor a pre-issued token is
            supplied, or a URL is supplied without a username and password
            and without a token.
    """

    def __init__(
        self,
        descriptor: PlatformCredential,
        transport: Optional[AuthTransport] = None,
        cache: Optional[TokenCache] = None,
    ) -> None:
        if not isinstance(descriptor, PlatformCredential):
            raise ConfigurationError(
                f"PlatformTokenManager needs 'platform' credentials, got '{descriptor.kind}'"
            )
        if not descriptor.url and not descriptor.token:
            raise ConfigurationError("The platform URL is mandatory for platform authentication")
        has_login = descriptor.username is not None and descriptor.password is not None
        if descriptor.url and not has_login and not descriptor.token:
            raise ConfigurationError(
                "A platform username and password are required when no platform token is supplied"
            )
        super().__init__(descriptor, transport=transport, cache=cache)
        if descriptor.token:
            self._user_access_token = descriptor.token

    @property
    def auth_type(self) -> str:
        return "platform"

    @property
    def can_refresh(self) -> bool:
        descriptor = self._descriptor
        return bool(
            descriptor.url
            and descriptor.username is not None
            and descriptor.password is not None
        )

    def _request_token(self) -> TokenRecord:
        return self._transport.fetch_token(self._descriptor)

    def _token_name(self) -> str:
        return self._descriptor.token_name
