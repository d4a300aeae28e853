"""API-key exchange token manager.

This module provides :class:`ApiKeyTokenManager`, which implements the
``apikey`` variant.  The API key is POSTed to the identity endpoint
(``https://iam.cloud.ibm.com/identity/token`` unless the descriptor names
another) with the ``urn:ibm:params:oauth:grant-type:apikey`` grant, and
the returned bearer token is cached until it enters the refresh margin.

See Also:
    :class:`svcauth.auth.base.TokenManager` for the base contract.
"""

from __future__ import annotations

from typing import Optional

from svcauth.auth.base import TokenManager
from svcauth.auth.cache import TokenCache
from svcauth.auth.transport import AuthTransport
from svcauth.exceptions import ConfigurationError
from svcauth.models import ApiKey, TokenRecord


class ApiKeyTokenManager(TokenManager):
    """Exchange an API key for bearer tokens at an identity endpoint.

    Args:
        descriptor: The :class:`~svcauth.models.ApiKey` to exchange.
        transport: Optional transport override.
        cache: Optional cache override.

    Raises:
        ConfigurationError: If the key is empty, or only one of
            ``client_id``/``client_secret`` is supplied.
    """

    def __init__(
        self,
        descriptor: ApiKey,
        transport: Optional[AuthTransport] = None,
        cache: Optional[TokenCache] = None,
    ) -> None:
        if not isinstance(descriptor, ApiKey):
            raise ConfigurationError(
                f"ApiKeyTokenManager needs 'apikey' credentials, got '{descriptor.kind}'"
            )
        if not descriptor.apikey:
            raise ConfigurationError("An API key is required for API-key authentication")
        if bool(descriptor.client_id) != bool(descriptor.client_secret):
            raise ConfigurationError(
                "iam_client_id and iam_client_secret must be supplied together"
            )
        super().__init__(descriptor, transport=transport, cache=cache)

    @property
    def auth_type(self) -> str:
        return "apikey"

    def _request_token(self) -> TokenRecord:
        return self._transport.fetch_token(self._descriptor)
