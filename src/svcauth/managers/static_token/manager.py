"""Pass-through token manager.

This module provides :class:`StaticTokenManager`, which implements the
``external_token`` variant.  The caller supplies the bearer token and
rotates it with :meth:`~StaticTokenManager.set_access_token`; svcauth never
contacts an authentication endpoint for it.

If the token is a JWT whose ``exp`` has passed,
:meth:`~svcauth.auth.base.TokenManager.current_token` raises
:class:`~svcauth.exceptions.TokenExpiredError` rather than sending it.

See Also:
    :class:`svcauth.auth.base.TokenManager` for the base contract.
"""

from __future__ import annotations

from typing import Optional

from svcauth.auth.base import TokenManager
from svcauth.auth.cache import TokenCache
from svcauth.auth.transport import AuthTransport
from svcauth.exceptions import AuthenticationError, ConfigurationError
from svcauth.models import ExternalToken, TokenRecord


class StaticTokenManager(TokenManager):
    """Serve a caller-supplied bearer token without refreshing it.

    Args:
        descriptor: The :class:`~svcauth.models.ExternalToken`.
        transport: Accepted for a uniform constructor; never used.
        cache: Accepted for a uniform constructor; only its clock is used.

    Raises:
        ConfigurationError: If the token is empty.
    """

    def __init__(
        self,
        descriptor: ExternalToken,
        transport: Optional[AuthTransport] = None,
        cache: Optional[TokenCache] = None,
    ) -> None:
        if not isinstance(descriptor, ExternalToken):
            raise ConfigurationError(
                f"StaticTokenManager needs 'external_token' credentials, got '{descriptor.kind}'"
            )
        if not descriptor.token:
            raise ConfigurationError("An access token is required for bearer authentication")
        super().__init__(descriptor, transport=transport, cache=cache)
        self._user_access_token = descriptor.token

    @property
    def auth_type(self) -> str:
        return "external_token"

    @property
    def can_refresh(self) -> bool:
        return False

    def clear_access_token(self) -> None:
        """Revert to the token the manager was constructed with."""
        with self._lock:
            self._user_access_token = self._descriptor.token

    def _request_token(self) -> TokenRecord:
        raise AuthenticationError("Caller-supplied tokens cannot be refreshed")
