"""Abstract base class for token managers.

This module defines the two foundational types of the auth subsystem:

- :class:`AuthResult` -- a plain container for the HTTP headers that a
  token manager produces for the request dispatcher.
- :class:`TokenManager` -- the abstract base class every credential
  variant extends.  It owns a :class:`~svcauth.auth.cache.TokenCache`,
  serialises refreshes behind a lock and exposes :meth:`~TokenManager.current_token`.

To implement a new variant, subclass :class:`TokenManager`, set the
:attr:`~TokenManager.auth_type` property, and implement
:meth:`~TokenManager._request_token`.  Variants that cannot fetch tokens
override :attr:`~TokenManager.can_refresh`.

See Also:
    :mod:`svcauth.auth.selector` for choosing a variant from credentials.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from svcauth.auth.cache import TokenCache
from svcauth.auth.transport import AuthTransport
from svcauth.claims import is_known_expired
from svcauth.exceptions import AuthenticationError, TokenExpiredError
from svcauth.models import CredentialDescriptor, TokenRecord

logger = logging.getLogger(__name__)


class AuthResult:
    """Container for authentication artifacts to inject into HTTP requests.

    Args:
        headers: HTTP headers to add (e.g. ``{"Authorization": "Bearer ..."}``).

    Example::

        result = AuthResult(headers={"Authorization": "Bearer tok123"})
        assert result.headers["Authorization"] == "Bearer tok123"
    """

    def __init__(self, headers: dict[str, str] | None = None):
        self.headers = headers or {}


class TokenManager(ABC):
    """Hands out a ready-to-use bearer token, refreshing when needed.

    The manager owns exactly one cached :class:`~svcauth.models.TokenRecord`
    (absent before the first fetch) and the descriptor used to refresh it.
    The check-then-fetch-then-store sequence in :meth:`current_token` runs
    under a lock, so concurrent callers that arrive during a refresh wait
    for it and receive the same token; at most one fetch is in flight per
    manager.

    A stale token is never returned as a fallback: if a refresh is due and
    fails, the error propagates and the cache keeps whatever it held.

    Args:
        descriptor: The credential descriptor this manager refreshes from.
        transport: Performs the network exchange.  A default
            :class:`~svcauth.auth.transport.AuthTransport` is created when
            omitted.
        cache: Holds the current record.  A default
            :class:`~svcauth.auth.cache.TokenCache` is created when omitted.
    """

    def __init__(
        self,
        descriptor: CredentialDescriptor,
        transport: Optional[AuthTransport] = None,
        cache: Optional[TokenCache] = None,
    ) -> None:
        self._descriptor = descriptor
        self._transport = transport or AuthTransport()
        self._cache = cache or TokenCache()
        self._user_access_token: Optional[str] = None
        self._lock = threading.Lock()

    @property
    @abstractmethod
    def auth_type(self) -> str:
        """Return the descriptor ``kind`` this manager handles."""
        ...

    @property
    def descriptor(self) -> CredentialDescriptor:
        return self._descriptor

    @property
    def can_refresh(self) -> bool:
        """Whether this manager can fetch tokens from its descriptor."""
        return True

    @abstractmethod
    def _request_token(self) -> TokenRecord:
        """Fetch a fresh record for this manager's descriptor.

        Raises:
            AuthenticationError: If the endpoint rejects the request or
                returns an unusable body.
        """
        ...

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def current_token(self) -> str:
        """Return a bearer token that is neither expired nor about to expire.

        A cached token outside the refresh margin is returned without any
        network call.  Otherwise a single refresh runs while other callers
        wait on the lock.

        Returns:
            The access token string.

        Raises:
            AuthenticationError: If a refresh is needed and fails.
            TokenExpiredError: If the only available token is known to be
                expired and this manager cannot refresh.
        """
        token = self._usable_token()
        if token is not None:
            return token

        with self._lock:
            token = self._usable_token()
            if token is not None:
                return token
            return self._refresh_locked()

    def refresh(self) -> str:
        """Fetch a new token now, discarding any cached or caller-set token.

        Returns:
            The freshly fetched access token.

        Raises:
            AuthenticationError: If the fetch fails or this manager has no
                way to refresh.
        """
        if not self.can_refresh:
            raise AuthenticationError(
                f"'{self.auth_type}' credentials cannot be refreshed"
            )
        with self._lock:
            self._user_access_token = None
            return self._refresh_locked()

    def set_access_token(self, token: str) -> None:
        """Install a caller-managed token.

        The token is returned by :meth:`current_token` without any network
        call until :meth:`clear_access_token` is called, or until it is a
        JWT whose ``exp`` has passed.

        Args:
            token: The bearer token to use.
        """
        if not token:
            raise ValueError("access token must be a non-empty string")
        with self._lock:
            self._user_access_token = token

    def clear_access_token(self) -> None:
        """Drop any caller-managed token so the next call uses the descriptor."""
        with self._lock:
            self._user_access_token = None

    def authenticate(self) -> AuthResult:
        """Return an ``Authorization: Bearer`` header for the current token."""
        return AuthResult(headers={"Authorization": f"Bearer {self.current_token()}"})

    def save_token_info(self, token_info: dict) -> TokenRecord:
        """Store a token response obtained outside this manager.

        *token_info* is parsed exactly like a fetched response, including
        this manager's token field name, and becomes the cached record.

        Raises:
            MalformedTokenError: If the token or its expiry is missing.
        """
        record = TokenRecord.from_token_response(
            token_info,
            now=self._cache.clock(),
            token_name=self._token_name(),
        )
        with self._lock:
            self._cache.store(record)
        return record

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _usable_token(self) -> Optional[str]:
        """Return a token needing no network call, or ``None``."""
        user_token = self._user_access_token
        if user_token is not None:
            if not is_known_expired(user_token, self._cache.clock()):
                return user_token
            if not self.can_refresh:
                raise TokenExpiredError("The supplied access token has expired")
            return None
        token = self._cache.fresh_token()
        if token is not None:
            logger.debug("Using cached %s token", self.auth_type)
        return token

    def _refresh_locked(self) -> str:
        """Fetch and store a new record.  Caller must hold ``self._lock``."""
        if not self.can_refresh:
            raise AuthenticationError(
                f"No token available for '{self.auth_type}' credentials"
            )
        if self._user_access_token is not None:
            logger.debug("Caller-supplied %s token has expired", self.auth_type)
            self._user_access_token = None
        logger.debug("Refreshing %s token", self.auth_type)
        record = self._request_token()
        if not self._cache.record_is_valid(record):
            raise TokenExpiredError(
                f"The {self.auth_type} endpoint returned a token that has already expired"
            )
        self._cache.store(record)
        return record.access_token

    def _token_name(self) -> str:
        return "access_token"
