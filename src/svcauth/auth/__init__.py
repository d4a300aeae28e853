"""Token management and caching for svcauth.

This package acquires bearer tokens from authentication endpoints, caches
them, refreshes them before they expire and never hands out a token known
to be stale.

The main entry points are:

- :class:`TokenManager` -- abstract base class; :meth:`TokenManager.current_token`
  returns a ready-to-use bearer token.
- :class:`TokenCache` -- holds the current record and decides when a
  refresh is due.
- :class:`AuthTransport` -- performs the network exchange.
- :func:`resolve_descriptor` / :func:`create_token_manager` -- choose a
  credential variant and build its manager.

Typical usage::

    from svcauth.auth import create_token_manager, resolve_descriptor
    from svcauth.models import ServiceCredentials

    descriptor = resolve_descriptor(ServiceCredentials(apikey="my-key"))
    manager = create_token_manager(descriptor)
    headers = manager.authenticate().headers
"""

from svcauth.auth.base import AuthResult, TokenManager
from svcauth.auth.cache import TokenCache
from svcauth.auth.selector import (
    ManagerRegistry,
    create_default_registry,
    create_token_manager,
    resolve_descriptor,
)
from svcauth.auth.transport import AuthTransport

__all__ = [
    "AuthResult",
    "AuthTransport",
    "ManagerRegistry",
    "TokenCache",
    "TokenManager",
    "create_default_registry",
    "create_token_manager",
    "resolve_descriptor",
]
