"""Platform-credential token manager.

Implements the ``platform`` variant: a platform username/password is
exchanged for a bearer token at ``{url}/v1/preauth/validateAuth``, or a
pre-issued platform token is used as-is.

See Also:
    :class:`~svcauth.managers.platform.manager.PlatformTokenManager`
"""

from svcauth.managers.platform.manager import PlatformTokenManager

__all__ = ["PlatformTokenManager"]
