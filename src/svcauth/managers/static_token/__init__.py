"""Pass-through token manager for caller-supplied bearer tokens.

See Also:
    :class:`~svcauth.managers.static_token.manager.StaticTokenManager`
"""

from svcauth.managers.static_token.manager import StaticTokenManager

__all__ = ["StaticTokenManager"]
