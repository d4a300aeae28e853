"""Credential variant selection and token-manager registry.

:func:`resolve_descriptor` reduces a loose
:class:`~svcauth.models.ServiceCredentials` bag to exactly one credential
descriptor, once, at construction time.  An explicit
``authentication_type`` wins; otherwise the first matching rule applies:

1. A platform token or platform URL is present -> ``platform``.
2. An API key is present -> ``apikey``.  If the key starts with ``icp-``
   it is sent as basic auth with the user name ``apikey`` instead.
3. An IAM access token is present -> ``external_token``.
4. A username and password are both present -> ``basic``.  When the
   username is the literal ``apikey``, the password is the API key and
   rule 2 applies to it.

:class:`ManagerRegistry` maps descriptor kinds to
:class:`~svcauth.auth.base.TokenManager` classes, and
:func:`create_token_manager` builds the manager for a descriptor.

Example::

    descriptor = resolve_descriptor(ServiceCredentials(apikey="my-key"))
    manager = create_token_manager(descriptor)
    token = manager.current_token()
"""

from __future__ import annotations

import logging
from typing import Optional

from svcauth.auth.base import TokenManager
from svcauth.auth.cache import TokenCache
from svcauth.auth.transport import AuthTransport
from svcauth.exceptions import ConfigurationError
from svcauth.models import (
    DEFAULT_IAM_URL,
    DEFAULT_TOKEN_NAME,
    ApiKey,
    BasicAuth,
    CredentialDescriptor,
    ExternalToken,
    PlatformCredential,
    ServiceCredentials,
)

logger = logging.getLogger(__name__)

APIKEY_USERNAME = "apikey"
PLATFORM_APIKEY_PREFIX = "icp-"

_AUTH_TYPE_ALIASES = {
    "iam": "apikey",
    "apikey": "apikey",
    "platform": "platform",
    "icp4d": "platform",
    "cp4d": "platform",
    "basic": "basic",
    "bearer": "external_token",
    "bearertoken": "external_token",
    "external_token": "external_token",
}

_FIELD_LABELS = {
    "url": "url",
    "username": "username",
    "password": "password",
    "apikey": "apikey",
    "iam_access_token": "iam access token",
    "iam_url": "iam url",
    "platform_url": "platform url",
    "platform_access_token": "platform access token",
}


def check_bad_first_or_last_char(value: Optional[str]) -> bool:
    """True if *value* starts with ``{`` or ``"`` or ends with ``}`` or ``"``."""
    if value is None:
        return False
    return value.startswith(("{", '"')) or value.endswith(("}", '"'))


def validate_credentials(credentials: ServiceCredentials) -> None:
    """Reject values pasted with surrounding braces or quotes.

    Raises:
        ConfigurationError: Naming the first offending field.
    """
    for field, label in _FIELD_LABELS.items():
        if check_bad_first_or_last_char(getattr(credentials, field)):
            raise ConfigurationError(
                f"The {label} shouldn't start or end with curly brackets or quotes. "
                f'Be sure to remove any {{}} and " characters surrounding your {label}'
            )


def _is_platform_apikey(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(PLATFORM_APIKEY_PREFIX)  # type: ignore[union-attr]


def _apikey_descriptor(apikey: str, credentials: ServiceCredentials) -> CredentialDescriptor:
    if _is_platform_apikey(apikey):
        return BasicAuth(username=APIKEY_USERNAME, password=apikey)
    if bool(credentials.iam_client_id) != bool(credentials.iam_client_secret):
        raise ConfigurationError(
            "iam_client_id and iam_client_secret must be supplied together"
        )
    return ApiKey(
        apikey=apikey,
        url=credentials.iam_url or DEFAULT_IAM_URL,
        client_id=credentials.iam_client_id,
        client_secret=credentials.iam_client_secret,
    )


def _platform_descriptor(credentials: ServiceCredentials) -> PlatformCredential:
    if not credentials.platform_url and not credentials.platform_access_token:
        raise ConfigurationError("The platform URL is mandatory for platform authentication")
    has_login = credentials.username is not None and credentials.password is not None
    if not has_login and not credentials.platform_access_token:
        raise ConfigurationError(
            "A platform username and password are required when no platform token is supplied"
        )
    return PlatformCredential(
        url=credentials.platform_url,
        username=credentials.username,
        password=credentials.password,
        token=credentials.platform_access_token,
        token_name=credentials.token_name or DEFAULT_TOKEN_NAME,
    )


def _explicit_descriptor(kind: str, credentials: ServiceCredentials) -> CredentialDescriptor:
    if kind == "apikey":
        apikey = credentials.apikey
        if apikey is None and credentials.username == APIKEY_USERNAME:
            apikey = credentials.password
        if apikey:
            return _apikey_descriptor(apikey, credentials)
        if credentials.iam_access_token:
            return ExternalToken(token=credentials.iam_access_token)
        raise ConfigurationError("IAM authentication requires an apikey or an iam_access_token")
    if kind == "platform":
        return _platform_descriptor(credentials)
    if kind == "basic":
        if credentials.username is None or credentials.password is None:
            raise ConfigurationError("Basic authentication requires a username and password")
        return BasicAuth(username=credentials.username, password=credentials.password)
    token = credentials.iam_access_token or credentials.platform_access_token
    if not token:
        raise ConfigurationError("Bearer authentication requires an access token")
    return ExternalToken(token=token)


def resolve_descriptor(credentials: ServiceCredentials) -> CredentialDescriptor:
    """Choose the single credential descriptor for *credentials*.

    Args:
        credentials: The caller-supplied optional fields.

    Returns:
        A :class:`~svcauth.models.BasicAuth`,
        :class:`~svcauth.models.ApiKey`,
        :class:`~svcauth.models.ExternalToken` or
        :class:`~svcauth.models.PlatformCredential`.

    Raises:
        ConfigurationError: If values are malformed, the combination is
            incomplete, or no credentials were supplied at all.
    """
    validate_credentials(credentials)

    if credentials.authentication_type:
        requested = credentials.authentication_type.strip().lower()
        kind = _AUTH_TYPE_ALIASES.get(requested)
        if kind is None:
            raise ConfigurationError(
                f"Unknown authentication type '{credentials.authentication_type}'. "
                f"Known types: {', '.join(sorted(_AUTH_TYPE_ALIASES))}"
            )
        descriptor = _explicit_descriptor(kind, credentials)
    elif credentials.platform_access_token or credentials.platform_url:
        descriptor = _platform_descriptor(credentials)
    elif credentials.apikey:
        descriptor = _apikey_descriptor(credentials.apikey, credentials)
    elif credentials.iam_access_token:
        descriptor = ExternalToken(token=credentials.iam_access_token)
    elif credentials.username is not None and credentials.password is not None:
        if credentials.username == APIKEY_USERNAME:
            descriptor = _apikey_descriptor(credentials.password, credentials)
        else:
            descriptor = BasicAuth(
                username=credentials.username, password=credentials.password
            )
    else:
        raise ConfigurationError(
            "No credentials supplied: provide an apikey, a username and password, "
            "an access token, or a platform URL"
        )

    logger.debug("Selected '%s' credentials", descriptor.kind)
    return descriptor


class ManagerRegistry:
    """Registry mapping descriptor kinds to token-manager classes.

    ``basic`` has no entry: basic-auth credentials are attached
    to each request directly and never go through a token manager.

    Example::

        registry = ManagerRegistry()
        registry.register("apikey", ApiKeyTokenManager)
        manager = registry.create(ApiKey(apikey="my-key"))
    """

    def __init__(self) -> None:
        self._managers: dict[str, type[TokenManager]] = {}

    def register(self, kind: str, manager_cls: type[TokenManager]) -> None:
        """Register *manager_cls* for descriptors of *kind*, replacing any previous one."""
        self._managers[kind] = manager_cls

    def get_manager_class(self, kind: str) -> type[TokenManager]:
        """Return the manager class registered for *kind*.

        Raises:
            ConfigurationError: If no manager handles *kind*.
        """
        manager_cls = self._managers.get(kind)
        if manager_cls is None:
            available = ", ".join(sorted(self._managers)) or "(none)"
            raise ConfigurationError(
                f"No token manager for '{kind}' credentials. "
                f"Available kinds: {available}"
            )
        return manager_cls

    def create(
        self,
        descriptor: CredentialDescriptor,
        transport: Optional[AuthTransport] = None,
        cache: Optional[TokenCache] = None,
    ) -> TokenManager:
        """Instantiate the manager for *descriptor*."""
        manager_cls = self.get_manager_class(descriptor.kind)
        return manager_cls(descriptor, transport=transport, cache=cache)

    def list_kinds(self) -> list[str]:
        return sorted(self._managers.keys())


def create_default_registry() -> ManagerRegistry:
    """Return a :class:`ManagerRegistry` loaded with the built-in managers."""
    from svcauth.managers.api_key import ApiKeyTokenManager
    from svcauth.managers.platform import PlatformTokenManager
    from svcauth.managers.static_token import StaticTokenManager

    registry = ManagerRegistry()
    registry.register("apikey", ApiKeyTokenManager)
    registry.register("platform", PlatformTokenManager)
    registry.register("external_token", StaticTokenManager)
    return registry


def create_token_manager(
    descriptor: CredentialDescriptor,
    transport: Optional[AuthTransport] = None,
    cache: Optional[TokenCache] = None,
) -> TokenManager:
    """Build the built-in token manager for *descriptor*.

    Raises:
        ConfigurationError: For :class:`~svcauth.models.BasicAuth`, which
            has no token manager, or for inconsistent descriptors.
    """
    return create_default_registry().create(descriptor, transport=transport, cache=cache)
