"""Synchronous HTTP client with per-request token injection.

This module provides :class:`ServiceClient`, the request dispatcher that
sits in front of the token managers.  It wraps :class:`httpx.Client` and
layers on:

- **Auth injection** -- before every request the active
  :class:`~svcauth.auth.base.TokenManager` is asked for
  :meth:`~svcauth.auth.base.TokenManager.current_token`; basic-auth
  credentials are attached at the transport level instead.
- **Header merging** -- default headers, one-shot headers set through
  :meth:`ServiceClient.with_headers`, then per-call headers.
- **Error mapping** -- non-2xx responses become
  :class:`~svcauth.exceptions.ApiError` subclasses.

Retries, connection pooling policy and body serialisation beyond JSON and
form data are left to httpx.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

import httpx

from svcauth.auth.base import TokenManager
from svcauth.auth.selector import create_token_manager, resolve_descriptor
from svcauth.auth.transport import AuthTransport
from svcauth.client.response import DetailedResponse
from svcauth.exceptions import (
    ApiError,
    ConnectionError_,
    NotFoundError,
    ServerError,
)
from svcauth.exit_codes import EXIT_AUTH_FAILURE
from svcauth.models import BasicAuth, HttpConfig, ServiceCredentials

logger = logging.getLogger(__name__)

Authenticator = Union[ServiceCredentials, BasicAuth, TokenManager]


class ServiceClient:
    """Synchronous HTTP client for calls to one service.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        service_url: Base URL every request path is appended to.
        authenticator: Either a :class:`~svcauth.models.ServiceCredentials`
            bag (resolved once, here), a ready
            :class:`~svcauth.auth.base.TokenManager`, or
            :class:`~svcauth.models.BasicAuth` credentials.
        http_config: Timeout, TLS verification and proxy settings.  Also
            used for token requests when this client builds the manager.
        default_headers: Headers sent with every request.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`.

    Raises:
        ConfigurationError: If *authenticator* credentials are inconsistent.

    Example::

        with ServiceClient(url, ServiceCredentials(apikey="k")) as client:
            response = client.get("/v1/things")
    """

    def __init__(
        self,
        service_url: str,
        authenticator: Authenticator,
        http_config: Optional[HttpConfig] = None,
        default_headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._service_url = service_url.rstrip("/")
        self._http_config = http_config or HttpConfig()
        self._default_headers: dict[str, str] = dict(default_headers or {})
        self._temp_headers: Optional[dict[str, str]] = None
        self._transport = transport
        self._client: Optional[httpx.Client] = None
        self._auth_transport: Optional[AuthTransport] = None
        self._basic_auth: Optional[BasicAuth] = None
        self._token_manager: Optional[TokenManager] = None

        if isinstance(authenticator, ServiceCredentials):
            authenticator = resolve_descriptor(authenticator)
            if not isinstance(authenticator, BasicAuth):
                self._auth_transport = AuthTransport(self._http_config)
                authenticator = create_token_manager(
                    authenticator, transport=self._auth_transport
                )
        if isinstance(authenticator, BasicAuth):
            self._basic_auth = authenticator
        else:
            self._token_manager = authenticator

    @property
    def service_url(self) -> str:
        return self._service_url

    @property
    def token_manager(self) -> Optional[TokenManager]:
        """The active token manager, or ``None`` for basic-auth credentials."""
        return self._token_manager

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ServiceClient:
        self._client = self._build_client()
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def _build_client(self) -> httpx.Client:
        config = self._http_config
        kwargs: dict[str, Any] = {
            "base_url": self._service_url,
            "timeout": config.timeout,
            "follow_redirects": True,
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        else:
            kwargs["verify"] = config.verify_ssl
            kwargs["proxy"] = config.proxy
        return httpx.Client(**kwargs)

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    def configure_http_client(
        self,
        timeout: Optional[float] = None,
        proxy: Optional[str] = None,
        verify_ssl: Optional[bool] = None,
    ) -> None:
        """Change timeout, proxy or TLS verification.

        The settings also apply to token requests when this client built
        its own token manager.  An open connection is rebuilt.

        Args:
            timeout: Request timeout in seconds.
            proxy: Proxy URL.
            verify_ssl: ``False`` disables certificate verification.
        """
        updates: dict[str, Any] = {}
        if timeout is not None:
            updates["timeout"] = timeout
        if proxy is not None:
            updates["proxy"] = proxy
        if verify_ssl is not None:
            updates["verify_ssl"] = verify_ssl
        self._http_config = self._http_config.model_copy(update=updates)
        if self._auth_transport is not None:
            self._auth_transport.http_config = self._http_config
        if self._client is not None:
            self._client.close()
            self._client = self._build_client()

    def set_default_headers(self, headers: dict[str, str]) -> None:
        """Merge *headers* into the headers sent with every request."""
        self._default_headers.update(headers)

    def with_headers(self, headers: dict[str, str]) -> ServiceClient:
        """Send *headers* with the next request only.  Chainable."""
        self._temp_headers = dict(headers)
        return self

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> DetailedResponse:
        """Make an authenticated HTTP request.

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE).
            path: URL path appended to the service URL.
            params: Query parameters; ``None`` values are dropped.
            headers: Extra request headers.
            json_body: JSON-serialisable body.
            data: Form-encoded body; ``None`` values are dropped.

        Returns:
            A :class:`~svcauth.client.response.DetailedResponse`.

        Raises:
            AuthenticationError: If a bearer token cannot be obtained.
            NotFoundError: On 404.
            ServerError: On 5xx.
            ApiError: On any other non-2xx status.
            ConnectionError_: On network or timeout errors.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        merged_headers = {"Accept": "application/json", **self._default_headers}
        if self._temp_headers is not None:
            merged_headers.update(self._temp_headers)
            self._temp_headers = None
        merged_headers.update(headers or {})
        merged_headers = {k: v for k, v in merged_headers.items() if v is not None}

        kwargs: dict[str, Any] = {
            "method": method.upper(),
            "url": path,
            "headers": self._inject_auth(merged_headers),
        }
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if data is not None:
            kwargs["data"] = {k: v for k, v in data.items() if v is not None}
        elif json_body is not None:
            kwargs["json"] = json_body
        if self._basic_auth is not None:
            kwargs["auth"] = (self._basic_auth.username, self._basic_auth.password)

        try:
            response = self._client.request(**kwargs)
        except httpx.HTTPError as exc:
            raise ConnectionError_(f"Request to {self._service_url}{path} failed: {exc}") from exc

        self._map_response_error(response)
        return DetailedResponse.from_response(response)

    def get(self, path: str, **kwargs: Any) -> DetailedResponse:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> DetailedResponse:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> DetailedResponse:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> DetailedResponse:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> DetailedResponse:
        return self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _inject_auth(self, headers: dict[str, str]) -> dict[str, str]:
        """Add the bearer header; caller-supplied headers win."""
        if self._token_manager is None:
            return headers
        auth_result = self._token_manager.authenticate()
        return {**auth_result.headers, **headers}

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if 200 <= status < 300:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("error") or detail.get("message") or detail.get("errorMessage") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix
        logger.debug("Service returned %s", full_msg)

        if status in (401, 403):
            raise ApiError(full_msg, status_code=status, exit_code=EXIT_AUTH_FAILURE)
        if status == 404:
            raise NotFoundError(full_msg, status_code=status)
        if status >= 500:
            raise ServerError(full_msg, status_code=status)
        raise ApiError(full_msg, status_code=status)
