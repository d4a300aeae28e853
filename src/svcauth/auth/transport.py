"""Network exchange of credential descriptors for token records.

:class:`AuthTransport` issues exactly one synchronous HTTP request per
:meth:`~AuthTransport.fetch_token` call:

- :class:`~svcauth.models.ApiKey` -- ``POST`` form-encoded grant
  parameters to the identity endpoint.
- :class:`~svcauth.models.PlatformCredential` -- ``GET``
  ``{url}/v1/preauth/validateAuth`` with basic authentication.

Any non-2xx status, non-JSON body or network failure becomes an
:class:`~svcauth.exceptions.AuthenticationError`; a JSON body without the
access-token field becomes a :class:`~svcauth.exceptions.MalformedTokenError`.
No retries are attempted.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any, Callable, Optional

import httpx

from svcauth.exceptions import AuthenticationError, ConfigurationError
from svcauth.models import (
    ApiKey,
    CredentialDescriptor,
    HttpConfig,
    PlatformCredential,
    TokenRecord,
)

logger = logging.getLogger(__name__)

APIKEY_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"
PLATFORM_TOKEN_PATH = "/v1/preauth/validateAuth"


def basic_auth_header(username: str, password: str) -> str:
    """Return an ``Authorization`` value for HTTP Basic auth (:rfc:`7617`)."""
    raw = f"{username}:{password}"
    return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")


class AuthTransport:
    """Fetch token records from authentication endpoints.

    Args:
        http_config: Timeout, TLS verification and proxy settings.
        client: Optional pre-built :class:`httpx.Client`.  When omitted a
            short-lived client is opened per request.
        clock: Returns the current time as Unix epoch seconds; stamped on
            each record as its fetch time.

    Example::

        transport = AuthTransport()
        record = transport.fetch_token(ApiKey(apikey="my-key"))
    """

    def __init__(
        self,
        http_config: Optional[HttpConfig] = None,
        client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._http_config = http_config or HttpConfig()
        self._client = client
        self._clock = clock

    @property
    def http_config(self) -> HttpConfig:
        return self._http_config

    @http_config.setter
    def http_config(self, value: HttpConfig) -> None:
        # Only applies to per-request clients; a caller-supplied client keeps its own settings.
        self._http_config = value

    def fetch_token(self, descriptor: CredentialDescriptor) -> TokenRecord:
        """Exchange *descriptor* for a fresh token record.

        Args:
            descriptor: An :class:`~svcauth.models.ApiKey` or
                :class:`~svcauth.models.PlatformCredential` with a URL.

        Returns:
            The parsed :class:`~svcauth.models.TokenRecord`.

        Raises:
            ConfigurationError: If the descriptor cannot be exchanged
                (basic auth, external tokens, platform without URL).
            AuthenticationError: On a non-2xx response, unparseable body
                or network failure.
            MalformedTokenError: If the body lacks the access-token field
                or any expiry information.
        """
        if isinstance(descriptor, ApiKey):
            request = self._apikey_request(descriptor)
            token_name = "access_token"
        elif isinstance(descriptor, PlatformCredential):
            request = self._platform_request(descriptor)
            token_name = descriptor.token_name
        else:
            raise ConfigurationError(
                f"Credentials of kind '{descriptor.kind}' cannot be exchanged for a token"
            )

        logger.debug("Requesting token: %s %s", request.method, request.url)
        payload = self._send(request)
        record = TokenRecord.from_token_response(
            payload, now=self._clock(), token_name=token_name
        )
        logger.debug("Token received, expires in %ss", record.expires_in)
        return record

    # ------------------------------------------------------------------ #
    # Request builders
    # ------------------------------------------------------------------ #

    def _apikey_request(self, descriptor: ApiKey) -> httpx.Request:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        if descriptor.client_id and descriptor.client_secret:
            headers["Authorization"] = basic_auth_header(
                descriptor.client_id, descriptor.client_secret
            )
        return httpx.Request(
            "POST",
            descriptor.url,
            headers=headers,
            data={
                "grant_type": APIKEY_GRANT_TYPE,
                "apikey": descriptor.apikey,
                "response_type": "cloud_iam",
            },
        )

    def _platform_request(self, descriptor: PlatformCredential) -> httpx.Request:
        if not descriptor.url:
            raise ConfigurationError(
                "A platform URL is required to request a platform token"
            )
        if descriptor.username is None or descriptor.password is None:
            raise ConfigurationError(
                "A platform username and password are required to request a platform token"
            )
        return httpx.Request(
            "GET",
            descriptor.url.rstrip("/") + PLATFORM_TOKEN_PATH,
            headers={
                "Authorization": basic_auth_header(
                    descriptor.username, descriptor.password
                ),
                "Accept": "application/json",
            },
        )

    # ------------------------------------------------------------------ #
    # Wire
    # ------------------------------------------------------------------ #

    def _send(self, request: httpx.Request) -> Any:
        try:
            if self._client is not None:
                response = self._client.send(request)
            else:
                config = self._http_config
                with httpx.Client(
                    timeout=config.timeout,
                    verify=config.verify_ssl,
                    proxy=config.proxy,
                ) as client:
                    response = client.send(request)
        except httpx.HTTPError as exc:
            logger.warning("Token request to %s failed: %s", request.url, exc)
            raise AuthenticationError(f"Token request failed: {exc}") from exc

        if not response.is_success:
            body = _response_body(response)
            logger.warning(
                "Token request to %s returned HTTP %s",
                request.url,
                response.status_code,
            )
            raise AuthenticationError(
                f"Token request failed with status {response.status_code}: "
                f"{_error_message(body)}",
                status_code=response.status_code,
                body=body,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise AuthenticationError(
                "Token response is not valid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from exc


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_message(body: Any) -> str:
    if isinstance(body, dict):
        msg = body.get("errorMessage") or body.get("error") or body.get("message")
        if msg:
            return str(msg)
    text = str(body) if body else ""
    return text[:200] or "(empty body)"
