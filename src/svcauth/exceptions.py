"""Exception hierarchy for svcauth.

All exceptions inherit from :class:`SvcauthError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`svcauth.exit_codes`.
The CLI entry point in :func:`svcauth.app.main` catches ``SvcauthError``
and exits with the matching code.

Subclass hierarchy::

    SvcauthError (exit 1)
    +-- ConfigurationError      (exit 2)
    +-- AuthenticationError     (exit 3)
    |   +-- MalformedTokenError
    |   +-- TokenExpiredError
    +-- ApiError                (exit 5)
    |   +-- NotFoundError       (exit 4)
    |   +-- ServerError
    +-- ConnectionError_        (exit 6)
"""

from __future__ import annotations

from typing import Any, Optional

from svcauth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
)


class SvcauthError(Exception):
    """Base exception for all svcauth errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(SvcauthError):
    """Raised for contradictory or incomplete credential inputs. Never retried."""

    exit_code = EXIT_CONFIG_ERROR


class AuthenticationError(SvcauthError):
    """Raised when a token cannot be obtained from the authentication endpoint.

    Covers non-2xx responses, unparseable bodies and network failures
    during the token request.  Nothing in svcauth retries on this error;
    the request dispatcher decides what to do.

    Args:
        message: Human-readable error description.
        status_code: HTTP status of the failed token request, or ``None``
            when no response was received.
        body: Raw response body (text or parsed JSON), when available.
    """

    exit_code = EXIT_AUTH_FAILURE

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MalformedTokenError(AuthenticationError):
    """Raised when a token response parses as JSON but lacks a required field."""


class TokenExpiredError(AuthenticationError):
    """Raised when the only token available is known to be expired and cannot be refreshed."""


class ApiError(SvcauthError):
    """Raised when a service request returns a non-2xx status.

    Args:
        message: Human-readable error description.
        status_code: The HTTP status returned by the service.
    """

    exit_code = EXIT_SERVER_ERROR

    def __init__(self, message: str, status_code: int, exit_code: int | None = None):
        super().__init__(message, exit_code=exit_code)
        self.status_code = status_code


class NotFoundError(ApiError):
    """Raised when the service returns HTTP 404."""

    exit_code = EXIT_NOT_FOUND


class ServerError(ApiError):
    """Raised when the service returns an HTTP 5xx error."""


class ConnectionError_(SvcauthError):
    """Raised on network-level failures while calling a service.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR
