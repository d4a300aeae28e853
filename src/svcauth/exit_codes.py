"""Numeric process exit codes for the ``svcauth`` command line.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~svcauth.exceptions.SvcauthError` subclass.
Shell wrappers can inspect the exit code to tell a rejected API key apart
from a malformed credentials file without parsing stderr.

Example::

    $ svcauth token assistant
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the identity endpoint rejected the key
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIG_ERROR = 2
"""Credential inputs were missing, contradictory, or malformed."""

EXIT_AUTH_FAILURE = 3
"""A token could not be obtained from the authentication endpoint."""

EXIT_NOT_FOUND = 4
"""The service returned HTTP 404."""

EXIT_SERVER_ERROR = 5
"""The service returned a non-2xx status other than 404."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""
