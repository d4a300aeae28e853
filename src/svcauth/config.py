"""Credential sources and directory layout.

This module is the plumbing that turns the outside world into a
:class:`~svcauth.models.ServiceCredentials` bag.  The token-management core
never reads the environment itself; everything ambient goes through here.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.svcauth/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Environment variables** -- ``<SERVICE>_<FIELD>`` such as
  ``ASSISTANT_APIKEY``; see :func:`load_from_environment`.
* **Credentials file** -- a dotenv file with the same key names, read by
  python-dotenv; see :func:`find_credentials_file` and
  :func:`load_from_credential_file`.
* **VCAP_SERVICES** -- Cloud Foundry service bindings; see
  :func:`load_from_vcap_services`.
* **Precedence resolution** -- :func:`load_service_credentials` overlays
  explicit arguments on the first non-empty source.
"""

from __future__ import annotations

import json
import os
import platform
import re
from pathlib import Path
from typing import Any, Optional

from dotenv import dotenv_values

from svcauth.exceptions import ConfigurationError
from svcauth.models import ServiceCredentials

_APP_NAME = "svcauth"
CREDENTIALS_FILE_NAME = "service-credentials.env"
CREDENTIALS_FILE_ENV = "SVCAUTH_CREDENTIALS_FILE"

# Key suffix after "<SERVICE>_" -> ServiceCredentials field.
_KEY_FIELDS = {
    "AUTH_TYPE": "authentication_type",
    "AUTHENTICATION_TYPE": "authentication_type",
    "URL": "url",
    "USERNAME": "username",
    "PASSWORD": "password",
    "APIKEY": "apikey",
    "IAM_APIKEY": "apikey",
    "IAM_ACCESS_TOKEN": "iam_access_token",
    "BEARER_TOKEN": "iam_access_token",
    "IAM_URL": "iam_url",
    "AUTH_URL": "iam_url",
    "IAM_CLIENT_ID": "iam_client_id",
    "IAM_CLIENT_SECRET": "iam_client_secret",
    "PLATFORM_URL": "platform_url",
    "ICP4D_URL": "platform_url",
    "PLATFORM_ACCESS_TOKEN": "platform_access_token",
    "ICP4D_ACCESS_TOKEN": "platform_access_token",
    "TOKEN_NAME": "token_name",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory.

    On Linux/BSD: ``$XDG_CONFIG_HOME/svcauth/`` (default ``~/.config/svcauth/``).
    On macOS/Windows: ``~/.svcauth/``.  The directory is not created.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    return _fallback_base_dir()


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/svcauth/`` (default ``~/.local/share/svcauth/``).
    On macOS/Windows: ``~/.svcauth/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Key parsing ---


def normalize_service_name(service_name: str) -> str:
    """Upper-case *service_name* and replace spaces and dashes with ``_``.

    ``"Natural Language"`` and ``"natural-language"`` both become
    ``NATURAL_LANGUAGE``.
    """
    normalized = re.sub(r"[\s\-]+", "_", service_name.strip())
    if not normalized:
        raise ConfigurationError("Service name must not be empty")
    return normalized.upper()


def _field_for_key(prefix: str, key: str) -> Optional[str]:
    key = key.strip().upper()
    if not key.startswith(prefix + "_"):
        return None
    return _KEY_FIELDS.get(key[len(prefix) + 1:])


def _credentials_from_pairs(prefix: str, pairs: dict[str, str]) -> dict[str, str]:
    found: dict[str, str] = {}
    for key, value in pairs.items():
        field = _field_for_key(prefix, key)
        if field is not None and value != "":
            found[field] = value
    return found


# --- Sources ---


def load_from_environment(
    service_name: str,
    environ: Optional[dict[str, str]] = None,
) -> dict[str, str]:
    """Collect ``<SERVICE>_<FIELD>`` values from the environment.

    Args:
        service_name: Service name; normalised with :func:`normalize_service_name`.
        environ: Mapping to read instead of :data:`os.environ`.

    Returns:
        ServiceCredentials field names mapped to values (possibly empty).
    """
    env = os.environ if environ is None else environ
    return _credentials_from_pairs(normalize_service_name(service_name), dict(env))


def find_credentials_file() -> Optional[Path]:
    """Locate the credentials file.

    Checked in order: ``$SVCAUTH_CREDENTIALS_FILE``,
    ``./service-credentials.env``, ``<config dir>/service-credentials.env``
    and ``~/service-credentials.env``.

    Returns:
        The first existing path, or ``None``.

    Raises:
        ConfigurationError: If ``$SVCAUTH_CREDENTIALS_FILE`` names a file
            that does not exist.
    """
    explicit = os.environ.get(CREDENTIALS_FILE_ENV)
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigurationError(
                f"Credentials file not found: {path} (from ${CREDENTIALS_FILE_ENV})"
            )
        return path

    for candidate in (
        Path.cwd() / CREDENTIALS_FILE_NAME,
        get_config_dir() / CREDENTIALS_FILE_NAME,
        Path.home() / CREDENTIALS_FILE_NAME,
    ):
        if candidate.is_file():
            return candidate
    return None


def parse_credentials_file(path: Path) -> dict[str, str]:
    """Read ``KEY=VALUE`` pairs from a dotenv-style file.

    Quoting, ``export`` prefixes and comments follow python-dotenv.  Keys
    without a value are skipped.

    Raises:
        ConfigurationError: If the file does not exist or cannot be read.
    """
    if not path.is_file():
        raise ConfigurationError(f"Cannot read credentials file {path}: no such file")
    try:
        values = dotenv_values(path, interpolate=False, encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read credentials file {path}: {exc}") from exc
    return {key: value for key, value in values.items() if value is not None}


def load_from_credential_file(
    service_name: str,
    path: Optional[Path] = None,
) -> dict[str, str]:
    """Collect a service's values from the credentials file.

    Args:
        service_name: Service name; normalised with :func:`normalize_service_name`.
        path: File to read.  Located with :func:`find_credentials_file`
            when omitted.

    Returns:
        ServiceCredentials field names mapped to values; empty when there
        is no file or no matching key.
    """
    if path is None:
        path = find_credentials_file()
        if path is None:
            return {}
    return _credentials_from_pairs(
        normalize_service_name(service_name), parse_credentials_file(path)
    )


def load_from_vcap_services(
    service_name: str,
    environ: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    """Read the first binding for *service_name* from ``VCAP_SERVICES``.

    The service name is matched as given (Cloud Foundry labels are
    lower-case, e.g. ``assistant``).

    Raises:
        ConfigurationError: If ``VCAP_SERVICES`` is not valid JSON.
    """
    env = os.environ if environ is None else environ
    raw = env.get("VCAP_SERVICES")
    if not raw:
        return {}
    try:
        services = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid VCAP_SERVICES: {exc}") from exc
    bindings = services.get(service_name) if isinstance(services, dict) else None
    if not bindings:
        return {}
    credentials = bindings[0].get("credentials") or {}
    fields = ServiceCredentials.model_fields
    found = {k: v for k, v in credentials.items() if k in fields and v is not None}
    if "iam_apikey" in credentials and "apikey" not in found:
        found["apikey"] = credentials["iam_apikey"]
    return found


# --- Precedence resolution ---


def load_service_credentials(service_name: str, **explicit: Any) -> ServiceCredentials:
    """Assemble credentials for *service_name*.

    Precedence (high to low):
        1. Explicit keyword arguments (``None`` values are ignored)
        2. The first non-empty source among environment variables, the
           credentials file, and ``VCAP_SERVICES``

    Sources are not mixed with each other: a credentials file entry never
    fills a gap left by the environment.

    Args:
        service_name: Service name, e.g. ``"assistant"``.
        **explicit: Any :class:`~svcauth.models.ServiceCredentials` field.

    Returns:
        The merged :class:`~svcauth.models.ServiceCredentials`.

    Raises:
        ConfigurationError: On unknown keyword arguments or unreadable
            sources.
    """
    unknown = set(explicit) - set(ServiceCredentials.model_fields)
    if unknown:
        raise ConfigurationError(
            f"Unknown credential field(s): {', '.join(sorted(unknown))}"
        )
    overrides = {k: v for k, v in explicit.items() if v is not None}

    ambient: dict[str, Any] = {}
    for source in (
        load_from_environment,
        load_from_credential_file,
        load_from_vcap_services,
    ):
        ambient = source(service_name)
        if ambient:
            break

    return ServiceCredentials(**{**ambient, **overrides})
