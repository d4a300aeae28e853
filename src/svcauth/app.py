"""Typer application and CLI entry point for svcauth.

Two commands expose the token manager to shell scripts:

- ``svcauth token SERVICE`` -- print a current bearer token (or the whole
  ``Authorization`` header with ``--header``).
- ``svcauth inspect SERVICE`` -- show which credential variant the
  service's credentials resolve to, with secrets masked.

Credentials come from :func:`svcauth.config.load_service_credentials`
(environment, credentials file, ``VCAP_SERVICES``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  Unhandled exceptions are written to a crash log under
the data directory.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from svcauth import __version__
from svcauth.exit_codes import EXIT_GENERIC_FAILURE
from svcauth.exceptions import ConfigurationError, SvcauthError

app = typer.Typer(
    name="svcauth",
    help="Obtain and inspect bearer tokens for authenticated services.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

_SECRET_FIELDS = {"password", "apikey", "token", "client_secret"}


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"svcauth {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Initialise output and logging from the global flags."""
    from svcauth.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )


def _mask(value: Any) -> str:
    text = str(value)
    if len(text) <= 8:
        return "****"
    return f"{text[:4]}****"


def _describe(descriptor: Any) -> list[list[str]]:
    rows = []
    for field, value in descriptor.model_dump().items():
        if value is None:
            continue
        shown = _mask(value) if field in _SECRET_FIELDS else str(value)
        rows.append([field, shown])
    return rows


@app.command("token")
def token_command(
    service: str = typer.Argument(..., help="Service name, e.g. 'assistant'."),
    header: bool = typer.Option(
        False, "--header", "-H", help="Print the full Authorization header."
    ),
) -> None:
    """Print a current bearer token for SERVICE."""
    from svcauth.auth import create_token_manager, resolve_descriptor
    from svcauth.config import load_service_credentials
    from svcauth.models import BasicAuth
    from svcauth.output import debug, error, print_data

    try:
        descriptor = resolve_descriptor(load_service_credentials(service))
        if isinstance(descriptor, BasicAuth):
            raise ConfigurationError(
                f"Service '{service}' uses basic authentication; there is no bearer token"
            )
        debug(f"Using '{descriptor.kind}' credentials for {service}")
        token = create_token_manager(descriptor).current_token()
    except SvcauthError as exc:
        error(str(exc))
        raise typer.Exit(exc.exit_code)

    print_data(f"Authorization: Bearer {token}" if header else token)


@app.command("inspect")
def inspect_command(
    service: str = typer.Argument(..., help="Service name, e.g. 'assistant'."),
) -> None:
    """Show which credential variant SERVICE resolves to (secrets masked)."""
    from svcauth.auth import resolve_descriptor
    from svcauth.config import load_service_credentials
    from svcauth.output import error, info, print_table

    try:
        descriptor = resolve_descriptor(load_service_credentials(service))
    except SvcauthError as exc:
        error(str(exc))
        raise typer.Exit(exc.exit_code)

    print_table(["field", "value"], _describe(descriptor), title=f"{service} credentials")
    info(f"{service} uses '{descriptor.kind}' credentials")


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from svcauth.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point invoked by the ``svcauth`` console script.

    :class:`~svcauth.exceptions.SvcauthError` instances cause a clean exit
    with the error's ``exit_code``.  All other exceptions produce a crash
    log and a generic failure exit.
    """
    _setup_signal_handlers()
    try:
        app(args=argv)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from svcauth.output import error

        if isinstance(exc, SvcauthError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
