"""svcauth -- bearer-token management for authenticated HTTP services.

Services accept either static credentials (basic auth) or bearer tokens
obtained from a separate authentication endpoint.  svcauth acquires those
tokens, caches them, refreshes them before they expire and guarantees that
stale or malformed tokens never reach an outbound request.

Typical use::

    from svcauth.client import ServiceClient
    from svcauth.config import load_service_credentials

    credentials = load_service_credentials("assistant")
    with ServiceClient("https://api.example.com", credentials) as client:
        response = client.get("/v1/workspaces")

Modules:
    auth: Token cache, auth transport, token manager base and variant selection.
    managers: The API-key, platform and pass-through token managers.
    client: httpx-backed request dispatcher that injects tokens.
    config: Credential sources (environment, credentials file, VCAP_SERVICES).
    models: Pydantic models shared across the package.
    exceptions: Exception hierarchy with exit-code mapping.
    app: ``svcauth`` command line.
"""

__version__ = "0.1.0"
