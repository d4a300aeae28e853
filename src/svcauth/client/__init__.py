"""HTTP client module for svcauth.

Provides :class:`ServiceClient`, a blocking client backed by
:class:`httpx.Client` that asks the active token manager for a bearer token
before every request (or attaches basic auth for basic credentials), and
maps responses to :class:`DetailedResponse` or typed errors.

Example::

    from svcauth.client import ServiceClient
    from svcauth.models import ServiceCredentials

    with ServiceClient("https://api.example.com", ServiceCredentials(apikey="k")) as client:
        resp = client.get("/v1/things")
"""

from svcauth.client.response import DetailedResponse
from svcauth.client.sync_client import ServiceClient

__all__ = ["DetailedResponse", "ServiceClient"]
