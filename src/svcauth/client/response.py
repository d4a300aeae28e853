"""Successful service responses.

:class:`DetailedResponse` is what :class:`~svcauth.client.sync_client.ServiceClient`
returns for every 2xx response: the status, the headers and the decoded
body.
"""

from __future__ import annotations

from typing import Any

import httpx


class DetailedResponse:
    """Status, headers and decoded body of a successful service call.

    Args:
        status_code: HTTP status code.
        headers: Response headers.
        result: Decoded JSON body, raw text, or ``None`` when empty.
    """

    def __init__(self, status_code: int, headers: dict[str, str], result: Any) -> None:
        self.status_code = status_code
        self.headers = headers
        self.result = result

    @classmethod
    def from_response(cls, response: httpx.Response) -> DetailedResponse:
        return cls(
            status_code=response.status_code,
            headers=dict(response.headers),
            result=extract_response_data(response),
        )

    def __repr__(self) -> str:
        return f"DetailedResponse(status_code={self.status_code})"


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first.  If that fails (e.g. the
    response is HTML or plain text), returns the raw text.  Returns
    ``None`` for responses with no content.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
