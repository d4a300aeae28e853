"""Tests for the auth transport."""

from __future__ import annotations

import json
from urllib.parse import parse_qs

import httpx
import pytest

from svcauth.auth.transport import APIKEY_GRANT_TYPE, AuthTransport, basic_auth_header
from svcauth.exceptions import (
    AuthenticationError,
    ConfigurationError,
    MalformedTokenError,
)
from svcauth.models import ApiKey, BasicAuth, ExternalToken, PlatformCredential


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _token_response(**overrides: object) -> dict[str, object]:
    data: dict[str, object] = {
        "access_token": "oAeisG8yqPY7sFR_x66Z15",
        "token_type": "Bearer",
        "expires_in": 3600,
        "expiration": 1_524_167_011,
        "refresh_token": "jy4gl91BQ",
    }
    data.update(overrides)
    return data


def _transport(handler, clock) -> AuthTransport:
    """AuthTransport whose requests are answered by *handler*."""
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return AuthTransport(client=client, clock=clock)


class _Recorder:
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


# ---------------------------------------------------------------------------
# Platform exchange
# ---------------------------------------------------------------------------


class TestPlatformExchange:
    def test_request_token(self, clock) -> None:
        recorder = _Recorder(httpx.Response(200, json=_token_response()))
        transport = _transport(recorder, clock)

        record = transport.fetch_token(
            PlatformCredential(url="https://the.sixth.one", username="you", password="me")
        )

        assert record.access_token == "oAeisG8yqPY7sFR_x66Z15"
        assert record.refresh_token == "jy4gl91BQ"
        assert record.expires_in == 3600
        assert record.expiration == int(clock.now) + 3600

        (request,) = recorder.requests
        assert request.method == "GET"
        assert str(request.url) == "https://the.sixth.one/v1/preauth/validateAuth"
        assert request.headers["Authorization"] == "Basic eW91Om1l"
        assert request.headers["Host"] == "the.sixth.one"

    def test_trailing_slash_in_url(self, clock) -> None:
        recorder = _Recorder(httpx.Response(200, json=_token_response()))
        _transport(recorder, clock).fetch_token(
            PlatformCredential(url="https://the.sixth.one/", username="you", password="me")
        )
        assert str(recorder.requests[0].url) == "https://the.sixth.one/v1/preauth/validateAuth"

    def test_alternate_token_name(self, clock) -> None:
        body = _token_response()
        body["accessToken"] = body.pop("access_token")
        recorder = _Recorder(httpx.Response(200, json=body))

        record = _transport(recorder, clock).fetch_token(
            PlatformCredential(
                url="https://the.sixth.one",
                username="you",
                password="me",
                token_name="accessToken",
            )
        )
        assert record.access_token == "oAeisG8yqPY7sFR_x66Z15"

    def test_request_token_fails(self, clock) -> None:
        body = {"code": "500", "error": "Oh no"}
        recorder = _Recorder(httpx.Response(500, json=body))

        with pytest.raises(AuthenticationError) as exc_info:
            _transport(recorder, clock).fetch_token(
                PlatformCredential(url="https://the.sixth.one", username="you", password="me")
            )

        assert str(exc_info.value)
        assert "Oh no" in str(exc_info.value)
        assert exc_info.value.status_code == 500
        assert exc_info.value.body == body

    def test_missing_url_is_configuration_error(self, clock) -> None:
        transport = _transport(_Recorder(httpx.Response(200)), clock)
        with pytest.raises(ConfigurationError):
            transport.fetch_token(PlatformCredential(token="pre-issued"))


# ---------------------------------------------------------------------------
# API-key exchange
# ---------------------------------------------------------------------------


class TestApiKeyExchange:
    def test_posts_form_encoded_grant(self, clock) -> None:
        recorder = _Recorder(httpx.Response(200, json=_token_response()))
        record = _transport(recorder, clock).fetch_token(
            ApiKey(apikey="my-key", url="https://iam.example.com/identity/token")
        )

        assert record.access_token == "oAeisG8yqPY7sFR_x66Z15"
        (request,) = recorder.requests
        assert request.method == "POST"
        assert str(request.url) == "https://iam.example.com/identity/token"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert "Authorization" not in request.headers
        form = parse_qs(request.content.decode())
        assert form["grant_type"] == [APIKEY_GRANT_TYPE]
        assert form["apikey"] == ["my-key"]
        assert form["response_type"] == ["cloud_iam"]

    def test_client_credentials_sent_as_basic_auth(self, clock) -> None:
        recorder = _Recorder(httpx.Response(200, json=_token_response()))
        _transport(recorder, clock).fetch_token(
            ApiKey(apikey="my-key", client_id="id", client_secret="secret")
        )
        assert recorder.requests[0].headers["Authorization"] == basic_auth_header("id", "secret")

    def test_missing_access_token_is_malformed(self, clock) -> None:
        body = {"token_type": "Bearer", "expires_in": 3600}
        recorder = _Recorder(httpx.Response(200, json=body))
        with pytest.raises(MalformedTokenError) as exc_info:
            _transport(recorder, clock).fetch_token(ApiKey(apikey="my-key"))
        assert isinstance(exc_info.value, AuthenticationError)
        assert exc_info.value.body == body

    def test_non_json_body(self, clock) -> None:
        recorder = _Recorder(httpx.Response(200, text="<html>gateway</html>"))
        with pytest.raises(AuthenticationError) as exc_info:
            _transport(recorder, clock).fetch_token(ApiKey(apikey="my-key"))
        assert not isinstance(exc_info.value, MalformedTokenError)

    def test_unauthorized(self, clock) -> None:
        recorder = _Recorder(
            httpx.Response(400, json={"errorMessage": "Provided API key could not be found"})
        )
        with pytest.raises(AuthenticationError, match="could not be found") as exc_info:
            _transport(recorder, clock).fetch_token(ApiKey(apikey="bad"))
        assert exc_info.value.status_code == 400

    def test_network_failure_is_wrapped(self, clock) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(AuthenticationError) as exc_info:
            _transport(handler, clock).fetch_token(ApiKey(apikey="my-key"))
        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestUnexchangeableDescriptors:
    @pytest.mark.parametrize(
        "descriptor",
        [BasicAuth(username="u", password="p"), ExternalToken(token="t")],
    )
    def test_rejected(self, descriptor, clock) -> None:
        recorder = _Recorder(httpx.Response(200, json=_token_response()))
        with pytest.raises(ConfigurationError):
            _transport(recorder, clock).fetch_token(descriptor)
        assert recorder.requests == []


def test_basic_auth_header() -> None:
    assert basic_auth_header("you", "me") == "Basic eW91Om1l"
    assert basic_auth_header("", "") == "Basic Og=="


def test_per_request_client_used_without_injected_client(monkeypatch: pytest.MonkeyPatch, clock) -> None:
    """Without an injected client a short-lived httpx.Client is opened per request."""
    seen: list[httpx.Request] = []
    real_client = httpx.Client

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=json.dumps(_token_response()).encode())

    def fake_client(**kwargs: object) -> httpx.Client:
        assert kwargs["timeout"] == 30.0
        assert kwargs["verify"] is True
        return real_client(transport=httpx.MockTransport(handler))

    monkeypatch.setattr("svcauth.auth.transport.httpx.Client", fake_client)
    record = AuthTransport(clock=clock).fetch_token(ApiKey(apikey="k"))
    assert record.access_token == "oAeisG8yqPY7sFR_x66Z15"
    assert len(seen) == 1
