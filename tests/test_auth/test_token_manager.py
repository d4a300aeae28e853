"""Tests for the TokenManager base contract.

Exercised through :class:`ApiKeyTokenManager` with a stub transport so
that every network exchange is counted.
"""

from __future__ import annotations

import threading
import time

import jwt
import pytest

from svcauth.auth.base import AuthResult, TokenManager
from svcauth.auth.cache import TokenCache
from svcauth.exceptions import AuthenticationError, MalformedTokenError, TokenExpiredError
from svcauth.managers.api_key import ApiKeyTokenManager
from svcauth.models import ApiKey, TokenRecord


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class StubTransport:
    """Hands out numbered tokens and counts fetches."""

    def __init__(self, clock, expires_in: int = 3600, delay: float = 0.0) -> None:
        self.clock = clock
        self.expires_in = expires_in
        self.delay = delay
        self.calls = 0
        self.error: Exception | None = None
        self._lock = threading.Lock()

    def fetch_token(self, descriptor) -> TokenRecord:
        with self._lock:
            self.calls += 1
            n = self.calls
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        now = int(self.clock())
        return TokenRecord(
            access_token=f"token-{n}",
            expires_in=self.expires_in,
            expiration=now + self.expires_in,
        )


def _manager(clock, transport: StubTransport) -> ApiKeyTokenManager:
    return ApiKeyTokenManager(
        ApiKey(apikey="my-key"),
        transport=transport,
        cache=TokenCache(clock=clock),
    )


def _jwt(**claims: object) -> str:
    return jwt.encode(claims, "secret", algorithm="HS256")


# ---------------------------------------------------------------------------
# Base class contract
# ---------------------------------------------------------------------------


class TestAbstractBase:
    def test_cannot_instantiate(self) -> None:
        with pytest.raises(TypeError):
            TokenManager(ApiKey(apikey="k"))  # type: ignore[abstract]

    def test_auth_result_defaults_to_empty_headers(self) -> None:
        assert AuthResult().headers == {}


# ---------------------------------------------------------------------------
# current_token
# ---------------------------------------------------------------------------


class TestCurrentToken:
    def test_first_call_fetches(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        assert manager.current_token() == "token-1"
        assert transport.calls == 1

    def test_valid_cached_token_needs_no_network(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.current_token()
        clock.advance(60)
        assert manager.current_token() == "token-1"
        assert manager.current_token() == "token-1"
        assert transport.calls == 1

    def test_expired_token_triggers_single_fetch(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.current_token()
        clock.advance(3601)
        assert manager.current_token() == "token-2"
        assert manager.current_token() == "token-2"
        assert transport.calls == 2

    def test_refresh_inside_margin(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.current_token()
        # Still valid, but within the last 20% of its lifetime.
        clock.advance(3000)
        assert manager.current_token() == "token-2"
        assert transport.calls == 2

    def test_short_lived_token_reused_before_margin(self, clock) -> None:
        transport = StubTransport(clock, expires_in=3)
        manager = _manager(clock, transport)
        assert manager.current_token() == "token-1"
        clock.advance(1)
        assert manager.current_token() == "token-1"
        assert transport.calls == 1

    def test_failed_refresh_propagates_and_keeps_cache(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.current_token()
        before = manager._cache.read()

        clock.advance(3601)
        transport.error = AuthenticationError("Token request failed with status 500: Oh no")
        with pytest.raises(AuthenticationError, match="Oh no"):
            manager.current_token()
        assert manager._cache.read() is before

    def test_stale_token_never_returned_after_failure(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.current_token()
        clock.advance(3000)
        transport.error = AuthenticationError("down")
        with pytest.raises(AuthenticationError):
            manager.current_token()

    def test_already_expired_record_rejected(self, clock) -> None:
        transport = StubTransport(clock, expires_in=0)
        manager = _manager(clock, transport)
        with pytest.raises(TokenExpiredError):
            manager.current_token()
        assert manager._cache.read() is None

    def test_concurrent_callers_share_one_fetch(self, clock) -> None:
        transport = StubTransport(clock, delay=0.05)
        manager = _manager(clock, transport)
        results: list[str] = []
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            results.append(manager.current_token())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert transport.calls == 1
        assert results == ["token-1"] * 8


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------


class TestAccessTokenOverride:
    def test_set_access_token(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.set_access_token("token")
        assert manager.current_token() == "token"
        assert transport.calls == 0

    def test_set_access_token_wins_over_cache(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.current_token()
        manager.set_access_token("mine")
        assert manager.current_token() == "mine"

    def test_clear_access_token_returns_to_managed_flow(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.set_access_token("mine")
        manager.clear_access_token()
        assert manager.current_token() == "token-1"

    def test_empty_token_rejected(self, clock) -> None:
        manager = _manager(clock, StubTransport(clock))
        with pytest.raises(ValueError):
            manager.set_access_token("")

    def test_expired_jwt_override_is_refetched(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.set_access_token(_jwt(exp=int(clock.now) - 10))
        assert manager.current_token() == "token-1"
        assert transport.calls == 1
        # The expired override is dropped for good.
        assert manager.current_token() == "token-1"

    def test_unexpired_jwt_override_is_used(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        token = _jwt(exp=int(clock.now) + 600)
        manager.set_access_token(token)
        assert manager.current_token() == token
        assert transport.calls == 0


class TestRefresh:
    def test_forces_fetch(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.current_token()
        assert manager.refresh() == "token-2"
        assert manager.current_token() == "token-2"

    def test_discards_override(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        manager.set_access_token("mine")
        assert manager.refresh() == "token-1"
        assert manager.current_token() == "token-1"


class TestAuthenticate:
    def test_bearer_header(self, clock) -> None:
        manager = _manager(clock, StubTransport(clock))
        result = manager.authenticate()
        assert result.headers == {"Authorization": "Bearer token-1"}


class TestSaveTokenInfo:
    def test_jwt_expiry_from_claims(self, clock) -> None:
        transport = StubTransport(clock)
        manager = _manager(clock, transport)
        now = int(clock.now)
        access_token = _jwt(iat=now, exp=now + 6 * 3600, username="dummy")

        record = manager.save_token_info(
            {"access_token": access_token, "token_type": "Bearer"}
        )

        assert record.expiration == now + 6 * 3600
        assert record.expires_in == 6 * 3600
        assert manager._cache.read() is record
        assert manager.current_token() == access_token
        assert transport.calls == 0

    def test_expires_in_takes_precedence(self, clock) -> None:
        manager = _manager(clock, StubTransport(clock))
        record = manager.save_token_info(
            {"access_token": "opaque", "expires_in": 120, "expiration": 1}
        )
        assert record.expiration == int(clock.now) + 120

    def test_malformed_payload_leaves_cache_untouched(self, clock) -> None:
        manager = _manager(clock, StubTransport(clock))
        manager.current_token()
        before = manager._cache.read()
        with pytest.raises(MalformedTokenError):
            manager.save_token_info({"access_token": "opaque"})
        assert manager._cache.read() is before
