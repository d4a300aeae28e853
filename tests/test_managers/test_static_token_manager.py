"""Tests for the pass-through token manager."""

from __future__ import annotations

import jwt
import pytest

from svcauth.auth.cache import TokenCache
from svcauth.exceptions import AuthenticationError, ConfigurationError, TokenExpiredError
from svcauth.managers.static_token import StaticTokenManager
from svcauth.models import ExternalToken


class _NoNetwork:
    def fetch_token(self, descriptor):
        raise AssertionError("pass-through manager must not fetch")


def _manager(clock, token: str = "caller-token") -> StaticTokenManager:
    return StaticTokenManager(
        ExternalToken(token=token),
        transport=_NoNetwork(),
        cache=TokenCache(clock=clock),
    )


def test_returns_supplied_token(clock) -> None:
    manager = _manager(clock)
    assert manager.auth_type == "external_token"
    assert manager.current_token() == "caller-token"
    assert manager.authenticate().headers == {"Authorization": "Bearer caller-token"}


def test_empty_token_rejected() -> None:
    with pytest.raises(ConfigurationError):
        StaticTokenManager(ExternalToken(token=""))


def test_set_and_clear(clock) -> None:
    manager = _manager(clock)
    manager.set_access_token("rotated")
    assert manager.current_token() == "rotated"
    manager.clear_access_token()
    assert manager.current_token() == "caller-token"


def test_refresh_not_possible(clock) -> None:
    manager = _manager(clock)
    assert manager.can_refresh is False
    with pytest.raises(AuthenticationError):
        manager.refresh()


def test_expired_jwt_raises(clock) -> None:
    token = jwt.encode({"exp": int(clock.now) + 30}, "secret", algorithm="HS256")
    manager = _manager(clock, token)
    assert manager.current_token() == token

    clock.advance(30)
    with pytest.raises(TokenExpiredError):
        manager.current_token()


def test_opaque_token_never_expires(clock) -> None:
    manager = _manager(clock, "opaque")
    clock.advance(10 * 365 * 24 * 3600)
    assert manager.current_token() == "opaque"
