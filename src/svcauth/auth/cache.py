"""In-memory holder for the current token record.

:class:`TokenCache` answers two questions about the record it holds: is
the token still usable at all, and is it close enough to expiry that a
refresh should happen now.  The second check uses a proactive margin
(a fraction of the token's original lifetime, never less than a few
seconds) so that a token does not expire halfway through a long request.

The cache performs no I/O and no locking; :class:`~svcauth.auth.base.TokenManager`
serialises every mutation.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from svcauth.models import TokenRecord

DEFAULT_REFRESH_FRACTION = 0.2
DEFAULT_MIN_REFRESH_MARGIN = 5


class TokenCache:
    """Holds the last-fetched :class:`~svcauth.models.TokenRecord`.

    Args:
        refresh_fraction: Share of ``expires_in`` before expiry at which a
            refresh becomes due.
        min_refresh_margin: Lower bound on the margin, in seconds.
        clock: Returns the current time as Unix epoch seconds.

    Example::

        cache = TokenCache()
        cache.store(record)
        if cache.is_token_refresh_needed():
            ...
    """

    def __init__(
        self,
        refresh_fraction: float = DEFAULT_REFRESH_FRACTION,
        min_refresh_margin: int = DEFAULT_MIN_REFRESH_MARGIN,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not 0 <= refresh_fraction < 1:
            raise ValueError("refresh_fraction must be in [0, 1)")
        self._refresh_fraction = refresh_fraction
        self._min_refresh_margin = max(0, min_refresh_margin)
        self._clock = clock
        self._record: Optional[TokenRecord] = None

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    def store(self, record: TokenRecord) -> None:
        self._record = record

    def read(self) -> Optional[TokenRecord]:
        return self._record

    def clear(self) -> None:
        self._record = None

    def refresh_margin(self, record: TokenRecord) -> int:
        """Seconds before ``record.expiration`` at which a refresh is due.

        The minimum margin applies, but the margin never exceeds half of
        ``expires_in``.
        """
        margin = max(
            int(record.expires_in * self._refresh_fraction),
            self._min_refresh_margin,
        )
        return min(margin, max(record.expires_in, 0) // 2)

    def is_token_valid(self) -> bool:
        """False if nothing is stored or the stored token has expired."""
        return self.record_is_valid(self._record)

    def is_token_refresh_needed(self) -> bool:
        """True if nothing is stored or the token is inside the refresh margin."""
        return self.record_needs_refresh(self._record)

    def record_is_valid(self, record: Optional[TokenRecord]) -> bool:
        if record is None:
            return False
        return record.expiration > self._clock()

    def record_needs_refresh(self, record: Optional[TokenRecord]) -> bool:
        if record is None:
            return True
        return self._clock() >= record.expiration - self.refresh_margin(record)

    def fresh_token(self) -> Optional[str]:
        """Return the cached access token if it needs no refresh, else ``None``.

        Both checks run against a single snapshot of the stored record, so
        a concurrent :meth:`store` cannot split them.
        """
        record = self._record
        if (
            record is not None
            and self.record_is_valid(record)
            and not self.record_needs_refresh(record)
        ):
            return record.access_token
        return None
