"""Unverified JWT claim inspection.

Bearer tokens issued by the identity and platform endpoints are usually
JWTs.  svcauth never validates their signatures (the service does that);
it only peeks at ``exp`` so that expiry can be enforced even
when a token response or a caller-supplied token carries no explicit
lifetime.
"""

from __future__ import annotations

from typing import Any, Optional

import jwt


def decode_claims(token: str) -> Optional[dict[str, Any]]:
    """Return the JWT payload of *token*, or ``None`` if it is not a JWT."""
    try:
        claims = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.PyJWTError:
        return None
    return claims if isinstance(claims, dict) else None


def expiry_from_claims(token: str) -> Optional[int]:
    """Return the ``exp`` claim of *token* as epoch seconds, if any."""
    claims = decode_claims(token)
    if not claims:
        return None
    exp = claims.get("exp")
    if isinstance(exp, (int, float)):
        return int(exp)
    return None


def is_known_expired(token: str, now: float) -> bool:
    """True only when *token* is a JWT whose ``exp`` is at or before *now*.

    Opaque tokens are never known to be expired.
    """
    exp = expiry_from_claims(token)
    return exp is not None and exp <= now
