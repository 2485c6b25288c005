from __future__ import annotations

import hmac
import os
from typing import FrozenSet, Optional


def _parse_tokens(raw: str) -> FrozenSet[str]:
    """Parse MODELTRANSFORM_API_TOKENS (comma-separated) into a token set.

    Security notes:
    - Env var is trusted server configuration.
    - Blank entries are ignored.

    """

    return frozenset(t.strip() for t in (raw or "").split(",") if t.strip())


def load_api_tokens() -> FrozenSet[str]:
    return _parse_tokens(os.environ.get("MODELTRANSFORM_API_TOKENS", ""))


def requires_auth(tokens: FrozenSet[str]) -> bool:
    """Return True if the service should require a bearer token.

    Policy:
    - If MODELTRANSFORM_REQUIRE_AUTH=1, always require.
    - Else, require iff at least one token is configured.

    """

    if os.environ.get("MODELTRANSFORM_REQUIRE_AUTH", "").strip() in {"1", "true", "TRUE", "yes", "YES"}:
        return True
    return bool(tokens)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header value."""

    if not authorization:
        return None
    scheme, _, value = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


def authenticate(authorization: Optional[str], tokens: FrozenSet[str]) -> bool:
    """Check a bearer header against the configured tokens.

    Security notes:
    - Uses constant-time comparison and visits every configured token.

    """

    presented = bearer_token(authorization)
    if presented is None:
        return False
    ok = False
    for t in tokens:
        if hmac.compare_digest(t, presented):
            ok = True
    return ok
