# src/taskdesk/auth/tokens.py

"""
Bearer credential issuance and validation.

Tokens are HS256 JWTs carrying:
- user_id  (subject)
- is_admin (role flag)
- iat / exp (fixed lifetime window, 24h by default)

Nothing is persisted: a token is trusted iff its signature verifies and it has
not expired.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt

from ..errors import AuthError, AuthFailure

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
BEARER_PREFIX = "bearer "
DEFAULT_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class TokenClaims:
    user_id: str
    is_admin: bool
    issued_at: datetime
    expires_at: datetime

    def remaining(self, now: datetime) -> timedelta:
        return max(timedelta(0), self.expires_at - now)


def strip_bearer(presented: str | None) -> str:
    """Remove an optional "Bearer " scheme prefix (case-insensitive)."""
    raw = (presented or "").strip()
    if raw.lower() == BEARER_PREFIX.strip():
        # scheme with no credential
        return ""
    if raw[: len(BEARER_PREFIX)].lower() == BEARER_PREFIX:
        raw = raw[len(BEARER_PREFIX):].strip()
    return raw


class TokenService:
    """Issues and validates signed credentials with a process-wide symmetric key."""

    def __init__(
        self,
        secret: str,
        *,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("token signing secret is required")
        self._secret = secret
        self._ttl = ttl
        self._clock = clock

    def now(self) -> datetime:
        """Current time on the service clock (issuance and expiry both use it)."""
        return self._clock()

    def generate_token(self, user_id: str, is_admin: bool) -> str:
        if not user_id:
            raise ValueError("user_id is required")
        now = self._clock()
        payload = {
            "user_id": str(user_id),
            "is_admin": bool(is_admin),
            "iat": now,
            "exp": now + self._ttl,
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        logger.debug("Token issued user_id=%s is_admin=%s", user_id, is_admin)
        return token

    def validate_token(self, presented: str | None) -> TokenClaims:
        """
        Verify a presented credential and return its claims.

        Raises AuthError with a distinct reason for:
        - missing: empty input (after stripping the Bearer prefix)
        - malformed: not a decodable JWT, or required claims absent/mistyped
        - bad_signature: signature does not match our key
        - expired: signature fine but exp is not after the service clock
        """
        token = strip_bearer(presented)
        if not token:
            raise AuthError(AuthFailure.MISSING, "token is required")

        # Time claims are checked below against the service clock, not the wall clock.
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={
                    "require": ["exp", "iat", "user_id"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidSignatureError as e:
            raise AuthError(AuthFailure.BAD_SIGNATURE, "token signature is invalid") from e
        except jwt.DecodeError as e:
            raise AuthError(AuthFailure.MALFORMED, f"token is malformed: {e}") from e
        except jwt.InvalidTokenError as e:
            raise AuthError(AuthFailure.MALFORMED, f"token is invalid: {e}") from e

        user_id = payload.get("user_id")
        is_admin = payload.get("is_admin", False)
        if not isinstance(user_id, str) or not user_id.strip():
            raise AuthError(AuthFailure.MALFORMED, "token has no subject")
        if not isinstance(is_admin, bool):
            raise AuthError(AuthFailure.MALFORMED, "token role flag is not a boolean")

        issued_at = _claim_time(payload, "iat")
        expires_at = _claim_time(payload, "exp")
        if self._clock() >= expires_at:
            raise AuthError(AuthFailure.EXPIRED, "token has expired")

        return TokenClaims(
            user_id=user_id,
            is_admin=is_admin,
            issued_at=issued_at,
            expires_at=expires_at,
        )


def _claim_time(payload: dict, name: str) -> datetime:
    raw = payload.get(name)
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise AuthError(AuthFailure.MALFORMED, f"token claim {name} is not a timestamp")
    try:
        return datetime.fromtimestamp(int(raw), UTC)
    except (OverflowError, OSError, ValueError) as e:
        raise AuthError(AuthFailure.MALFORMED, f"token claim {name} is out of range") from e
