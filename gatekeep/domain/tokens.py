"""
TokenMinter - Random single-use tokens and signed session tokens.

Single-use tokens (email verification, password reset) are 32 random bytes
rendered as hex. Only their SHA-256 digest is stored; the raw value goes
into the emailed link and nowhere else.

Session tokens are HS256 JWTs. The "type" claim pins a token to its role
so a refresh token can never be presented as an access token, even if an
operator configures the same secret for both.
"""

import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import jwt

from .exceptions import TokenExpired, TokenInvalid

ALGORITHM = "HS256"
DEFAULT_TOKEN_BYTES = 32


class TokenMinter:
    """Stateless token factory. `clock` is injectable for tests."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def random_token(self, nbytes: int = DEFAULT_TOKEN_BYTES) -> str:
        """Generate an unguessable token (hex, 2 * nbytes characters)."""
        return secrets.token_hex(nbytes)

    @staticmethod
    def digest(token: str) -> str:
        """SHA-256 hex digest used to store and look up a token."""
        return hashlib.sha256(token.encode()).hexdigest()

    def signed_token(self, claims: dict[str, Any], secret: str, ttl: timedelta) -> str:
        """
        Encode a signed JWT.

        Adds iat, exp and a random jti to the given claims; jti keeps two
        tokens minted for the same subject within one second distinct.
        """
        now = self._clock()
        payload = {
            **claims,
            "iat": now,
            "exp": now + ttl,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=ALGORITHM)

    def verify_signed_token(
        self, token: str, secret: str, expected_type: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Decode and verify a JWT.

        Returns:
            The claims dict

        Raises:
            TokenExpired: exp is in the past
            TokenInvalid: any other failure, including a type mismatch
        """
        now = self._clock()
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "sub"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as e:
            raise TokenInvalid(str(e)) from e

        # exp is checked against the injected clock, not the wall clock
        try:
            expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise TokenInvalid("Malformed exp claim") from e
        if expires_at <= now:
            raise TokenExpired("Token has expired")
        if expected_type is not None and claims.get("type") != expected_type:
            raise TokenInvalid(f"Expected {expected_type} token")
        return claims
