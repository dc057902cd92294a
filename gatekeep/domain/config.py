"""
Domain configuration - Explicit structs passed to the services at construction.

Validation happens in __post_init__ so a bad configuration fails at startup,
before the first request.
"""

from dataclasses import dataclass
from datetime import timedelta

from .exceptions import ConfigurationError

MIN_SECRET_LENGTH = 32


@dataclass(frozen=True)
class SessionConfig:
    """Signing keys and lifetimes for the access/refresh token pair."""

    access_token_secret: str
    refresh_token_secret: str
    access_token_ttl: timedelta = timedelta(minutes=15)
    refresh_token_ttl: timedelta = timedelta(days=7)

    def __post_init__(self) -> None:
        for name in ("access_token_secret", "refresh_token_secret"):
            value = getattr(self, name)
            if not value:
                raise ConfigurationError(f"{name} is required")
            if len(value) < MIN_SECRET_LENGTH:
                raise ConfigurationError(
                    f"{name} must be at least {MIN_SECRET_LENGTH} characters"
                )
        if self.access_token_secret == self.refresh_token_secret:
            raise ConfigurationError("access and refresh token secrets must differ")
        _require_positive("access_token_ttl", self.access_token_ttl)
        _require_positive("refresh_token_ttl", self.refresh_token_ttl)

    @property
    def access_max_age(self) -> int:
        return int(self.access_token_ttl.total_seconds())

    @property
    def refresh_max_age(self) -> int:
        return int(self.refresh_token_ttl.total_seconds())


@dataclass(frozen=True)
class LifecycleConfig:
    """
    Account lifecycle policy.

    require_email_verification selects the registration variant:
    True mints a 24h verification token and mails a link; False marks the
    account verified immediately and sends nothing.
    """

    require_email_verification: bool = True
    verification_token_ttl: timedelta = timedelta(hours=24)
    reset_token_ttl: timedelta = timedelta(hours=1)
    frontend_url: str = "http://localhost:3000"

    def __post_init__(self) -> None:
        _require_positive("verification_token_ttl", self.verification_token_ttl)
        _require_positive("reset_token_ttl", self.reset_token_ttl)
        if not self.frontend_url:
            raise ConfigurationError("frontend_url is required")


def _require_positive(name: str, ttl: timedelta) -> None:
    if ttl <= timedelta(0):
        raise ConfigurationError(f"{name} must be positive")
