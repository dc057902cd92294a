"""
UserAccount - The credential record owned by the CredentialStore.

Token fields hold SHA-256 digests of the raw values handed to the user,
so a leaked row never yields a usable link or refresh token.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .ports import TokenKind


def utcnow() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


@dataclass(frozen=True)
class PublicAccount:
    """Safe projection of a UserAccount - no hash, no token fields."""

    id: str
    email: str
    first_name: str
    last_name: str
    avatar: str
    is_verified: bool
    created_at: datetime

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class UserAccount:
    """
    Mutable account record.

    Services mutate a loaded instance and hand it back to the store in a
    single column-scoped store write (update_profile(), update_password()
    or consume_pending_token()).
    """

    email: str
    password_hash: str
    first_name: str = ""
    last_name: str = ""
    avatar: str = ""
    is_verified: bool = False
    verification_token: Optional[str] = None
    verification_expires_at: Optional[datetime] = None
    reset_token: Optional[str] = None
    reset_expires_at: Optional[datetime] = None
    refresh_token: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email

    def pending_token(self, kind: TokenKind) -> tuple[Optional[str], Optional[datetime]]:
        """Return (digest, expires_at) for the given single-use token kind."""
        if kind is TokenKind.VERIFICATION:
            return self.verification_token, self.verification_expires_at
        return self.reset_token, self.reset_expires_at

    def set_pending_token(
        self, kind: TokenKind, digest: Optional[str], expires_at: Optional[datetime]
    ) -> None:
        if kind is TokenKind.VERIFICATION:
            self.verification_token = digest
            self.verification_expires_at = expires_at
        else:
            self.reset_token = digest
            self.reset_expires_at = expires_at

    def clear_pending_token(self, kind: TokenKind) -> None:
        self.set_pending_token(kind, None, None)

    def public_view(self) -> PublicAccount:
        return PublicAccount(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            avatar=self.avatar,
            is_verified=self.is_verified,
            created_at=self.created_at,
        )
