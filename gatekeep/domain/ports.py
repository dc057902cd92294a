"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

if TYPE_CHECKING:
    from .account import UserAccount


class TokenKind(str, Enum):
    """
    Single-use token kinds stored on an account.

    Each kind occupies its own (token, expires_at) column pair, so a pending
    password reset never disturbs a pending email verification.
    """

    VERIFICATION = "verification"
    RESET = "reset"


class CredentialStore(Protocol):
    """Port interface for account persistence."""

    def find_by_email(self, email: str) -> Optional[UserAccount]:
        """Look up an account by normalized email."""
        ...

    def find_by_id(self, account_id: str) -> Optional[UserAccount]:
        """Look up an account by id."""
        ...

    def find_by_pending_token(self, kind: TokenKind, digest: str) -> Optional[UserAccount]:
        """
        Look up the account holding a pending single-use token.

        Args:
            kind: Which token column to search
            digest: SHA-256 hex digest of the presented token

        Returns:
            The account, or None. Expiry is NOT checked here.
        """
        ...

    def create(self, account: UserAccount) -> Optional[UserAccount]:
        """
        Atomically insert a new account.

        Returns:
            The stored account, or None if the email is already taken
        """
        ...

    def update_profile(self, account: UserAccount) -> bool:
        """
        Write the account's first_name, last_name, avatar and updated_at.

        No other column is touched, so a profile write based on an older
        read cannot restore a replaced password hash or a consumed token.

        Returns:
            True if the account exists
        """
        ...

    def update_password(self, account_id: str, password_hash: str, updated_at: datetime) -> bool:
        """
        Write a new password hash (and updated_at) and nothing else.

        Returns:
            True if the account exists
        """
        ...

    def set_pending_token(
        self, account_id: str, kind: TokenKind, digest: str, expires_at: datetime
    ) -> None:
        """Store a freshly minted single-use token, replacing any pending one."""
        ...

    def discard_pending_token(self, account_id: str, kind: TokenKind, digest: str) -> bool:
        """
        Clear a pending token, but only if it is still the given one.

        Returns:
            True if the token was cleared
        """
        ...

    def consume_pending_token(
        self,
        account: UserAccount,
        kind: TokenKind,
        digest: str,
        now: datetime,
        revoke_session: bool = False,
    ) -> bool:
        """
        Apply the change a token authorizes and clear the token, conditionally.

        Only the column the token kind governs is written: a verification
        token sets is_verified, a reset token sets the account's
        password_hash. updated_at follows the account.

        The write happens only if the stored token for `kind` still equals
        `digest` and its expiry is strictly after `now` (compare-and-swap).
        Of two racing calls for the same token, at most one returns True.
        With revoke_session the stored refresh token is cleared in the same
        write.

        Returns:
            True if the write happened, False if the token was already
            consumed, replaced, or expired
        """
        ...

    def set_refresh_token(self, account_id: str, digest: Optional[str]) -> bool:
        """
        Unconditionally overwrite (or clear, with None) the refresh token digest.

        Returns:
            True if the account exists
        """
        ...

    def swap_refresh_token(self, account_id: str, expected: str, replacement: str) -> bool:
        """
        Replace the stored refresh token digest only if it equals `expected`.

        Returns:
            True if the swap happened
        """
        ...


class NotificationGateway(Protocol):
    """Port interface for email delivery."""

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Deliver one message.

        Raises:
            DeliveryError: If the message could not be handed off
        """
        ...


class TaskQueue(Protocol):
    """
    Port interface for work that may run after the caller has its answer.

    FastAPI's BackgroundTasks satisfies this structurally.
    """

    def add_task(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        ...
