"""
Account lifecycle domain service - Registration, verification and recovery.

Verification State Machine
==========================

    (none)     -> UNVERIFIED   register, require_email_verification=True
    (none)     -> VERIFIED     register, require_email_verification=False
    UNVERIFIED -> VERIFIED     verify_email (consumes the verification token)

is_verified only ever moves false -> true.

Single-Use Tokens
=================

Verification (24h) and password-reset (1h) tokens are minted by
TokenMinter, stored as SHA-256 digests, and consumed through the store's
compare-and-swap consume_pending_token(). A token is usable only while it
is present and unexpired, and at most once.

If the email carrying a fresh token cannot be delivered, the token is
discarded again so that no usable token outlives an undelivered link.

Anti-Enumeration
================

resend_verification() and forgot_password() answer an unknown email with
the same Ok payload as a known one. For a known email the token is minted,
stored and mailed through a TaskQueue, so the answer returns after the
same single lookup either way.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from . import messages
from .account import PublicAccount, UserAccount, normalize_email
from .config import LifecycleConfig
from .exceptions import DeliveryError
from .passwords import PasswordVault
from .ports import CredentialStore, NotificationGateway, TaskQueue, TokenKind
from .results import Err, ErrorKind, Ok, Result
from .sessions import SessionGrant, SessionManager
from .tokens import TokenMinter

logger = logging.getLogger(__name__)

VERIFICATION_SENT = "If the email exists, a verification link has been sent"
RESET_SENT = "If the email exists, a password reset link has been sent"

_INVALID_TOKEN = "Invalid or expired token"


def _validation_error(email: Optional[str], password: str) -> Optional[Err]:
    if email is not None and "@" not in email:
        return Err(ErrorKind.VALIDATION_ERROR, "A valid email address is required")
    if not password:
        return Err(ErrorKind.VALIDATION_ERROR, "Password is required")
    return None


class InlineTasks:
    """TaskQueue that runs each task immediately, in the caller's thread."""

    def add_task(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        func(*args, **kwargs)


@dataclass
class AccountLifecycle:
    """
    Domain service owning the per-account credential state machine.

    The notification gateway is injected at construction; delivery is
    best-effort except where a token must be rolled back.
    """

    store: CredentialStore
    vault: PasswordVault
    minter: TokenMinter
    notifier: NotificationGateway
    sessions: SessionManager
    config: LifecycleConfig = field(default_factory=LifecycleConfig)
    app_name: str = "gatekeep"
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)

    def register(
        self, email: str, password: str, first_name: str = "", last_name: str = ""
    ) -> Result[SessionGrant]:
        """
        Register a new account and open its first session.

        Args:
            email: User's email address (will be normalized)
            password: User's password (will be hashed)
            first_name: Optional display name part
            last_name: Optional display name part

        Returns:
            Ok(SessionGrant), Err(VALIDATION_ERROR) for a malformed email or
            empty password, or Err(CONFLICT) if the email is taken
        """
        normalized_email = normalize_email(email)
        invalid = _validation_error(normalized_email, password)
        if invalid is not None:
            return invalid
        if self.store.find_by_email(normalized_email) is not None:
            return Err(ErrorKind.CONFLICT, "Email already registered")

        now = self.clock()
        account = UserAccount(
            email=normalized_email,
            password_hash=self.vault.hash(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            is_verified=not self.config.require_email_verification,
            created_at=now,
            updated_at=now,
        )

        raw_token: Optional[str] = None
        if self.config.require_email_verification:
            raw_token = self.minter.random_token()
            account.set_pending_token(
                TokenKind.VERIFICATION,
                self.minter.digest(raw_token),
                now + self.config.verification_token_ttl,
            )

        stored = self.store.create(account)
        if stored is None:
            # Lost a race against a concurrent registration for the same email
            return Err(ErrorKind.CONFLICT, "Email already registered")
        logger.info("Registered account %s (verified=%s)", stored.id, stored.is_verified)

        if raw_token is not None:
            self._deliver_token(stored, TokenKind.VERIFICATION, raw_token)

        issued = self.sessions.issue_pair(stored.id)
        if isinstance(issued, Err):
            return issued
        return Ok(SessionGrant(tokens=issued.value, account=stored.public_view()))

    def verify_email(self, token: str) -> Result[PublicAccount]:
        """Consume a verification token and mark the account verified."""
        now = self.clock()
        digest = self.minter.digest(token)
        account = self._find_live(TokenKind.VERIFICATION, digest, now)
        if account is None:
            return Err(ErrorKind.INVALID_OR_EXPIRED_TOKEN, _INVALID_TOKEN)

        account.is_verified = True
        account.clear_pending_token(TokenKind.VERIFICATION)
        account.updated_at = now
        if not self.store.consume_pending_token(account, TokenKind.VERIFICATION, digest, now):
            return Err(ErrorKind.INVALID_OR_EXPIRED_TOKEN, _INVALID_TOKEN)
        logger.info("Email verified for account %s", account.id)

        welcome = messages.welcome_message(self.app_name, account.display_name)
        try:
            self.notifier.send(account.email, welcome.subject, welcome.html_body)
        except DeliveryError:
            logger.warning("Welcome email not delivered for account %s", account.id, exc_info=True)
        return Ok(account.public_view())

    def resend_verification(self, email: str, tasks: Optional[TaskQueue] = None) -> Result[str]:
        """
        Queue a fresh verification token for an unverified account.

        Unknown emails get the same Ok(VERIFICATION_SENT) as known ones.
        A verified account fails with ALREADY_VERIFIED. Without `tasks`
        the token is issued and mailed before returning.
        """
        account = self.store.find_by_email(normalize_email(email))
        if account is None:
            logger.debug("Verification resend requested for unknown email")
            return Ok(VERIFICATION_SENT)
        if account.is_verified:
            return Err(ErrorKind.ALREADY_VERIFIED, "Email is already verified")

        queue = tasks if tasks is not None else InlineTasks()
        queue.add_task(self._issue_token, account, TokenKind.VERIFICATION)
        return Ok(VERIFICATION_SENT)

    def send_verification(self, account_id: str) -> Result[str]:
        """
        Authenticated variant of resend_verification().

        The caller already knows the account exists, so a failed delivery
        is reported as DELIVERY_ERROR instead of being hidden.
        """
        account = self.store.find_by_id(account_id)
        if account is None:
            return Err(ErrorKind.NOT_FOUND, "User not found")
        if account.is_verified:
            return Err(ErrorKind.ALREADY_VERIFIED, "Email is already verified")

        if not self._issue_token(account, TokenKind.VERIFICATION):
            return Err(ErrorKind.DELIVERY_ERROR, "Failed to send verification email")
        return Ok("Verification email sent successfully")

    def forgot_password(self, email: str, tasks: Optional[TaskQueue] = None) -> Result[str]:
        """Queue a reset token and its mailed link. Always Ok(RESET_SENT)."""
        account = self.store.find_by_email(normalize_email(email))
        if account is None:
            logger.debug("Password reset requested for unknown email")
            return Ok(RESET_SENT)

        queue = tasks if tasks is not None else InlineTasks()
        queue.add_task(self._issue_token, account, TokenKind.RESET)
        return Ok(RESET_SENT)

    def reset_password(self, token: str, new_password: str) -> Result[None]:
        """
        Consume a reset token and replace the password.

        Rejects a new password equal to the current one with SAME_PASSWORD,
        leaving both the hash and the token untouched. On success every
        session of the account is revoked.
        """
        invalid = _validation_error(None, new_password)
        if invalid is not None:
            return invalid
        now = self.clock()
        digest = self.minter.digest(token)
        account = self._find_live(TokenKind.RESET, digest, now)
        if account is None:
            return Err(ErrorKind.INVALID_OR_EXPIRED_TOKEN, _INVALID_TOKEN)

        if self.vault.verify(new_password, account.password_hash):
            return Err(
                ErrorKind.SAME_PASSWORD, "New password cannot be the same as the old password"
            )

        account.password_hash = self.vault.hash(new_password)
        account.clear_pending_token(TokenKind.RESET)
        account.refresh_token = None
        account.updated_at = now
        consumed = self.store.consume_pending_token(
            account, TokenKind.RESET, digest, now, revoke_session=True
        )
        if not consumed:
            return Err(ErrorKind.INVALID_OR_EXPIRED_TOKEN, _INVALID_TOKEN)
        logger.info("Password reset for account %s; sessions revoked", account.id)
        return Ok(None)

    def change_password(
        self, account_id: str, current_password: str, new_password: str
    ) -> Result[None]:
        """
        Replace the password of an authenticated account.

        Unlike reset_password() there is no same-password rejection here,
        and existing sessions stay valid.
        """
        invalid = _validation_error(None, new_password)
        if invalid is not None:
            return invalid
        account = self.store.find_by_id(account_id)
        if account is None:
            return Err(ErrorKind.NOT_FOUND, "User not found")
        if not self.vault.verify(current_password, account.password_hash):
            return Err(ErrorKind.INVALID_CREDENTIALS, "Current password is incorrect")

        self.store.update_password(account.id, self.vault.hash(new_password), self.clock())
        logger.info("Password changed for account %s", account.id)
        return Ok(None)

    def get_profile(self, account_id: str) -> Result[PublicAccount]:
        account = self.store.find_by_id(account_id)
        if account is None:
            return Err(ErrorKind.NOT_FOUND, "User not found")
        return Ok(account.public_view())

    def update_profile(
        self,
        account_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> Result[PublicAccount]:
        """Update only the profile fields that were supplied."""
        account = self.store.find_by_id(account_id)
        if account is None:
            return Err(ErrorKind.NOT_FOUND, "User not found")

        if first_name is not None:
            account.first_name = first_name.strip()
        if last_name is not None:
            account.last_name = last_name.strip()
        if avatar is not None:
            account.avatar = avatar
        account.updated_at = self.clock()
        self.store.update_profile(account)
        return Ok(account.public_view())

    def _find_live(self, kind: TokenKind, digest: str, now: datetime) -> Optional[UserAccount]:
        """Account holding this token, or None if absent or expired."""
        account = self.store.find_by_pending_token(kind, digest)
        if account is None:
            return None
        _, expires_at = account.pending_token(kind)
        if expires_at is None or expires_at <= now:
            return None
        return account

    def _issue_token(self, account: UserAccount, kind: TokenKind) -> bool:
        """
        Mint and store a token of `kind` (replacing any pending one), then
        mail it.

        Returns:
            True if the email was handed off
        """
        ttl = (
            self.config.verification_token_ttl
            if kind is TokenKind.VERIFICATION
            else self.config.reset_token_ttl
        )
        raw_token = self.minter.random_token()
        digest = self.minter.digest(raw_token)
        expires_at = self.clock() + ttl
        self.store.set_pending_token(account.id, kind, digest, expires_at)
        account.set_pending_token(kind, digest, expires_at)
        return self._deliver_token(account, kind, raw_token)

    def _deliver_token(self, account: UserAccount, kind: TokenKind, raw_token: str) -> bool:
        """Mail a token link; on failure discard the token that was just stored."""
        if kind is TokenKind.VERIFICATION:
            message = messages.verification_message(
                self.app_name,
                self.config.frontend_url,
                account.display_name,
                raw_token,
                messages.describe_ttl(int(self.config.verification_token_ttl.total_seconds())),
            )
        else:
            message = messages.password_reset_message(
                self.app_name,
                self.config.frontend_url,
                account.display_name,
                raw_token,
                messages.describe_ttl(int(self.config.reset_token_ttl.total_seconds())),
            )

        try:
            self.notifier.send(account.email, message.subject, message.html_body)
        except DeliveryError:
            logger.warning(
                "%s email not delivered for account %s; discarding token",
                kind.value.capitalize(),
                account.id,
                exc_info=True,
            )
            self.store.discard_pending_token(account.id, kind, self.minter.digest(raw_token))
            account.clear_pending_token(kind)
            return False
        return True
