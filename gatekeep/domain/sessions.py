"""
Session domain service - Access/refresh token pair state machine.

Session State Machine (per account)
===================================

    NoSession      -> SessionActive   (issue_pair: login, registration)
    SessionActive  -> SessionActive'  (rotate: prior refresh token dies)
    SessionActive  -> NoSession       (revoke: logout; password reset)

Only the digest of the single live refresh token is stored. rotate() swaps
it with a compare-and-swap against the digest of the presented token, so
a stale or already-rotated refresh token is rejected even while its
signature and exp are still valid.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .account import PublicAccount, normalize_email
from .config import SessionConfig
from .exceptions import SignedTokenError
from .passwords import PasswordVault
from .ports import CredentialStore
from .results import Err, ErrorKind, Ok, Result
from .tokens import TokenMinter

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    """Signed token pair plus the cookie max-ages matching their TTLs."""

    access_token: str
    refresh_token: str
    access_max_age: int
    refresh_max_age: int


@dataclass(frozen=True)
class SessionGrant:
    """Result of a successful login or registration."""

    tokens: TokenPair
    account: PublicAccount


@dataclass
class SessionManager:
    """
    Domain service for issuing, rotating and revoking session tokens.

    Every public operation returns a Result; signature and storage
    failures never escape as exceptions.
    """

    store: CredentialStore
    vault: PasswordVault
    minter: TokenMinter
    config: SessionConfig

    def login(self, email: str, password: str) -> Result[SessionGrant]:
        """
        Authenticate with email and password and open a new session.

        bcrypt runs whether or not the email exists, and both failure
        modes report the same INVALID_CREDENTIALS error.
        """
        account = self.store.find_by_email(normalize_email(email))
        if account is None:
            self.vault.burn(password)
            return Err(ErrorKind.INVALID_CREDENTIALS, "Invalid credentials")
        if not self.vault.verify(password, account.password_hash):
            return Err(ErrorKind.INVALID_CREDENTIALS, "Invalid credentials")

        issued = self.issue_pair(account.id)
        if isinstance(issued, Err):
            return issued
        logger.info("Login succeeded for account %s", account.id)
        return Ok(SessionGrant(tokens=issued.value, account=account.public_view()))

    def issue_pair(self, account_id: str) -> Result[TokenPair]:
        """
        Mint a new access/refresh pair and make its refresh token the only
        trusted one for the account.
        """
        pair = self._mint_pair(account_id)
        if not self.store.set_refresh_token(account_id, self.minter.digest(pair.refresh_token)):
            return Err(ErrorKind.NOT_FOUND, "Account not found")
        return Ok(pair)

    def rotate(self, presented_refresh_token: str) -> Result[TokenPair]:
        """
        Exchange a refresh token for a brand-new pair.

        Fails with UNAUTHORIZED if the token does not verify, or if it is
        not the account's currently stored refresh token.
        """
        try:
            claims = self.minter.verify_signed_token(
                presented_refresh_token, self.config.refresh_token_secret, expected_type=REFRESH
            )
        except SignedTokenError as e:
            logger.debug("Refresh token rejected: %s", e)
            return Err(ErrorKind.UNAUTHORIZED, "Invalid refresh token")

        account_id = claims["sub"]
        pair = self._mint_pair(account_id)
        swapped = self.store.swap_refresh_token(
            account_id,
            expected=self.minter.digest(presented_refresh_token),
            replacement=self.minter.digest(pair.refresh_token),
        )
        if not swapped:
            logger.warning("Stale or revoked refresh token presented for account %s", account_id)
            return Err(ErrorKind.UNAUTHORIZED, "Invalid refresh token")
        return Ok(pair)

    def revoke(self, account_id: str) -> Result[None]:
        """Forget the stored refresh token; every issued refresh token dies."""
        if not self.store.set_refresh_token(account_id, None):
            return Err(ErrorKind.NOT_FOUND, "Account not found")
        logger.info("Session revoked for account %s", account_id)
        return Ok(None)

    def authenticate(self, presented_access_token: str) -> Result[PublicAccount]:
        """Resolve the account behind an access token."""
        try:
            claims = self.minter.verify_signed_token(
                presented_access_token, self.config.access_token_secret, expected_type=ACCESS
            )
        except SignedTokenError:
            return Err(ErrorKind.UNAUTHORIZED, "Not authorized, invalid token")

        account = self.store.find_by_id(claims["sub"])
        if account is None:
            return Err(ErrorKind.UNAUTHORIZED, "Not authorized, invalid token")
        return Ok(account.public_view())

    def optional_authenticate(
        self, presented_access_token: Optional[str]
    ) -> Optional[PublicAccount]:
        """Same check as authenticate(), but any failure just yields None."""
        if not presented_access_token:
            return None
        result = self.authenticate(presented_access_token)
        return result.value if isinstance(result, Ok) else None

    def _mint_pair(self, account_id: str) -> TokenPair:
        access = self.minter.signed_token(
            {"sub": account_id, "type": ACCESS},
            self.config.access_token_secret,
            self.config.access_token_ttl,
        )
        refresh = self.minter.signed_token(
            {"sub": account_id, "type": REFRESH},
            self.config.refresh_token_secret,
            self.config.refresh_token_ttl,
        )
        return TokenPair(
            access_token=access,
            refresh_token=refresh,
            access_max_age=self.config.access_max_age,
            refresh_max_age=self.config.refresh_max_age,
        )
