"""
In-memory repository adapter - Implements CredentialStore protocol.

Process-local store for development (STORAGE_BACKEND=memory) and tests.
A single lock serializes every operation, which gives the same
compare-and-swap guarantees as the conditional UPDATEs of the
PostgreSQL adapter.
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional

from gatekeep.domain.account import UserAccount
from gatekeep.domain.ports import TokenKind


class InMemoryCredentialStore:
    """
    Implements CredentialStore protocol with a dict keyed by account id.

    Accounts are copied on the way in and out, so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[str, UserAccount] = {}
        self._ids_by_email: dict[str, str] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    def find_by_email(self, email: str) -> Optional[UserAccount]:
        with self._lock:
            account_id = self._ids_by_email.get(email)
            return self._copy(account_id)

    def find_by_id(self, account_id: str) -> Optional[UserAccount]:
        with self._lock:
            return self._copy(account_id)

    def find_by_pending_token(self, kind: TokenKind, digest: str) -> Optional[UserAccount]:
        with self._lock:
            for account in self._accounts.values():
                stored, _ = account.pending_token(kind)
                if stored is not None and stored == digest:
                    return replace(account)
            return None

    def create(self, account: UserAccount) -> Optional[UserAccount]:
        with self._lock:
            if account.email in self._ids_by_email:
                return None
            self._accounts[account.id] = replace(account)
            self._ids_by_email[account.email] = account.id
            return replace(account)

    def update_profile(self, account: UserAccount) -> bool:
        with self._lock:
            current = self._accounts.get(account.id)
            if current is None:
                return False
            current.first_name = account.first_name
            current.last_name = account.last_name
            current.avatar = account.avatar
            current.updated_at = account.updated_at
            return True

    def update_password(self, account_id: str, password_hash: str, updated_at: datetime) -> bool:
        with self._lock:
            current = self._accounts.get(account_id)
            if current is None:
                return False
            current.password_hash = password_hash
            current.updated_at = updated_at
            return True

    def set_pending_token(
        self, account_id: str, kind: TokenKind, digest: str, expires_at: datetime
    ) -> None:
        with self._lock:
            current = self._accounts.get(account_id)
            if current is not None:
                current.set_pending_token(kind, digest, expires_at)

    def discard_pending_token(self, account_id: str, kind: TokenKind, digest: str) -> bool:
        with self._lock:
            current = self._accounts.get(account_id)
            if current is None or current.pending_token(kind)[0] != digest:
                return False
            current.clear_pending_token(kind)
            return True

    def consume_pending_token(
        self,
        account: UserAccount,
        kind: TokenKind,
        digest: str,
        now: datetime,
        revoke_session: bool = False,
    ) -> bool:
        with self._lock:
            current = self._accounts.get(account.id)
            if current is None:
                return False
            stored, expires_at = current.pending_token(kind)
            if stored != digest or expires_at is None or expires_at <= now:
                return False
            if kind is TokenKind.VERIFICATION:
                current.is_verified = True
            else:
                current.password_hash = account.password_hash
            current.updated_at = account.updated_at
            current.clear_pending_token(kind)
            if revoke_session:
                current.refresh_token = None
            return True

    def set_refresh_token(self, account_id: str, digest: Optional[str]) -> bool:
        with self._lock:
            current = self._accounts.get(account_id)
            if current is None:
                return False
            current.refresh_token = digest
            return True

    def swap_refresh_token(self, account_id: str, expected: str, replacement: str) -> bool:
        with self._lock:
            current = self._accounts.get(account_id)
            if current is None or current.refresh_token is None:
                return False
            if current.refresh_token != expected:
                return False
            current.refresh_token = replacement
            return True

    def _copy(self, account_id: Optional[str]) -> Optional[UserAccount]:
        if account_id is None:
            return None
        account = self._accounts.get(account_id)
        return replace(account) if account is not None else None
