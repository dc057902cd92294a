"""
PostgreSQL repository adapter - Implements CredentialStore protocol.

This module provides the PostgreSQL implementation of the domain's
credential store port using psycopg3 with raw SQL.

Atomicity Design:
-----------------
1. **create()**: INSERT ... ON CONFLICT (email) DO NOTHING. The UNIQUE
   constraint on email decides concurrent registrations; the loser sees
   rowcount 0 and gets None back.

2. **consume_pending_token()**: a single UPDATE whose WHERE clause
   re-checks the token digest and its expiry. Two racing consumers of
   the same token serialize on the row lock; the second one re-evaluates
   the WHERE clause against the committed row, matches nothing, and
   reports False.

3. **swap_refresh_token()**: UPDATE ... WHERE refresh_token = <expected>,
   the same compare-and-swap for refresh token rotation.

4. Every other write is column-scoped: update_profile() touches only the
   profile columns, update_password() only password_hash, and a consume
   only the column its token kind governs. A write based on an older read
   therefore cannot undo a concurrent password change, consume or rotation.
"""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from gatekeep.domain.account import UserAccount
from gatekeep.domain.ports import TokenKind

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, email, password_hash, first_name, last_name, avatar, is_verified, "
    "verification_token, verification_expires_at, reset_token, reset_expires_at, "
    "refresh_token, created_at, updated_at"
)

_TOKEN_COLUMNS = {
    TokenKind.VERIFICATION: ("verification_token", "verification_expires_at"),
    TokenKind.RESET: ("reset_token", "reset_expires_at"),
}


def _as_uuid(account_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(account_id)
    except (ValueError, TypeError, AttributeError):
        return None


def _row_to_account(row: dict[str, Any]) -> UserAccount:
    return UserAccount(
        id=str(row["id"]),
        email=row["email"],
        password_hash=row["password_hash"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        avatar=row["avatar"],
        is_verified=row["is_verified"],
        verification_token=row["verification_token"],
        verification_expires_at=row["verification_expires_at"],
        reset_token=row["reset_token"],
        reset_expires_at=row["reset_expires_at"],
        refresh_token=row["refresh_token"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresCredentialStore:
    """
    Implements CredentialStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries; token column names come from a
    fixed table and are composed with psycopg.sql.Identifier.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def find_by_email(self, email: str) -> Optional[UserAccount]:
        return self._fetch_one(f"SELECT {_COLUMNS} FROM users WHERE email = %s", (email,))

    def find_by_id(self, account_id: str) -> Optional[UserAccount]:
        key = _as_uuid(account_id)
        if key is None:
            return None
        return self._fetch_one(f"SELECT {_COLUMNS} FROM users WHERE id = %s", (key,))

    def find_by_pending_token(self, kind: TokenKind, digest: str) -> Optional[UserAccount]:
        token_col, _ = _TOKEN_COLUMNS[kind]
        query = sql.SQL("SELECT {columns} FROM users WHERE {token} = %s").format(
            columns=sql.SQL(_COLUMNS), token=sql.Identifier(token_col)
        )
        return self._fetch_one(query, (digest,))

    def create(self, account: UserAccount) -> Optional[UserAccount]:
        """
        Atomically insert a new account.

        Returns:
            The stored account, or None if the email is already registered
        """
        insert_sql = f"""
            INSERT INTO users ({_COLUMNS})
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING {_COLUMNS}
        """
        params = (
            uuid.UUID(account.id),
            account.email,
            account.password_hash,
            account.first_name,
            account.last_name,
            account.avatar,
            account.is_verified,
            account.verification_token,
            account.verification_expires_at,
            account.reset_token,
            account.reset_expires_at,
            account.refresh_token,
            account.created_at,
            account.updated_at,
        )
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(insert_sql, params)
            row = cursor.fetchone()
            conn.commit()
        return _row_to_account(row) if row is not None else None

    def update_profile(self, account: UserAccount) -> bool:
        update_sql = """
            UPDATE users
            SET first_name = %s, last_name = %s, avatar = %s, updated_at = %s
            WHERE id = %s
        """
        params = (
            account.first_name,
            account.last_name,
            account.avatar,
            account.updated_at,
            uuid.UUID(account.id),
        )
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(update_sql, params)
            conn.commit()
            return cursor.rowcount == 1

    def update_password(self, account_id: str, password_hash: str, updated_at: datetime) -> bool:
        key = _as_uuid(account_id)
        if key is None:
            return False
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "UPDATE users SET password_hash = %s, updated_at = %s WHERE id = %s",
                (password_hash, updated_at, key),
            )
            conn.commit()
            return cursor.rowcount == 1

    def set_pending_token(
        self, account_id: str, kind: TokenKind, digest: str, expires_at: datetime
    ) -> None:
        token_col, expires_col = _TOKEN_COLUMNS[kind]
        query = sql.SQL("UPDATE users SET {token} = %s, {expires} = %s WHERE id = %s").format(
            token=sql.Identifier(token_col), expires=sql.Identifier(expires_col)
        )
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, (digest, expires_at, uuid.UUID(account_id)))
            conn.commit()

    def discard_pending_token(self, account_id: str, kind: TokenKind, digest: str) -> bool:
        token_col, expires_col = _TOKEN_COLUMNS[kind]
        query = sql.SQL(
            "UPDATE users SET {token} = NULL, {expires} = NULL WHERE id = %s AND {token} = %s"
        ).format(token=sql.Identifier(token_col), expires=sql.Identifier(expires_col))
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, (uuid.UUID(account_id), digest))
            conn.commit()
            return cursor.rowcount == 1

    def consume_pending_token(
        self,
        account: UserAccount,
        kind: TokenKind,
        digest: str,
        now: datetime,
        revoke_session: bool = False,
    ) -> bool:
        """
        Apply the token's change and clear the token in one conditional UPDATE.

        Returns:
            True if exactly one row matched (token present and unexpired)
        """
        token_col, expires_col = _TOKEN_COLUMNS[kind]
        if kind is TokenKind.VERIFICATION:
            change, change_params = sql.SQL("is_verified = TRUE"), ()
        else:
            change, change_params = sql.SQL("password_hash = %s"), (account.password_hash,)
        query = sql.SQL(
            """
            UPDATE users
            SET {change}, updated_at = %s, {token} = NULL, {expires} = NULL{revoke}
            WHERE id = %s AND {token} = %s AND {expires} > %s
            """
        ).format(
            change=change,
            token=sql.Identifier(token_col),
            expires=sql.Identifier(expires_col),
            revoke=sql.SQL(", refresh_token = NULL" if revoke_session else ""),
        )
        params = (*change_params, account.updated_at, uuid.UUID(account.id), digest, now)
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, params)
            conn.commit()
            return cursor.rowcount == 1

    def set_refresh_token(self, account_id: str, digest: Optional[str]) -> bool:
        key = _as_uuid(account_id)
        if key is None:
            return False
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("UPDATE users SET refresh_token = %s WHERE id = %s", (digest, key))
            conn.commit()
            return cursor.rowcount == 1

    def swap_refresh_token(self, account_id: str, expected: str, replacement: str) -> bool:
        key = _as_uuid(account_id)
        if key is None:
            return False
        swap_sql = """
            UPDATE users SET refresh_token = %s
            WHERE id = %s AND refresh_token = %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(swap_sql, (replacement, key, expected))
            conn.commit()
            return cursor.rowcount == 1

    def _fetch_one(self, query: Any, params: tuple[Any, ...]) -> Optional[UserAccount]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
        return _row_to_account(row) if row is not None else None


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: gatekeep/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
