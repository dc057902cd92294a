"""
PasswordVault - bcrypt hash-on-write, compare-on-read.

bcrypt only looks at the first 72 bytes of its input, so two long
passwords sharing a prefix would compare equal. Plaintexts are therefore
pre-hashed to a fixed 44-byte base64(SHA-256) value before they reach
bcrypt; every byte of the password counts.
"""

import base64
import hashlib

import bcrypt

_MIN_COST = 10


class PasswordVault:
    """
    Wraps bcrypt with a fixed cost factor.

    verify() never raises: a malformed stored hash is a mismatch.
    """

    def __init__(self, rounds: int = _MIN_COST) -> None:
        if rounds < _MIN_COST:
            raise ValueError(f"bcrypt cost factor must be >= {_MIN_COST}, got {rounds}")
        self._rounds = rounds
        # Compared against when an account does not exist, so that a login
        # for an unknown email costs the same bcrypt work as a real one.
        self._dummy_hash = self.hash("dummy_password_for_timing_safety")

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        """Return a salted bcrypt hash of the plaintext."""
        return bcrypt.hashpw(self._encode(plaintext), bcrypt.gensalt(rounds=self._rounds)).decode()

    def verify(self, plaintext: str, password_hash: str) -> bool:
        """Return True if the plaintext matches the hash (constant-time)."""
        try:
            return bcrypt.checkpw(self._encode(plaintext), password_hash.encode())
        except (ValueError, TypeError):
            return False

    def burn(self, plaintext: str) -> None:
        """Run one comparison against the dummy hash and discard the result."""
        self.verify(plaintext, self._dummy_hash)

    @staticmethod
    def _encode(plaintext: str) -> bytes:
        return base64.b64encode(hashlib.sha256(plaintext.encode("utf-8")).digest())
