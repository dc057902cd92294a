"""
Unit tests for PasswordVault.

bcrypt hashing is slow by design; these tests share the session-scoped
vault fixture where they can.
"""

import pytest

from gatekeep.domain.passwords import PasswordVault


class TestConstruction:
    """Tests for cost factor validation."""

    def test_cost_below_ten_rejected(self) -> None:
        """Cost factor must be at least 10."""
        with pytest.raises(ValueError, match=">= 10"):
            PasswordVault(rounds=4)

    def test_cost_factor_embedded_in_hash(self, vault: PasswordVault) -> None:
        """The stored hash records the configured cost."""
        assert vault.rounds == 10
        assert vault.hash("pw123456").startswith("$2b$10$")


class TestHashAndVerify:
    """Tests for hash() and verify()."""

    def test_verify_matching_password(self, vault: PasswordVault) -> None:
        password_hash = vault.hash("correct horse")

        assert vault.verify("correct horse", password_hash) is True

    def test_verify_wrong_password(self, vault: PasswordVault) -> None:
        password_hash = vault.hash("correct horse")

        assert vault.verify("battery staple", password_hash) is False

    def test_hash_is_salted(self, vault: PasswordVault) -> None:
        """Two hashes of the same password differ."""
        assert vault.hash("pw123456") != vault.hash("pw123456")

    def test_malformed_hash_is_a_mismatch(self, vault: PasswordVault) -> None:
        """verify() never raises on a corrupt stored hash."""
        assert vault.verify("pw123456", "not-a-bcrypt-hash") is False
        assert vault.verify("pw123456", "") is False

    def test_long_passwords_sharing_a_prefix_differ(self, vault: PasswordVault) -> None:
        """Bytes past bcrypt's 72-byte window still count."""
        base = "a" * 72
        password_hash = vault.hash(base)

        assert vault.verify(base, password_hash) is True
        assert vault.verify(base + "DIFFERENT", password_hash) is False

    def test_multibyte_passwords_differing_late(self, vault: PasswordVault) -> None:
        """40 two-byte characters exceed 72 bytes; a change at the end is noticed."""
        password_hash = vault.hash("\u00e9" * 40)

        assert vault.verify("\u00e9" * 39 + "e", password_hash) is False

    def test_very_long_password_hashes(self, vault: PasswordVault) -> None:
        """Input far past 72 bytes neither raises nor truncates."""
        password_hash = vault.hash("x" * 1000)

        assert vault.verify("x" * 1000, password_hash) is True
        assert vault.verify("x" * 999, password_hash) is False

    def test_unicode_password(self, vault: PasswordVault) -> None:
        password_hash = vault.hash("pässwörd-日本語")

        assert vault.verify("pässwörd-日本語", password_hash) is True
        assert vault.verify("passwort-日本語", password_hash) is False


class TestBurn:
    def test_burn_returns_none(self, vault: PasswordVault) -> None:
        """burn() only spends the bcrypt work."""
        assert vault.burn("anything") is None
