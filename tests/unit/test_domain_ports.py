"""
Unit tests for domain ports, results and exceptions.

Tests verify:
- Enums are str-valued for JSON serialization
- Result values carry exactly one outcome
- Exceptions are properly structured
- Domain purity (zero framework imports)
"""

import re
from enum import Enum
from pathlib import Path

import pytest

from gatekeep.domain.exceptions import (
    ConfigurationError,
    DeliveryError,
    GatekeepError,
    SignedTokenError,
    TokenExpired,
    TokenInvalid,
)
from gatekeep.domain.lifecycle import InlineTasks
from gatekeep.domain.ports import TokenKind
from gatekeep.domain.results import Err, ErrorKind, Ok

DOMAIN_DIR = Path(__file__).resolve().parents[2] / "gatekeep" / "domain"


class TestTokenKindEnum:
    """Tests for TokenKind enum."""

    def test_token_kind_is_str_enum(self) -> None:
        assert issubclass(TokenKind, Enum)
        assert issubclass(TokenKind, str)

    def test_token_kind_values(self) -> None:
        assert TokenKind.VERIFICATION.value == "verification"
        assert TokenKind.RESET.value == "reset"


class TestErrorKindEnum:
    """Tests for ErrorKind enum."""

    def test_error_kind_is_str_enum(self) -> None:
        assert issubclass(ErrorKind, str)

    @pytest.mark.parametrize(
        "name",
        [
            "VALIDATION_ERROR",
            "CONFLICT",
            "INVALID_CREDENTIALS",
            "INVALID_OR_EXPIRED_TOKEN",
            "ALREADY_VERIFIED",
            "SAME_PASSWORD",
            "UNAUTHORIZED",
            "DELIVERY_ERROR",
        ],
    )
    def test_error_kind_has_member(self, name: str) -> None:
        """Every failure kind a core operation can report exists."""
        assert ErrorKind[name].value == name.lower()


class TestInlineTasks:
    def test_runs_task_immediately(self) -> None:
        calls = []

        InlineTasks().add_task(calls.append, "sent")

        assert calls == ["sent"]

    def test_task_errors_reach_the_caller(self) -> None:
        def failing() -> None:
            raise DeliveryError("relay down")

        with pytest.raises(DeliveryError):
            InlineTasks().add_task(failing)


class TestResults:
    """Tests for Ok and Err."""

    def test_ok_carries_value(self) -> None:
        result = Ok(42)

        assert result.value == 42

    def test_err_carries_kind_and_detail(self) -> None:
        result = Err(ErrorKind.CONFLICT, "Email already registered")

        assert result.kind is ErrorKind.CONFLICT
        assert result.detail == "Email already registered"

    def test_results_are_told_apart_by_type(self) -> None:
        """Callers branch with isinstance(); there is no separate ok flag."""
        assert not isinstance(Ok(None), Err)
        assert isinstance(Err(ErrorKind.NOT_FOUND), Err)
        assert not hasattr(Ok(None), "ok")

    def test_results_are_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Ok(1).value = 2  # type: ignore[misc]

    def test_results_compare_by_value(self) -> None:
        assert Ok("x") == Ok("x")
        assert Err(ErrorKind.UNAUTHORIZED, "a") != Err(ErrorKind.UNAUTHORIZED, "b")


class TestExceptions:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize(
        "exc_class",
        [ConfigurationError, DeliveryError, SignedTokenError, TokenExpired, TokenInvalid],
    )
    def test_inherits_from_base(self, exc_class: type) -> None:
        assert issubclass(exc_class, GatekeepError)

    def test_token_errors_share_parent(self) -> None:
        """Callers catch SignedTokenError for both token failure modes."""
        assert issubclass(TokenExpired, SignedTokenError)
        assert issubclass(TokenInvalid, SignedTokenError)

    def test_can_raise_and_catch(self) -> None:
        with pytest.raises(GatekeepError, match="smtp down"):
            raise DeliveryError("smtp down")


class TestDomainPurity:
    """Tests for domain purity - zero framework imports."""

    @pytest.mark.parametrize("package", ["fastapi", "pydantic", "psycopg", "starlette"])
    def test_no_framework_imports_in_domain(self, package: str) -> None:
        """Domain layer imports no web or database framework."""
        pattern = re.compile(rf"^\s*(from|import)\s+{package}\b", re.MULTILINE)
        offenders = [
            path.name
            for path in DOMAIN_DIR.glob("*.py")
            if pattern.search(path.read_text(encoding="utf-8"))
        ]
        assert offenders == [], f"{package} import found in: {offenders}"

    def test_domain_dir_found(self) -> None:
        assert (DOMAIN_DIR / "lifecycle.py").is_file()
