"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry tests
- A recording notification gateway (optionally failing)
- A task queue that defers work until the test runs it
- Domain services wired against the in-memory credential store
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from urllib.parse import unquote

import pytest

from gatekeep.adapters.repository.memory import InMemoryCredentialStore
from gatekeep.domain.config import LifecycleConfig, SessionConfig
from gatekeep.domain.exceptions import DeliveryError
from gatekeep.domain.lifecycle import AccountLifecycle
from gatekeep.domain.passwords import PasswordVault
from gatekeep.domain.sessions import SessionManager
from gatekeep.domain.tokens import TokenMinter

ACCESS_SECRET = "test-access-secret-0123456789abcdef"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"

_TOKEN_IN_LINK = re.compile(r"[?&]token=([^\"&<]+)")


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    """NotificationGateway that records messages; set `fail` to simulate outages."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise DeliveryError("SMTP unavailable")
        self.sent.append((to_address, subject, html_body))

    def last_token(self) -> str:
        """Raw token from the link in the most recent message."""
        assert self.sent, "no message was sent"
        match = _TOKEN_IN_LINK.search(self.sent[-1][2])
        assert match is not None, "last message carries no token link"
        return unquote(match.group(1))

    def subjects(self) -> list[str]:
        return [subject for _, subject, _ in self.sent]


class DeferredTasks:
    """TaskQueue that holds work back until run() is called."""

    def __init__(self) -> None:
        self.pending: list[tuple[Callable[..., Any], tuple, dict]] = []

    def add_task(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self.pending.append((func, args, kwargs))

    def run(self) -> None:
        while self.pending:
            func, args, kwargs = self.pending.pop(0)
            func(*args, **kwargs)


@pytest.fixture(scope="session")
def vault() -> PasswordVault:
    """bcrypt vault at the minimum cost factor (shared; hashing is slow)."""
    return PasswordVault(rounds=10)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def minter(clock: FakeClock) -> TokenMinter:
    return TokenMinter(clock=clock)


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig(access_token_secret=ACCESS_SECRET, refresh_token_secret=REFRESH_SECRET)


@pytest.fixture
def sessions(
    store: InMemoryCredentialStore,
    vault: PasswordVault,
    minter: TokenMinter,
    session_config: SessionConfig,
) -> SessionManager:
    return SessionManager(store=store, vault=vault, minter=minter, config=session_config)


def make_lifecycle(
    store: InMemoryCredentialStore,
    vault: PasswordVault,
    minter: TokenMinter,
    notifier: RecordingNotifier,
    sessions: SessionManager,
    clock: FakeClock,
    require_email_verification: bool = True,
) -> AccountLifecycle:
    return AccountLifecycle(
        store=store,
        vault=vault,
        minter=minter,
        notifier=notifier,
        sessions=sessions,
        config=LifecycleConfig(
            require_email_verification=require_email_verification,
            frontend_url="https://app.example.com",
        ),
        app_name="gatekeep",
        clock=clock,
    )


@pytest.fixture
def lifecycle(
    store: InMemoryCredentialStore,
    vault: PasswordVault,
    minter: TokenMinter,
    notifier: RecordingNotifier,
    sessions: SessionManager,
    clock: FakeClock,
) -> AccountLifecycle:
    """Lifecycle with email verification required."""
    return make_lifecycle(store, vault, minter, notifier, sessions, clock)


@pytest.fixture
def open_lifecycle(
    store: InMemoryCredentialStore,
    vault: PasswordVault,
    minter: TokenMinter,
    notifier: RecordingNotifier,
    sessions: SessionManager,
    clock: FakeClock,
) -> AccountLifecycle:
    """Lifecycle with the no-verification registration policy."""
    return make_lifecycle(
        store, vault, minter, notifier, sessions, clock, require_email_verification=False
    )


@pytest.fixture
def deferred_tasks() -> DeferredTasks:
    return DeferredTasks()
