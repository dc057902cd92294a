"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance, wires the domain
services in the lifespan, and exposes the health endpoint.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from gatekeep.adapters.repository import (
    InMemoryCredentialStore,
    PostgresCredentialStore,
    run_migrations,
)
from gatekeep.adapters.smtp.console import ConsoleEmailSender
from gatekeep.adapters.smtp.smtp import SmtpEmailSender
from gatekeep.api.v1 import router as v1_router
from gatekeep.config.settings import Settings, get_settings
from gatekeep.domain.lifecycle import AccountLifecycle
from gatekeep.domain.passwords import PasswordVault
from gatekeep.domain.ports import CredentialStore, NotificationGateway
from gatekeep.domain.sessions import SessionManager
from gatekeep.domain.tokens import TokenMinter

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Account API v1 - Registration, sessions, verification and recovery",
    },
]


@dataclass
class Services:
    """Domain services built once per application."""

    lifecycle: AccountLifecycle
    sessions: SessionManager


def build_notifier(settings: Settings) -> NotificationGateway:
    """Create the email adapter selected by EMAIL_BACKEND."""
    if settings.email_backend == "smtp":
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender_address=settings.email_from_address,
            sender_name=settings.email_from_name,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_starttls=settings.smtp_starttls,
        )
    return ConsoleEmailSender()


def build_services(
    settings: Settings,
    store: CredentialStore,
    notifier: Optional[NotificationGateway] = None,
) -> Services:
    """
    Wire the domain services together.

    Raises:
        ConfigurationError: If the session or lifecycle settings are invalid
    """
    session_config = settings.session_config()
    lifecycle_config = settings.lifecycle_config()
    vault = PasswordVault(rounds=settings.bcrypt_cost)
    minter = TokenMinter()

    sessions = SessionManager(store=store, vault=vault, minter=minter, config=session_config)
    lifecycle = AccountLifecycle(
        store=store,
        vault=vault,
        minter=minter,
        notifier=notifier if notifier is not None else build_notifier(settings),
        sessions=sessions,
        config=lifecycle_config,
        app_name=settings.app_name,
    )
    return Services(lifecycle=lifecycle, sessions=sessions)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Validates configuration (missing secrets abort startup)
    - Creates database connection pool and runs migrations
    - Builds the domain services
    - Closes connection pool on shutdown
    """
    settings = get_settings()

    logger.info("Starting application...")

    # Validate secrets before touching the database
    settings.session_config()

    pool: Optional[ConnectionPool] = None
    store: CredentialStore
    if settings.storage_backend == "memory":
        logger.warning("Using in-memory credential store; data is lost on restart")
        store = InMemoryCredentialStore()
    else:
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        store = PostgresCredentialStore(pool)

    services = build_services(settings, store)

    # Store services in app state for dependency injection
    app.state.pool = pool
    app.state.lifecycle = services.lifecycle
    app.state.sessions = services.sessions
    app.state.secure_cookies = settings.secure_cookies

    logger.info(
        "Application startup complete (email verification %s)",
        "required" if settings.require_email_verification else "disabled",
    )

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="gatekeep",
    description="Account and session API - registration, email verification, "
    "password recovery and rotating refresh tokens",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
