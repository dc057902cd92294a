"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting the domain
services (built once in the application lifespan and stored on
app.state) and the authenticated account into routes.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gatekeep.api.cookies import ACCESS_COOKIE
from gatekeep.api.errors import raise_for_error
from gatekeep.domain.account import PublicAccount
from gatekeep.domain.lifecycle import AccountLifecycle
from gatekeep.domain.results import Err
from gatekeep.domain.sessions import SessionManager

# Bearer security scheme for OpenAPI documentation; the cookie is the fallback
http_bearer = HTTPBearer(auto_error=False)


def get_lifecycle(request: Request) -> AccountLifecycle:
    """Get the account lifecycle service from app state."""
    return request.app.state.lifecycle


def get_session_manager(request: Request) -> SessionManager:
    """Get the session manager from app state."""
    return request.app.state.sessions


def get_secure_cookies(request: Request) -> bool:
    return getattr(request.app.state, "secure_cookies", False)


def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
) -> Optional[str]:
    """
    Extract the access token from the Authorization header or cookie.

    The Bearer header wins when both are present.
    """
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(ACCESS_COOKIE)


def require_account(
    token: Optional[str] = Depends(get_access_token),
    sessions: SessionManager = Depends(get_session_manager),
) -> PublicAccount:
    """
    Resolve the authenticated account or fail with 401.

    Used as a precondition on every protected route.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    result = sessions.authenticate(token)
    if isinstance(result, Err):
        raise_for_error(result)
    return result.value


def optional_account(
    token: Optional[str] = Depends(get_access_token),
    sessions: SessionManager = Depends(get_session_manager),
) -> Optional[PublicAccount]:
    """Resolve the account if a valid token is present; never fails."""
    return sessions.optional_authenticate(token)
