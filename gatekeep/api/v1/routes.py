"""
API v1 routes.

Defines REST endpoints for account registration, sessions, email
verification, password recovery and profile management. Handlers only
translate between HTTP and the domain services; every decision is made
by AccountLifecycle or SessionManager.
"""

from typing import Optional

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Request,
    Response,
    status,
)

from gatekeep.api.cookies import REFRESH_COOKIE, clear_auth_cookies, set_auth_cookies
from gatekeep.api.dependencies import (
    get_lifecycle,
    get_secure_cookies,
    get_session_manager,
    optional_account,
    require_account,
)
from gatekeep.api.errors import raise_for_error
from gatekeep.api.models import (
    AccountResponse,
    ChangePasswordRequest,
    EmailRequest,
    ErrorResponse,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SessionResponse,
    SessionStatusResponse,
    TokenRequest,
    UpdateProfileRequest,
)
from gatekeep.domain.account import PublicAccount
from gatekeep.domain.lifecycle import AccountLifecycle
from gatekeep.domain.results import Err
from gatekeep.domain.sessions import SessionGrant, SessionManager, TokenPair

router = APIRouter(prefix="/auth", tags=["v1"])

_UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "Missing or invalid session"}}
_BAD_TOKEN = {400: {"model": ErrorResponse, "description": "Invalid or expired token"}}


def _session_response(
    message: str, pair: TokenPair, account: Optional[PublicAccount] = None
) -> SessionResponse:
    return SessionResponse(
        message=message,
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.access_max_age,
        account=AccountResponse.from_account(account) if account is not None else None,
    )


def _grant_response(
    message: str, grant: SessionGrant, response: Response, secure: bool
) -> SessionResponse:
    set_auth_cookies(response, grant.tokens, secure)
    return _session_response(message, grant.tokens, grant.account)


@router.post(
    "/register",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
    },
    summary="Register a new user",
    description="Create an account and open a session. Depending on configuration "
    "a verification link is emailed or the account is verified immediately.",
)
def register(
    request_data: RegisterRequest,
    response: Response,
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
    secure: bool = Depends(get_secure_cookies),
) -> SessionResponse:
    first_name, last_name = request_data.name_parts()
    result = lifecycle.register(
        request_data.email, request_data.password, first_name=first_name, last_name=last_name
    )
    if isinstance(result, Err):
        raise_for_error(result)
    message = (
        "Registration successful"
        if result.value.account.is_verified
        else "Registration successful. Please verify your email."
    )
    return _grant_response(message, result.value, response, secure)


@router.post(
    "/login",
    response_model=SessionResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    response: Response,
    sessions: SessionManager = Depends(get_session_manager),
    secure: bool = Depends(get_secure_cookies),
) -> SessionResponse:
    result = sessions.login(request_data.email, request_data.password)
    if isinstance(result, Err):
        raise_for_error(result)
    return _grant_response("Login successful", result.value, response, secure)


@router.post(
    "/refresh",
    response_model=SessionResponse,
    responses=_UNAUTHORIZED,
    summary="Rotate the refresh token",
    description="Exchange the refresh token (cookie or body) for a new token pair. "
    "The presented refresh token stops working.",
)
def refresh(
    request: Request,
    response: Response,
    request_data: Optional[RefreshRequest] = None,
    sessions: SessionManager = Depends(get_session_manager),
    secure: bool = Depends(get_secure_cookies),
) -> SessionResponse:
    token = request.cookies.get(REFRESH_COOKIE)
    if request_data is not None and request_data.refresh_token:
        token = request_data.refresh_token
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token not provided",
        )
    result = sessions.rotate(token)
    if isinstance(result, Err):
        raise_for_error(result)
    set_auth_cookies(response, result.value, secure)
    return _session_response("Token refreshed", result.value)


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses=_UNAUTHORIZED,
    summary="Log out and revoke the refresh token",
)
def logout(
    response: Response,
    account: PublicAccount = Depends(require_account),
    sessions: SessionManager = Depends(get_session_manager),
) -> MessageResponse:
    result = sessions.revoke(account.id)
    if isinstance(result, Err):
        raise_for_error(result)
    clear_auth_cookies(response)
    return MessageResponse(message="Logout successful")


@router.get(
    "/session",
    response_model=SessionStatusResponse,
    summary="Report whether the caller holds a valid session",
)
def session_status(
    account: Optional[PublicAccount] = Depends(optional_account),
) -> SessionStatusResponse:
    if account is None:
        return SessionStatusResponse(authenticated=False)
    return SessionStatusResponse(authenticated=True, account=AccountResponse.from_account(account))


def _verify(token: str, lifecycle: AccountLifecycle) -> AccountResponse:
    result = lifecycle.verify_email(token)
    if isinstance(result, Err):
        raise_for_error(result)
    return AccountResponse.from_account(result.value)


@router.get(
    "/verify-email/{token}",
    response_model=AccountResponse,
    responses=_BAD_TOKEN,
    summary="Verify email via link",
)
def verify_email_link(
    token: str,
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
) -> AccountResponse:
    return _verify(token, lifecycle)


@router.post(
    "/verify-email",
    response_model=AccountResponse,
    responses=_BAD_TOKEN,
    summary="Verify email with token",
)
def verify_email(
    request_data: TokenRequest,
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
) -> AccountResponse:
    return _verify(request_data.token, lifecycle)


@router.post(
    "/resend-verification",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Email is already verified"}},
    summary="Resend the verification email",
)
def resend_verification(
    request_data: EmailRequest,
    background_tasks: BackgroundTasks,
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
) -> MessageResponse:
    result = lifecycle.resend_verification(request_data.email, tasks=background_tasks)
    if isinstance(result, Err):
        raise_for_error(result)
    return MessageResponse(message=result.value)


@router.post(
    "/send-verification",
    response_model=MessageResponse,
    responses={
        **_UNAUTHORIZED,
        400: {"model": ErrorResponse, "description": "Email is already verified"},
        502: {"model": ErrorResponse, "description": "Email could not be delivered"},
    },
    summary="Send a verification email to the logged-in user",
)
def send_verification(
    account: PublicAccount = Depends(require_account),
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
) -> MessageResponse:
    result = lifecycle.send_verification(account.id)
    if isinstance(result, Err):
        raise_for_error(result)
    return MessageResponse(message=result.value)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request a password reset link",
)
def forgot_password(
    request_data: EmailRequest,
    background_tasks: BackgroundTasks,
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
) -> MessageResponse:
    result = lifecycle.forgot_password(request_data.email, tasks=background_tasks)
    if isinstance(result, Err):
        raise_for_error(result)
    return MessageResponse(message=result.value)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid token or same password"}},
    summary="Reset password with a reset token",
)
def reset_password(
    request_data: ResetPasswordRequest,
    response: Response,
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
) -> MessageResponse:
    result = lifecycle.reset_password(request_data.token, request_data.new_password)
    if isinstance(result, Err):
        raise_for_error(result)
    clear_auth_cookies(response)
    return MessageResponse(message="Password reset successfully. Please login with new password.")


@router.get(
    "/me",
    response_model=AccountResponse,
    responses=_UNAUTHORIZED,
    summary="Get the current user's profile",
)
def get_me(
    account: PublicAccount = Depends(require_account),
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
) -> AccountResponse:
    result = lifecycle.get_profile(account.id)
    if isinstance(result, Err):
        raise_for_error(result)
    return AccountResponse.from_account(result.value)


@router.put(
    "/profile",
    response_model=AccountResponse,
    responses=_UNAUTHORIZED,
    summary="Update the current user's profile",
)
def update_profile(
    request_data: UpdateProfileRequest,
    account: PublicAccount = Depends(require_account),
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
) -> AccountResponse:
    result = lifecycle.update_profile(
        account.id,
        first_name=request_data.first_name,
        last_name=request_data.last_name,
        avatar=request_data.avatar,
    )
    if isinstance(result, Err):
        raise_for_error(result)
    return AccountResponse.from_account(result.value)


@router.put(
    "/password",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse, "description": "Current password is incorrect"}},
    summary="Change password",
)
def change_password(
    request_data: ChangePasswordRequest,
    account: PublicAccount = Depends(require_account),
    lifecycle: AccountLifecycle = Depends(get_lifecycle),
) -> MessageResponse:
    result = lifecycle.change_password(
        account.id, request_data.current_password, request_data.new_password
    )
    if isinstance(result, Err):
        raise_for_error(result)
    return MessageResponse(message="Password changed successfully")
