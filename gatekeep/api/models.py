"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field

from gatekeep.domain.account import PublicAccount

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 64


def _password_field(description: str) -> Any:
    return Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        max_length=PASSWORD_MAX_LENGTH,
        description=description,
    )


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    email: EmailStr
    password: str = _password_field("User password (8-64 characters)")
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    name: Optional[str] = Field(
        default=None,
        max_length=200,
        description="Full name; used when first_name/last_name are not given",
    )

    def name_parts(self) -> tuple[str, str]:
        """Resolve (first_name, last_name), splitting `name` if needed."""
        if self.first_name or self.last_name or not self.name:
            return self.first_name, self.last_name
        first, _, last = self.name.strip().partition(" ")
        return first, last.strip()


class LoginRequest(BaseModel):
    """Request model for password login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)


class RefreshRequest(BaseModel):
    """Request model for token refresh when the cookie is not used."""

    refresh_token: Optional[str] = None


class TokenRequest(BaseModel):
    """Request model carrying a single-use token."""

    token: str = Field(..., min_length=1, max_length=256)


class EmailRequest(BaseModel):
    """Request model for resend-verification and forgot-password."""

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Request model for password reset."""

    token: str = Field(..., min_length=1, max_length=256)
    new_password: str = _password_field("New password (8-64 characters)")


class ChangePasswordRequest(BaseModel):
    """Request model for authenticated password change."""

    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LENGTH)
    new_password: str = _password_field("New password (8-64 characters)")


class UpdateProfileRequest(BaseModel):
    """Request model for profile update; omitted fields are left alone."""

    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    avatar: Optional[str] = Field(default=None, max_length=2048)


class AccountResponse(BaseModel):
    """Public view of an account."""

    id: str
    email: str
    first_name: str
    last_name: str
    name: str
    avatar: str
    is_verified: bool
    created_at: datetime

    @classmethod
    def from_account(cls, account: PublicAccount) -> "AccountResponse":
        return cls(
            id=account.id,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            name=account.name,
            avatar=account.avatar,
            is_verified=account.is_verified,
            created_at=account.created_at,
        )


class SessionResponse(BaseModel):
    """Response model for register, login and refresh."""

    message: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    account: Optional[AccountResponse] = None


class SessionStatusResponse(BaseModel):
    """Response model for the optional-auth session status check."""

    authenticated: bool
    account: Optional[AccountResponse] = None


class MessageResponse(BaseModel):
    """Response model for operations without a payload."""

    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
