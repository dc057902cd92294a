"""
Domain layer - Credential lifecycle and session token state machine.

Pure business logic with zero framework imports. It defines its own port
interfaces for persistence and email delivery; adapters implement them.
"""

from .account import PublicAccount, UserAccount, normalize_email
from .config import LifecycleConfig, SessionConfig
from .exceptions import (
    ConfigurationError,
    DeliveryError,
    GatekeepError,
    SignedTokenError,
    TokenExpired,
    TokenInvalid,
)
from .lifecycle import RESET_SENT, VERIFICATION_SENT, AccountLifecycle, InlineTasks
from .passwords import PasswordVault
from .ports import CredentialStore, NotificationGateway, TaskQueue, TokenKind
from .results import Err, ErrorKind, Ok, Result
from .sessions import SessionGrant, SessionManager, TokenPair
from .tokens import TokenMinter

__all__ = [
    "AccountLifecycle",
    "ConfigurationError",
    "CredentialStore",
    "DeliveryError",
    "Err",
    "ErrorKind",
    "GatekeepError",
    "InlineTasks",
    "LifecycleConfig",
    "NotificationGateway",
    "Ok",
    "PasswordVault",
    "PublicAccount",
    "RESET_SENT",
    "Result",
    "SessionConfig",
    "SessionGrant",
    "SessionManager",
    "SignedTokenError",
    "TaskQueue",
    "TokenExpired",
    "TokenInvalid",
    "TokenKind",
    "TokenMinter",
    "TokenPair",
    "UserAccount",
    "VERIFICATION_SENT",
    "normalize_email",
]
