"""
Domain exceptions - Failures raised by primitives and adapters.

Core operations never raise these to their callers. They are caught inside
AccountLifecycle and SessionManager and turned into result values
(see results.py). ConfigurationError is the exception: it is raised at
startup and is meant to be fatal.
"""


class GatekeepError(Exception):
    """Base class for gatekeep domain errors."""

    pass


class ConfigurationError(GatekeepError):
    """Required secret missing or configuration value out of range."""

    pass


class DeliveryError(GatekeepError):
    """Notification gateway could not deliver a message."""

    pass


class SignedTokenError(GatekeepError):
    """Signed session token failed verification."""

    pass


class TokenExpired(SignedTokenError):
    """Signature is valid but the exp claim is in the past."""

    pass


class TokenInvalid(SignedTokenError):
    """Bad signature, malformed token, or wrong token type."""

    pass
