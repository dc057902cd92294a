"""gatekeep - user identity and session credential manager."""

__version__ = "0.1.0"
