"""
API v1 package.

Contains versioned API routes for account and session management.
"""

from gatekeep.api.v1.routes import router

__all__ = ["router"]
