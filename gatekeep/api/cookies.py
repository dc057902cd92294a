"""
Session cookies - http-only, SameSite=strict, max-age matching token TTLs.
"""

from fastapi import Response

from gatekeep.domain.sessions import TokenPair

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def set_auth_cookies(response: Response, pair: TokenPair, secure: bool) -> None:
    """Write both session tokens as http-only cookies on the response."""
    response.set_cookie(
        ACCESS_COOKIE,
        value=pair.access_token,
        httponly=True,
        samesite="strict",
        secure=secure,
        max_age=pair.access_max_age,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        value=pair.refresh_token,
        httponly=True,
        samesite="strict",
        secure=secure,
        max_age=pair.refresh_max_age,
    )


def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(ACCESS_COOKIE, httponly=True, samesite="strict")
    response.delete_cookie(REFRESH_COOKIE, httponly=True, samesite="strict")
