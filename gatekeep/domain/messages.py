"""
Notification message bodies for the account lifecycle.

Plain string templates. User-supplied values are HTML-escaped; token
values are URL-quoted before they are placed into a link.
"""

from html import escape
from typing import NamedTuple
from urllib.parse import quote

_LAYOUT = """<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <h1>{heading}</h1>
      {content}
    </div>
  </body>
</html>
"""


class Message(NamedTuple):
    subject: str
    html_body: str


def _link(base_url: str, path: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/{path}?token={quote(token, safe='')}"


def verification_message(
    app_name: str, base_url: str, name: str, token: str, expires_in: str
) -> Message:
    url = _link(base_url, "verify-email", token)
    content = (
        f"<p>Hi {escape(name)},</p>"
        f"<p>Thank you for registering with {escape(app_name)}. "
        "Please verify your email address by opening the link below:</p>"
        f'<p><a href="{escape(url)}">{escape(url)}</a></p>'
        f"<p><strong>This link will expire in {expires_in}.</strong></p>"
        "<p>If you didn't create an account, please ignore this email.</p>"
    )
    return Message(
        subject=f"Verify Your Email - {app_name}",
        html_body=_LAYOUT.format(heading="Verify your email", content=content),
    )


def welcome_message(app_name: str, name: str) -> Message:
    content = (
        f"<p>Hi {escape(name)},</p>"
        f"<p>Your email has been verified. You now have full access to {escape(app_name)}.</p>"
    )
    return Message(
        subject=f"Welcome to {app_name}!",
        html_body=_LAYOUT.format(heading="Email verified", content=content),
    )


def password_reset_message(
    app_name: str, base_url: str, name: str, token: str, expires_in: str
) -> Message:
    url = _link(base_url, "reset-password", token)
    content = (
        f"<p>Hi {escape(name)},</p>"
        f"<p>We received a request to reset the password for your {escape(app_name)} account.</p>"
        f'<p><a href="{escape(url)}">{escape(url)}</a></p>'
        "<ul>"
        f"<li>This link will expire in {expires_in}</li>"
        "<li>If you didn't request this, please ignore this email</li>"
        "<li>Your password won't change until you create a new one</li>"
        "</ul>"
    )
    return Message(
        subject=f"Reset Your Password - {app_name}",
        html_body=_LAYOUT.format(heading="Password reset request", content=content),
    )


def describe_ttl(seconds: int) -> str:
    """Render a lifetime for humans: 86400 -> '24 hours', 3600 -> '1 hour'."""
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    minutes = max(seconds // 60, 1)
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
