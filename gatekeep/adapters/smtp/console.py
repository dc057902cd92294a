"""
Console email sender adapter - Implements NotificationGateway protocol.

This module provides a console-based implementation of the domain's
notification port, logging outgoing messages for development.
"""

import logging
import re

logger = logging.getLogger(__name__)

_LINK = re.compile(r'href="([^"]+)"')


class ConsoleEmailSender:
    """
    Implements NotificationGateway protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - logs the subject and any link so the
    verification/reset flow can be completed from the server log.
    """

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Log the message (simulates email delivery).

        Args:
            to_address: Recipient email address (normalized by domain layer)
            subject: Message subject
            html_body: Rendered HTML body
        """
        links = _LINK.findall(html_body)
        logger.info(
            "[EMAIL] To: %s Subject: %s Link: %s",
            to_address,
            subject,
            links[0] if links else "-",
        )
