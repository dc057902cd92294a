"""
SMTP email sender adapter - Implements NotificationGateway protocol.

Delivers HTML mail through an SMTP relay with STARTTLS. Any SMTP or
socket failure is reported to the domain as DeliveryError.
"""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from gatekeep.domain.exceptions import DeliveryError

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """Implements NotificationGateway protocol via smtplib."""

    def __init__(
        self,
        host: str,
        port: int,
        sender_address: str,
        sender_name: str = "",
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_starttls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._from = formataddr((sender_name, sender_address)) if sender_name else sender_address
        self._username = username
        self._password = password
        self._use_starttls = use_starttls
        self._timeout = timeout

    def build_message(self, to_address: str, subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._from
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable mail client.")
        message.add_alternative(html_body, subtype="html")
        return message

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Send one message.

        Raises:
            DeliveryError: On any SMTP or connection failure
        """
        message = self.build_message(to_address, subject, html_body)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                if self._use_starttls:
                    server.starttls()
                if self._username:
                    server.login(self._username, self._password or "")
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery via %s:%s failed: %s", self._host, self._port, e)
            raise DeliveryError(f"SMTP delivery via {self._host} failed") from e
        logger.debug("Message handed to %s:%s", self._host, self._port)
