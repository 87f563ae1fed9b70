"""SMTP delivery for confirmation messages."""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from email.utils import make_msgid

import structlog

from storefront.application.notifications import DeliveryReceipt, NotificationDispatcher

logger = structlog.get_logger(__name__)


class SmtpNotificationDispatcher(NotificationDispatcher):

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    def send(self, to_address: str, subject: str, html_body: str) -> DeliveryReceipt:
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = to_address
        message["Subject"] = subject
        message["Message-ID"] = make_msgid()
        message.set_content("This message requires an HTML-capable mail client.")
        message.add_alternative(html_body, subtype="html")

        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as client:
                if self._use_tls:
                    client.starttls()
                if self._username:
                    client.login(self._username, self._password)
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("notification.smtp_failed", host=self._host, error=str(exc))
            return DeliveryReceipt(success=False, error=str(exc))
        return DeliveryReceipt(success=True, message_id=message["Message-ID"])
