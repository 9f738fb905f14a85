"""Mailer: best-effort transactional email over SMTP (aiosmtplib).

Sending never raises. A failed or skipped send is logged and reported as
False; order transitions never depend on it. An empty SMTP_HOST disables
mail entirely.
"""
import logging
from email.message import EmailMessage

import aiosmtplib

from config.settings import settings

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        sender: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._host = settings.SMTP_HOST if host is None else host
        self._port = port or settings.SMTP_PORT
        self._username = settings.SMTP_USER if username is None else username
        self._password = settings.SMTP_PASSWORD if password is None else password
        self._sender = sender or settings.MAIL_FROM
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self._host)

    def build_message(self, to: str, subject: str, html: str, sender_name: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f"{sender_name} <{self._sender}>"
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable mail client.")
        message.add_alternative(html, subtype="html")
        return message

    async def send(self, to: str, subject: str, html: str, sender_name: str = "Store") -> bool:
        if not self.enabled:
            logger.warning("SMTP not configured; skipping mail %r to %s", subject, to)
            return False
        message = self.build_message(to, subject, html, sender_name)
        try:
            await aiosmtplib.send(
                message,
                hostname=self._host,
                port=self._port,
                username=self._username or None,
                password=self._password or None,
                use_tls=self._port == 465,  # implicit TLS; other ports negotiate STARTTLS
                timeout=self._timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send mail %r to %s: %s", subject, to, e)
            return False
        logger.info("Sent mail %r to %s", subject, to)
        return True
