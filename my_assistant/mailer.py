"""SMTP transport for the email export."""

import logging
import mimetypes
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from typing import Iterable, Tuple

logger = logging.getLogger(__name__)

SENDER_NAME = "助手 Bot"


class MailerError(Exception):
    """Raised when a message cannot be handed to the SMTP server."""


class SmtpMailer:
    def __init__(self, host: str, port: int, user: str, password: str, timeout: float = 30.0):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout

    def build_message(
        self,
        recipient: str,
        subject: str,
        html: str,
        attachments: Iterable[Tuple[str, bytes]] = (),
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((SENDER_NAME, self.user))
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content("請使用支援 HTML 的郵件程式開啟此信件。")
        msg.add_alternative(html, subtype="html")
        for filename, content in attachments:
            mime_type, _ = mimetypes.guess_type(filename)
            maintype, subtype = (mime_type or "application/octet-stream").split("/", 1)
            msg.add_attachment(content, maintype=maintype, subtype=subtype, filename=filename)
        return msg

    def send(
        self,
        recipient: str,
        subject: str,
        html: str,
        attachments: Iterable[Tuple[str, bytes]] = (),
    ) -> None:
        if not self.user or not self.password:
            raise MailerError("SMTP credentials are not configured")

        msg = self.build_message(recipient, subject, html, attachments)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls(context=ssl.create_default_context())
                    server.ehlo()
                server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailerError(str(exc) or exc.__class__.__name__) from exc
        logger.info("Email sent to %s", recipient)
