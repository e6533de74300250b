"""
Outgoing email over SMTP.
"""
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Optional
import logging
import smtplib

from restostar.core.config import get_settings
from restostar.core.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to: str
    subject: str
    text: str


class SmtpMailer:
    """
    Sends plain-text mail through an SMTP server over SSL.

    Missing credentials are only detected at send time, and fail loudly.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        timeout: float = 30.0,
    ):
        settings = get_settings()
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username or settings.SMTP_USER
        self.password = password or settings.SMTP_APP_PASSWORD
        self.sender = sender or settings.SMTP_FROM or self.username
        self.timeout = timeout

    def send(self, message: EmailMessage) -> None:
        if not self.username or not self.password:
            raise UpstreamError("Missing SMTP credentials: SMTP_USER and/or SMTP_APP_PASSWORD")

        mime = MIMEText(message.text, "plain", "utf-8")
        mime["Subject"] = message.subject
        mime["From"] = self.sender
        mime["To"] = message.to

        try:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as server:
                server.login(self.username, self.password)
                server.send_message(mime)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email via {self.host}: {e}")
            raise UpstreamError(f"Email send failed: {e}")
