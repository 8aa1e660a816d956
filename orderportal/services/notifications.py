"""
Outbound email for status changes and deadline alerts.

Configuration (env vars, see orderportal.core.config):
    EMAIL_HOST       SMTP host (unset -> log-only mode, nothing is sent)
    EMAIL_PORT       SMTP port (465 = implicit TLS, otherwise STARTTLS)
    EMAIL_USER       SMTP username
    EMAIL_PASSWORD   SMTP password
    EMAIL_FROM       Sender address (defaults to EMAIL_USER)

``notify`` never raises: every outcome comes back as a NotificationResult so
the engines can log and move on.
"""
import smtplib
import uuid
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from functools import lru_cache
from typing import Optional

from orderportal.core.config import settings
from orderportal.core.logging import get_logger

logger = get_logger(__name__)


_EMAIL_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <style>
    body {{ font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6;
           color: #333; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f4f4f4; }}
    .email-container {{ background-color: #ffffff; padding: 30px; border-radius: 8px;
                        box-shadow: 0 2px 4px rgba(0,0,0,0.1); }}
    h2 {{ color: #2c3e50; margin-top: 0; border-bottom: 3px solid #3498db; padding-bottom: 10px; }}
    h3 {{ color: #34495e; margin-top: 20px; }}
    li {{ margin: 10px 0; }}
    strong {{ color: #2c3e50; }}
    .footer {{ margin-top: 30px; padding-top: 20px; border-top: 1px solid #e0e0e0;
               font-size: 12px; color: #7f8c8d; text-align: center; }}
  </style>
</head>
<body>
  <div class="email-container">
    {content}
    <div class="footer">
      <p>This is an automated message from the {app_name} system.</p>
      <p>Please do not reply directly to this email.</p>
    </div>
  </div>
</body>
</html>
"""


def wrap_email_template(content: str) -> str:
    """Wrap message content in the portal's email layout."""
    return _EMAIL_TEMPLATE.format(content=content, app_name=settings.APP_NAME)


@dataclass
class NotificationResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class NotificationDispatcher:
    """
    SMTP sender configured once per process.

    Without a host the dispatcher runs in log-only mode (dev/test) and
    reports every message as delivered.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        sender_name: str = "Order Portal",
        timeout: int = 30,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username or "noreply@localhost"
        self.sender_name = sender_name
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.host)

    def notify(self, to_address: str, subject: str, body_html: str) -> NotificationResult:
        """Send one HTML email. Returns a result instead of raising."""
        if not to_address:
            return NotificationResult(success=False, error="No recipient address")

        if not self.is_configured:
            message_id = f"<log-only-{uuid.uuid4().hex}@localhost>"
            logger.info(
                f"Email (log-only mode): to={to_address} subject='{subject}'",
                extra={"recipient": to_address},
            )
            return NotificationResult(success=True, message_id=message_id)

        try:
            message_id = self._send_smtp(to_address, subject, wrap_email_template(body_html))
            logger.info(f"Email sent to {to_address}: {message_id}", extra={"recipient": to_address})
            return NotificationResult(success=True, message_id=message_id)
        except Exception as e:
            logger.error(f"Failed to send email to {to_address}: {e}", extra={"recipient": to_address})
            return NotificationResult(success=False, error=str(e))

    def verify_connection(self) -> bool:
        """Check that the SMTP server accepts our connection and login."""
        if not self.is_configured:
            logger.warning("Email verification skipped: EMAIL_HOST is not configured")
            return False
        try:
            with self._connect() as smtp:
                smtp.noop()
            logger.info("Email server connection verified")
            return True
        except Exception as e:
            logger.error(f"Email server connection failed: {e}")
            return False

    def _connect(self) -> smtplib.SMTP:
        if self.port == 465:
            smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            smtp.starttls()
        if self.username and self.password:
            smtp.login(self.username, self.password)
        return smtp

    def _send_smtp(self, to_address: str, subject: str, html: str) -> str:
        message_id = make_msgid(domain=self.sender.split("@")[-1])

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.sender_name, self.sender))
        msg["To"] = to_address
        msg["Message-ID"] = message_id
        msg.attach(MIMEText(html, "html"))

        with self._connect() as smtp:
            smtp.send_message(msg)
        return message_id


@lru_cache(maxsize=1)
def get_dispatcher() -> NotificationDispatcher:
    """Process-wide dispatcher built from settings."""
    return NotificationDispatcher(
        host=settings.EMAIL_HOST,
        port=settings.EMAIL_PORT,
        username=settings.EMAIL_USER,
        password=settings.EMAIL_PASSWORD,
        sender=settings.email_sender,
        sender_name=settings.EMAIL_FROM_NAME,
        timeout=settings.EMAIL_TIMEOUT_SECONDS,
    )
