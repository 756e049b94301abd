import logging
import smtplib
from email.message import EmailMessage
from html import escape
from typing import List, Optional

from pydantic import EmailStr, TypeAdapter, ValidationError

from config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)


class EmailDeliveryError(Exception):
    pass


def valid_recipients(addresses: List[str]) -> List[str]:
    valid = []
    for address in addresses:
        try:
            valid.append(_email_adapter.validate_python(address))
        except ValidationError:
            logger.warning(f"Skipping invalid notification recipient: {address!r}")
    return valid


class Mailer:
    """SMTP delivery to the configured notification recipients."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    @property
    def enabled(self) -> bool:
        return self.config.email_configured

    @property
    def sender(self) -> str:
        return self.config.EMAIL_FROM or f'"Calendar App" <{self.config.EMAIL_USER}>'

    def build_message(self, subject: str, text_body: str, html_body: Optional[str] = None) -> EmailMessage:
        recipients = valid_recipients(self.config.recipients)
        if not recipients:
            raise EmailDeliveryError("No recipients configured for email notifications")

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = ", ".join(recipients)
        msg.set_content(text_body)
        msg.add_alternative(html_body or f"<p>{escape(text_body)}</p>", subtype="html")
        return msg

    def send(self, subject: str, text_body: str, html_body: Optional[str] = None) -> None:
        """Send one message. Raises EmailDeliveryError on any failure."""
        if not self.enabled:
            raise EmailDeliveryError("Email notifications are disabled or not configured")

        msg = self.build_message(subject, text_body, html_body)
        host, port = self.config.EMAIL_HOST, self.config.EMAIL_PORT
        try:
            if port == 465:
                server = smtplib.SMTP_SSL(host, port, timeout=10)
            else:
                server = smtplib.SMTP(host, port, timeout=10)
            with server:
                if port != 465:
                    server.starttls()
                server.login(self.config.EMAIL_USER, self.config.EMAIL_PASS)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"Email send failed: {e}") from e
        logger.info(f"Notification email sent: {subject}")

    def send_quietly(self, subject: str, text_body: str, html_body: Optional[str] = None) -> bool:
        """Background variant: failures are logged, never raised."""
        if not self.enabled:
            logger.warning("Email transporter not available. Skipping email notification.")
            return False
        try:
            self.send(subject, text_body, html_body)
            return True
        except EmailDeliveryError as e:
            logger.error(f"Error sending notification email: {e}")
            return False
