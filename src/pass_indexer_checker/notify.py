"""Email notification of failed runs."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from pass_indexer_checker.config import MailConfig
from pass_indexer_checker.exceptions import NotificationError

logger = logging.getLogger(__name__)


class EmailService:
    """Sends plain-text messages through the configured SMTP server."""

    def __init__(self, config: MailConfig) -> None:
        self.config = config

    def build_message(self, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.config.sender
        message["To"] = ", ".join(self.config.recipients)
        message.set_content(body)
        return message

    def send_email_message(self, subject: str, body: str) -> None:
        """Send a message to every configured recipient.

        Raises:
            NotificationError: The SMTP server could not be reached or refused the message
        """
        config = self.config
        message = self.build_message(subject, body)
        smtp_class = smtplib.SMTP_SSL if config.ssl else smtplib.SMTP

        try:
            with smtp_class(config.smtp_host, config.smtp_port, timeout=config.timeout) as smtp:
                if config.starttls and not config.ssl:
                    smtp.starttls()
                if config.smtp_user:
                    smtp.login(config.smtp_user, config.smtp_password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(
                f"Could not send '{subject}' via {config.smtp_host}:{config.smtp_port}: {e}"
            ) from e

        logger.info("Sent '%s' to %s", subject, ", ".join(config.recipients))
