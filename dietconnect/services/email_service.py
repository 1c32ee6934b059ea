"""Outbound email over SMTP. Without SMTP_HOST, messages are only logged."""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from dietconnect.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:

    def __init__(self):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.sender = settings.EMAIL_FROM

    def build_message(
        self,
        to: str,
        subject: str,
        html: str,
        attachment: Optional[tuple[str, bytes, str]] = None,
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable email client.")
        message.add_alternative(html, subtype="html")
        if attachment:
            filename, data, mime = attachment
            maintype, subtype = mime.split("/", 1)
            message.add_attachment(data, maintype=maintype, subtype=subtype, filename=filename)
        return message

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        attachment: Optional[tuple[str, bytes, str]] = None,
    ) -> bool:
        """
        Send an HTML email, optionally with one attachment.

        Args:
            to: Recipient address
            subject: Subject line
            html: HTML body; callers escape any user-provided values
            attachment: (filename, bytes, mime type)

        Returns:
            True when sent (or logged in development), False on SMTP failure
        """
        message = self.build_message(to, subject, html, attachment)
        if not self.host:
            logger.info("SMTP not configured, email to %s not sent: %s", to, subject)
            return True

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
                if settings.SMTP_USE_TLS:
                    smtp.starttls()
                if settings.SMTP_USER:
                    smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            return False

        logger.info("Email sent to %s: %s", to, subject)
        return True


email_service = EmailService()
