import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from airline_booking.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class EmailSender:
    """Best-effort SMTP email delivery"""

    def __init__(self, config: Settings = None):
        self.config = config or default_settings

    def send_email(self, to: str, subject: str, html: str) -> bool:
        """
        Send an HTML email.

        Returns True when the message was handed to the SMTP server. Delivery
        problems are logged and reported as False, never raised.
        """
        if not self.config.SMTP_HOST:
            logger.info(f"SMTP not configured, skipping email '{subject}' to {to}")
            return False

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.config.SMTP_FROM
        message["To"] = to
        message.attach(MIMEText(html, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT, timeout=10) as server:
                if self.config.SMTP_USE_TLS:
                    server.starttls()
                if self.config.SMTP_USER:
                    server.login(self.config.SMTP_USER, self.config.SMTP_PASSWORD or "")
                server.sendmail(self.config.SMTP_FROM, [to], message.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email '{subject}' to {to}: {e}", exc_info=True)
            return False

        logger.info(f"Email '{subject}' sent to {to}")
        return True
