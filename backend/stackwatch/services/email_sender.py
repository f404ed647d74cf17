"""Email sender service - sends alerts via SMTP."""
import asyncio
import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from typing import Optional, List
from dataclasses import dataclass

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass
class EmailConfig:
    """SMTP configuration for sending emails."""
    host: str
    port: int
    username: str = ""
    password: str = ""
    secure: bool = False  # implicit TLS (SMTPS); otherwise STARTTLS if the server offers it
    from_address: str = ""
    to_address: str = ""  # Comma-separated list of email addresses


@dataclass
class EmailSendResult:
    """Whether the relay accepted the message, and why not if it didn't."""
    sent: bool
    error: Optional[str] = None


class EmailSenderService:
    """Service for sending email alerts via SMTP."""

    def __init__(self, timeout: float = 30):
        self.timeout = timeout

    def _parse_recipients(self, to_address: str) -> List[str]:
        """Parse comma-separated email addresses into a list."""
        if not to_address:
            return []
        return [addr.strip() for addr in to_address.split(",") if addr.strip()]

    async def send_email(self, config: EmailConfig, subject: str, body: str) -> EmailSendResult:
        """Send a plain-text email without blocking the event loop.

        Supports comma-separated list of recipients in to_address.
        Never raises; failures are returned as ``sent=False`` with a reason.
        """
        recipients = self._parse_recipients(config.to_address)
        if not config.host or not recipients:
            logger.warning("Email not configured - missing host or to_address")
            return EmailSendResult(sent=False, error="not_configured")

        return await asyncio.to_thread(self._send_blocking, config, recipients, subject, body)

    def _send_blocking(self, config: EmailConfig, recipients: List[str], subject: str, body: str) -> EmailSendResult:
        msg = MIMEText(body, "plain")
        msg["Subject"] = subject
        msg["From"] = config.from_address
        msg["To"] = ", ".join(recipients)

        logger.debug(f"SMTP Config: host={config.host}, port={config.port}, secure={config.secure}, username={config.username or 'not set'}")

        try:
            context = ssl.create_default_context()
            if config.secure:
                server = smtplib.SMTP_SSL(config.host, config.port, timeout=self.timeout, context=context)
            else:
                server = smtplib.SMTP(config.host, config.port, timeout=self.timeout)

            with server:
                if not config.secure:
                    server.ehlo()
                    if server.has_extn("starttls"):
                        server.starttls(context=context)
                        server.ehlo()
                if config.username:
                    server.login(config.username, config.password or "")
                refused = server.sendmail(config.from_address, recipients, msg.as_string())

            if refused:
                logger.warning(f"Some recipients were refused: {list(refused)}")
            logger.info(f"Email sent to {len(recipients) - len(refused)} recipient(s): {subject}")
            return EmailSendResult(sent=True)

        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed for user '{config.username}': {e}")
            return EmailSendResult(sent=False, error="SMTP authentication failed")
        except smtplib.SMTPRecipientsRefused as e:
            logger.error(f"Recipients refused by server: {e}")
            return EmailSendResult(sent=False, error="Recipients refused")
        except smtplib.SMTPSenderRefused as e:
            logger.error(f"Sender address refused: {e}")
            return EmailSendResult(sent=False, error="Sender refused")
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {type(e).__name__}: {e}")
            return EmailSendResult(sent=False, error=f"SMTP error: {type(e).__name__}")
        except OSError as e:
            logger.error(f"Failed to reach SMTP server {config.host}:{config.port}: {e}")
            return EmailSendResult(sent=False, error=str(e) or type(e).__name__)


# Global instance
email_sender_service = EmailSenderService(timeout=settings.smtp_timeout_seconds)
