"""Alert settings schema."""
from pydantic import BaseModel


class AlertSettings(BaseModel):
    """Alert channel configuration, fetched once per dispatch.

    Empty strings mean "not set". A channel whose required fields are
    empty is reported as not configured rather than failed.
    """
    # Legacy generic webhook / email
    webhook_url: str = ""
    alert_email: str = ""

    # Discord-compatible chat webhook
    discord_webhook_url: str = ""

    # Telegram bot
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    # SMTP
    smtp_host: str = ""
    smtp_port: int = 587  # Out-of-range values leave email unconfigured
    smtp_secure: bool = False  # True = implicit TLS, False = STARTTLS when offered
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_from: str = ""
    smtp_to: str = ""  # Comma-separated list of addresses

    @property
    def webhook_configured(self) -> bool:
        return bool(self.webhook_url)

    @property
    def discord_configured(self) -> bool:
        return bool(self.discord_webhook_url)

    @property
    def telegram_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_host and 1 <= self.smtp_port <= 65535 and self.smtp_from and self.smtp_to)
