"""Settings model - singleton row of alert channel configuration."""
from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, String, DateTime

from ..database import Base

# The settings table only ever holds this row
SETTINGS_ROW_ID = 1


class AlertSettingsRow(Base):
    """Alert channel settings. Every column is optional."""

    __tablename__ = "settings"

    id = Column(Integer, primary_key=True)

    # Legacy generic webhook / email
    webhook_url = Column(String, nullable=True)
    alert_email = Column(String, nullable=True)

    # Chat and bot channels
    discord_webhook_url = Column(String, nullable=True)
    telegram_bot_token = Column(String, nullable=True)
    telegram_chat_id = Column(String, nullable=True)

    # SMTP
    smtp_host = Column(String, nullable=True)
    smtp_port = Column(Integer, nullable=True)
    smtp_secure = Column(Boolean, nullable=False, default=False)  # implicit TLS
    smtp_user = Column(String, nullable=True)
    smtp_pass = Column(String, nullable=True)
    smtp_from = Column(String, nullable=True)
    smtp_to = Column(String, nullable=True)  # comma-separated

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
