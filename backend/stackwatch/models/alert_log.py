"""AlertLog model - log of dispatched alerts."""
from datetime import datetime
from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base


class AlertLog(Base):
    """Record of one channel's attempt to deliver an alert event."""

    __tablename__ = "alert_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    monitor_id = Column(Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=True)  # NULL for test alerts
    event = Column(String, nullable=False)  # incident_opened, incident_closed, test
    channel = Column(String, nullable=False)  # webhook, discord, telegram, email
    sent = Column(Boolean, nullable=False, default=False)
    status = Column(Integer, nullable=True)  # HTTP status for webhook-style channels
    error = Column(String, nullable=True)
    sent_at = Column(DateTime, default=datetime.utcnow)

    # Relationship
    monitor = relationship("Monitor", back_populates="alerts")
